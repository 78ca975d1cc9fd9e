"""CORS configuration for the mini-app frontends."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from questline.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the configured frontend origins to call the API."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
    )
