"""Questline progression engine: points, tasks, referrals and ranking."""
