"""Unit tests for referral code generation."""

import string

from questline.users.referral_codes import (
    MAX_GENERATION_ATTEMPTS,
    REFERRAL_CHARSET,
    REFERRAL_LENGTH,
    generate_referral_code,
)


class TestReferralCodes:
    """Test referral code generation."""

    def test_code_is_8_chars(self):
        code = generate_referral_code()
        assert len(code) == REFERRAL_LENGTH
        assert len(code) == 8

    def test_code_charset_is_uppercase_alphanumeric(self):
        assert REFERRAL_CHARSET == string.ascii_uppercase + string.digits

    def test_code_only_contains_valid_chars(self):
        for _ in range(100):
            code = generate_referral_code()
            assert all(c in REFERRAL_CHARSET for c in code)

    def test_codes_are_unique(self):
        codes = {generate_referral_code() for _ in range(1000)}
        assert len(codes) == 1000

    def test_retry_bound_is_positive(self):
        assert MAX_GENERATION_ATTEMPTS >= 1
