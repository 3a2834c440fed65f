"""Unit tests for core/config.py -- Settings defaults and SECRET_KEY policy.

Covers:
- Dev mode auto-generates a SECRET_KEY of sufficient length
- Production mode refuses to start without SECRET_KEY
- Keys shorter than 32 characters are rejected in both modes
- Session TTL must be positive
"""

import pytest

from core.config import Settings

GOOD_KEY = "k" * 32


class TestSecretKey:
    def test_dev_mode_generates_key(self):
        settings = Settings(debug=True, secret_key="")
        assert len(settings.secret_key) >= 32

    def test_production_requires_key(self):
        with pytest.raises(ValueError, match="SECRET_KEY is required"):
            Settings(debug=False, secret_key="")

    @pytest.mark.parametrize("debug", [True, False])
    def test_short_key_rejected(self, debug):
        with pytest.raises(ValueError, match="at least 32"):
            Settings(debug=debug, secret_key="short")

    def test_explicit_key_kept(self):
        assert Settings(debug=False, secret_key=GOOD_KEY).secret_key == GOOD_KEY


class TestSessionSettings:
    def test_defaults(self):
        settings = Settings(debug=False, secret_key=GOOD_KEY, session_ttl_seconds=3600)
        assert settings.session_ttl_seconds == 3600
        assert settings.store_timeout_seconds > 0

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValueError):
            Settings(debug=True, session_ttl_seconds=0)
