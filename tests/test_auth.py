"""
Tests for user bearer tokens and password hashing.
"""

import pytest

from auth.password import hash_password, verify_password
from auth.tokens import InvalidToken, create_token, verify_token
from config.settings import config

SECRET = "unit-test-secret"


class TestTokens:
    def test_round_trip(self):
        token = create_token("user-1", secret=SECRET, ttl=60)
        assert verify_token(token, secret=SECRET) == "user-1"

    def test_wrong_secret(self):
        token = create_token("user-1", secret=SECRET, ttl=60)
        with pytest.raises(InvalidToken):
            verify_token(token, secret="other-secret")

    def test_tampered_payload(self):
        token = create_token("user-1", secret=SECRET, ttl=60)
        forged = create_token("user-2", secret=SECRET, ttl=60)
        spliced = forged.split(".")[0] + "." + token.split(".")[1]
        with pytest.raises(InvalidToken):
            verify_token(spliced, secret=SECRET)

    def test_expired(self):
        token = create_token("user-1", secret=SECRET, ttl=-1)
        with pytest.raises(InvalidToken, match="expired"):
            verify_token(token, secret=SECRET)

    def test_defaults_come_from_settings(self, monkeypatch):
        monkeypatch.setattr(config, "jwt_secret", "rotated-secret")
        monkeypatch.setattr(config, "jwt_expiry_seconds", 120)

        token = create_token("user-1")
        assert verify_token(token, secret="rotated-secret") == "user-1"
        assert verify_token(token) == "user-1"

    @pytest.mark.parametrize("garbage", ["", "no-dot", "!!!.abc", "e30.deadbeef"])
    def test_garbage(self, garbage):
        with pytest.raises(InvalidToken):
            verify_token(garbage, secret=SECRET)


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("correct-horse")
        assert hashed != "correct-horse"
        assert verify_password("correct-horse", hashed)
        assert not verify_password("wrong-horse", hashed)

    def test_empty_hash_never_matches(self):
        assert not verify_password("anything", "")

    def test_malformed_hash(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")
