"""Tests for purpose-bound signed tokens."""

import time

from warden.domain.security.signed_tokens import SignedTokenService


class TestSignedTokenService:
    def setup_method(self):
        self.service = SignedTokenService(secret_key="k" * 40)

    def test_round_trip(self):
        token = self.service.dumps("purpose-a", {"uid": 7})
        assert self.service.loads("purpose-a", token, 60) == {"uid": 7}

    def test_token_is_bound_to_its_purpose(self):
        token = self.service.dumps("purpose-a", {"uid": 7})
        assert self.service.loads("purpose-b", token, 60) is None

    def test_token_is_bound_to_the_secret(self):
        token = self.service.dumps("purpose-a", {"uid": 7})
        other = SignedTokenService(secret_key="z" * 40)
        assert other.loads("purpose-a", token, 60) is None

    def test_expired_token_is_rejected(self, mocker):
        token = self.service.dumps("purpose-a", {"uid": 7})
        mocker.patch("itsdangerous.timed.time.time", return_value=time.time() + 3600)
        assert self.service.loads("purpose-a", token, 60) is None

    def test_missing_or_garbage_token(self):
        assert self.service.loads("purpose-a", None, 60) is None
        assert self.service.loads("purpose-a", "not-a-token", 60) is None
