"""Tests for bcrypt password hashing."""

import pytest

from app.infrastructure.security.password_hasher import PasswordHasher


@pytest.mark.security
class TestPasswordHasher:

    def test_hash_and_verify(self, hasher):
        hashed = hasher.hash_password("ParentPass1")
        assert hashed != "ParentPass1"
        assert hasher.verify_password("ParentPass1", hashed)
        assert not hasher.verify_password("parentpass1", hashed)

    def test_cost_factor_is_applied(self):
        hashed = PasswordHasher(rounds=5).hash_password("secret123")
        assert hashed.startswith("$2b$05$")

    def test_missing_hash_never_verifies(self, hasher):
        assert not hasher.verify_password("anything", None)
        assert not hasher.verify_password("anything", "")

    def test_malformed_hash_never_verifies(self, hasher):
        assert not hasher.verify_password("anything", "plain-text-not-bcrypt")
