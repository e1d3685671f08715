"""
Unit Tests for Security and Identity
Tests for: password hashing, access tokens, actor resolution
"""
import pytest
from datetime import timedelta
from jose import jwt

from sptrack.core.config import settings
from sptrack.core.exceptions import UnauthenticatedError
from sptrack.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    decode_token,
)
from sptrack.modules.auth.identity import Actor, Role, normalize_id, parse_role, resolve_actor


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_password_returns_different_value(self):
        """Test that hashing returns a different value than input"""
        password = "testpassword123"
        hashed = get_password_hash(password)

        assert hashed != password
        assert len(hashed) > 0

    def test_hash_password_different_each_time(self):
        """Test that hashing same password returns different hashes"""
        password = "testpassword123"

        # Bcrypt generates different salts
        assert get_password_hash(password) != get_password_hash(password)

    def test_verify_password_correct(self):
        hashed = get_password_hash("testpassword123")
        assert verify_password("testpassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("testpassword123")
        assert verify_password("wrongpassword", hashed) is False

    def test_hash_long_password_truncated(self):
        """Test that long passwords are truncated to bcrypt limit"""
        long_password = "a" * 100
        hashed = get_password_hash(long_password)

        assert verify_password(long_password, hashed) is True
        assert verify_password("a" * 72, hashed) is True

    def test_verify_empty_password(self):
        hashed = get_password_hash("testpassword123")
        assert verify_password("", hashed) is False

    def test_verify_against_malformed_hash(self):
        """A corrupt stored hash fails verification instead of raising"""
        assert verify_password("testpassword123", "not-a-bcrypt-hash") is False
        assert verify_password("testpassword123", "") is False


class TestAccessTokens:
    """Test JWT creation and decoding"""

    def test_create_and_decode(self):
        token = create_access_token({"sub": 42, "role": "instructor"})
        payload = decode_token(token)

        assert payload["sub"] == "42"
        assert payload["role"] == "instructor"
        assert payload["type"] == "access"
        assert "exp" in payload

    def test_expired_token_rejected(self, expired_token):
        with pytest.raises(UnauthenticatedError):
            decode_token(expired_token)

    def test_tampered_token_rejected(self):
        token = create_access_token({"sub": 1, "role": "student"})
        with pytest.raises(UnauthenticatedError):
            decode_token(token[:-4] + "abcd")

    def test_wrong_secret_rejected(self):
        token = jwt.encode(
            {"sub": "1", "role": "student", "type": "access"},
            "some-other-secret",
            algorithm=settings.JWT_ALGORITHM
        )
        with pytest.raises(UnauthenticatedError):
            decode_token(token)

    def test_wrong_token_type_rejected(self):
        token = jwt.encode(
            {"sub": "1", "role": "student", "type": "refresh"},
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM
        )
        with pytest.raises(UnauthenticatedError):
            decode_token(token)

    def test_custom_expiry(self):
        token = create_access_token({"sub": 1, "role": "admin"}, expires_delta=timedelta(minutes=5))
        assert decode_token(token)["sub"] == "1"


class TestIdNormalization:

    @pytest.mark.parametrize("value,expected", [
        (7, 7),
        ("7", 7),
        (" 12 ", 12),
        (0, 0),
        (-1, None),
        ("-1", None),
        ("abc", None),
        ("²", None),
        ("١٢", None),
        ("", None),
        (None, None),
        (True, None),
        (3.5, None),
    ])
    def test_normalize_id(self, value, expected):
        assert normalize_id(value) == expected

    def test_parse_role(self):
        assert parse_role("student") == Role.STUDENT
        assert parse_role("superuser") is None
        assert parse_role(None) is None


class TestResolveActor:
    """Bearer token -> Actor"""

    async def test_resolves_existing_student(self, db_session, student):
        token = create_access_token({"sub": student.id, "role": "student"})

        actor = await resolve_actor(db_session, token)

        assert actor == Actor(id=student.id, role=Role.STUDENT)
        assert actor.label == f"student:{student.id}"

    async def test_role_selects_account_table(self, db_session, student):
        """A student id presented with the instructor role does not resolve"""
        token = create_access_token({"sub": student.id, "role": "instructor"})

        with pytest.raises(UnauthenticatedError):
            await resolve_actor(db_session, token)

    async def test_deleted_account_rejected(self, db_session):
        token = create_access_token({"sub": 999, "role": "student"})

        with pytest.raises(UnauthenticatedError):
            await resolve_actor(db_session, token)

    @pytest.mark.parametrize("claims", [
        {"sub": "abc", "role": "student"},
        {"sub": 1, "role": "janitor"},
        {"role": "student"},
        {"sub": 1},
    ])
    async def test_malformed_claims_rejected(self, db_session, claims):
        token = create_access_token(claims)

        with pytest.raises(UnauthenticatedError):
            await resolve_actor(db_session, token)
