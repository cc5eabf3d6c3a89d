"""Tests for JWT verification and auth configuration."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from jose import jwt

from auth.src.config import DEV_SECRET_KEY, AuthConfig
from auth.src.token_verifier import Identity, JWTVerifier

SECRET = "verifier-test-secret"


@pytest.fixture
def jwt_verifier():
    return JWTVerifier(secret_key=SECRET, algorithm="HS256", token_ttl=timedelta(minutes=5))


@pytest.fixture
def fresh_auth_config():
    AuthConfig.reset()
    yield
    AuthConfig.reset()


def _encode(claims, secret=SECRET):
    return jwt.encode(claims, secret, algorithm="HS256")


def _exp(seconds=300):
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)


class TestVerifyToken:
    def test_issued_token_round_trips(self, jwt_verifier):
        token = jwt_verifier.issue_token(17, "Alice", email="alice@example.com")

        identity = jwt_verifier.verify_token(token)

        assert identity == Identity(user_id="17", username="Alice", email="alice@example.com")
        assert identity.to_author() == {"id": "17", "username": "Alice"}

    def test_bearer_prefix_accepted(self, jwt_verifier):
        token = jwt_verifier.issue_token("u1", "Alice")
        assert jwt_verifier.verify_token(f"Bearer {token}").user_id == "u1"

    def test_sub_claim_accepted(self, jwt_verifier):
        token = _encode({"sub": "u9", "nickname": "Niner", "exp": _exp()})

        identity = jwt_verifier.verify_token(token)

        assert identity.user_id == "u9"
        assert identity.username == "Niner"

    def test_username_falls_back_to_id(self, jwt_verifier):
        token = _encode({"userId": "u9", "exp": _exp()})
        assert jwt_verifier.verify_token(token).username == "u9"

    def test_expired(self, jwt_verifier):
        token = jwt_verifier.issue_token("u1", "Alice", expires_in=timedelta(seconds=-1))
        assert jwt_verifier.verify_token(token) is None

    def test_missing_exp_rejected(self, jwt_verifier):
        token = _encode({"userId": "u1", "username": "Alice"})
        assert jwt_verifier.verify_token(token) is None

    def test_missing_user_claim_rejected(self, jwt_verifier):
        token = _encode({"username": "Alice", "exp": _exp()})
        assert jwt_verifier.verify_token(token) is None

    def test_wrong_secret_rejected(self, jwt_verifier):
        token = _encode({"userId": "u1", "exp": _exp()}, secret="not-the-secret")
        assert jwt_verifier.verify_token(token) is None

    @pytest.mark.parametrize("token", [None, "", "   ", "Bearer ", "no-dots", "a.b", "a.b.c"])
    def test_malformed(self, jwt_verifier, token):
        assert jwt_verifier.verify_token(token) is None


class TestAuthConfig:
    def test_defaults_come_from_config(self, monkeypatch, fresh_auth_config):
        monkeypatch.setenv("JWT_SECRET_KEY", "from-env")
        monkeypatch.setenv("JWT_ACCESS_TOKEN_EXPIRE_DAYS", "3")

        verifier = JWTVerifier()
        token = jwt.encode({"userId": "u1", "exp": _exp()}, "from-env", algorithm="HS256")

        assert verifier.verify_token(token).user_id == "u1"
        assert AuthConfig().access_token_expire_days == 3

    def test_singleton(self, fresh_auth_config):
        assert AuthConfig() is AuthConfig()

    def test_secret_file(self, monkeypatch, tmp_path, fresh_auth_config):
        secret_file = tmp_path / "jwt_secret"
        secret_file.write_text("file-secret\n")
        monkeypatch.delenv("JWT_SECRET_KEY", raising=False)
        monkeypatch.delenv("JWT_SECRET", raising=False)
        monkeypatch.setenv("JWT_SECRET_KEY_FILE", str(secret_file))

        assert AuthConfig().jwt_secret_key == "file-secret"

    def test_dev_fallback_outside_production(self, monkeypatch, tmp_path, fresh_auth_config):
        monkeypatch.delenv("JWT_SECRET_KEY", raising=False)
        monkeypatch.delenv("JWT_SECRET", raising=False)
        monkeypatch.delenv("JWT_SECRET_KEY_FILE", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("ENVIRONMENT", "development")

        if Path("/run/secrets/jwt_secret").exists():
            pytest.skip("host provides a docker secret")
        config = AuthConfig()

        assert config.is_development
        assert config.jwt_secret_key == DEV_SECRET_KEY

    def test_production_requires_secret(self, monkeypatch, tmp_path, fresh_auth_config):
        monkeypatch.delenv("JWT_SECRET_KEY", raising=False)
        monkeypatch.delenv("JWT_SECRET", raising=False)
        monkeypatch.delenv("JWT_SECRET_KEY_FILE", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("ENVIRONMENT", "production")

        if Path("/run/secrets/jwt_secret").exists():
            pytest.skip("host provides a docker secret")
        with pytest.raises(ValueError):
            AuthConfig()
