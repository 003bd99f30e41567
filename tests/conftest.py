"""Pytest fixtures for goal tracker tests.

This module provides test fixtures that ensure:
1. No external calls are made (the OIDC provider is an httpx.MockTransport)
2. Route tests use an in-memory user store; only the repository and CLI
   tests touch a (SQLite) database
3. Isolated test environment with controlled configuration
"""

import os
from typing import Any

import pytest

# Set test environment BEFORE importing application modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-at-least-32-characters-long")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from jose import jwk

from goal_tracker.api.app import create_app
from goal_tracker.api.dependencies import AuthComponents, get_user_lookup
from goal_tracker.auth.passwords import hash_password
from goal_tracker.auth.providers import ProviderRegistry
from goal_tracker.auth.session import SessionCodec
from goal_tracker.auth.state import AuthStateCodec
from goal_tracker.config import ProviderConfig, Settings
from support import (
    CLIENT_ID,
    CLIENT_SECRET,
    ISSUER,
    KEY_ID,
    SECRET_KEY,
    FakeProvider,
    FakeUser,
    FakeUserStore,
)


# =============================================================================
# Test Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset settings cache before each test to ensure clean state."""
    from goal_tracker.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Users
# =============================================================================


@pytest.fixture(scope="session")
def alice_password_hash() -> str:
    return hash_password("correct horse battery staple", rounds=4)


@pytest.fixture
def alice(alice_password_hash: str) -> FakeUser:
    return FakeUser(
        id=1,
        username="alice",
        hashed_password=alice_password_hash,
        email="alice@example.com",
    )


@pytest.fixture
def sso_only_user() -> FakeUser:
    """A user with password login disabled."""
    return FakeUser(id=2, username="bob", hashed_password=None, email="bob@example.com")


@pytest.fixture
def user_store(alice: FakeUser, sso_only_user: FakeUser) -> FakeUserStore:
    return FakeUserStore([alice, sso_only_user])


# =============================================================================
# OIDC Provider
# =============================================================================


@pytest.fixture(scope="session")
def signing_key() -> dict[str, Any]:
    """RSA key pair: PEM private key for signing, JWK public key for the JWKS."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = KEY_ID
    public_jwk["use"] = "sig"
    return {"private_pem": private_pem, "public_jwk": public_jwk}


@pytest.fixture
def fake_provider(signing_key: dict[str, Any]) -> FakeProvider:
    return FakeProvider(signing_key)


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(
        name="google",
        issuer_url=ISSUER,
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        redirect_uri="http://testserver/google/callback",
    )


@pytest.fixture
def registry(provider_config: ProviderConfig, fake_provider: FakeProvider) -> ProviderRegistry:
    return ProviderRegistry(
        [provider_config], timeout=5.0, transport=fake_provider.transport
    )


# =============================================================================
# Codecs and App
# =============================================================================


@pytest.fixture(scope="session")
def fernet() -> Fernet:
    return Fernet(Fernet.generate_key())


@pytest.fixture
def session_codec() -> SessionCodec:
    return SessionCodec(SECRET_KEY, max_age_seconds=3600, cookie_name="user")


@pytest.fixture
def auth_state_codec(fernet: Fernet) -> AuthStateCodec:
    return AuthStateCodec(fernet, max_age_seconds=600, cookie_name="auth_state")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        secret_key=SECRET_KEY,
        database_url="sqlite+aiosqlite:///:memory:",
        base_url="http://testserver",
    )


@pytest.fixture
def app(
    settings: Settings,
    session_codec: SessionCodec,
    auth_state_codec: AuthStateCodec,
    registry: ProviderRegistry,
    user_store: FakeUserStore,
):
    app = create_app(
        settings,
        auth=AuthComponents(
            session_codec=session_codec,
            auth_state_codec=auth_state_codec,
            registry=registry,
        ),
    )
    app.dependency_overrides[get_user_lookup] = lambda: user_store
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
