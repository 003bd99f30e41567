"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from goal_tracker.config import Settings

DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_settings(**overrides) -> Settings:
    values = {"secret_key": "x" * 32, "database_url": DATABASE_URL}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSecretKey:
    def test_generated_when_missing(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)

        first = Settings(_env_file=None, database_url=DATABASE_URL)
        second = Settings(_env_file=None, database_url=DATABASE_URL)

        assert len(first.secret_key) == 128
        assert first.secret_key != second.secret_key

    def test_short_key_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(secret_key="too-short")

    def test_salt_derived_from_key(self):
        assert make_settings().encryption_salt == make_settings().encryption_salt
        assert make_settings().encryption_salt != make_settings(secret_key="y" * 32).encryption_salt


class TestSettings:
    def test_postgres_url_uses_asyncpg(self):
        settings = make_settings(database_url="postgresql://u:p@localhost/goals")
        assert settings.database_url == "postgresql+asyncpg://u:p@localhost/goals"

    def test_production(self):
        assert make_settings(environment="production").is_production is True
        assert make_settings().is_production is False

    def test_redirect_uri(self):
        settings = make_settings(base_url="https://goals.example.com/")
        assert settings.redirect_uri_for("google") == "https://goals.example.com/google/callback"


class TestOidcProviders:
    """Tests for provider configuration from settings."""

    def test_none_configured(self, monkeypatch):
        for name in ["GOOGLE_CLIENT_ID", "MICROSOFT_CLIENT_ID"]:
            monkeypatch.delenv(name, raising=False)
        assert make_settings().oidc_providers == []

    def test_google(self):
        [google] = make_settings(
            google_client_id="gid", google_client_secret="gsecret"
        ).oidc_providers

        assert google.name == "google"
        assert google.issuer_url == "https://accounts.google.com"
        assert google.client_id == "gid"
        assert google.redirect_uri == "http://localhost:8000/google/callback"
        assert google.scopes == ("openid", "email")
        assert google.trust_discovered_issuer is False

    def test_microsoft_needs_tenant(self):
        settings = make_settings(
            microsoft_client_id="mid", microsoft_client_secret="msecret"
        )
        assert settings.oidc_providers == []

        [microsoft] = make_settings(
            microsoft_client_id="mid",
            microsoft_client_secret="msecret",
            microsoft_tenant_id="contoso",
        ).oidc_providers
        assert microsoft.issuer_url == "https://login.microsoftonline.com/contoso/v2.0"
        assert microsoft.trust_discovered_issuer is True

    @pytest.mark.parametrize("tenant", ["common", "Organizations", " consumers "])
    def test_microsoft_multi_tenant_alias_rejected(self, tenant: str):
        with pytest.raises(ValidationError, match="multi-tenant"):
            make_settings(microsoft_tenant_id=tenant)

    def test_microsoft_tenant_domain(self):
        [microsoft] = make_settings(
            microsoft_client_id="mid",
            microsoft_client_secret="msecret",
            microsoft_tenant_id="contoso.onmicrosoft.com",
        ).oidc_providers
        assert "/contoso.onmicrosoft.com/" in microsoft.issuer_url

    def test_incomplete_credentials_skipped(self):
        assert make_settings(google_client_id="gid").oidc_providers == []
