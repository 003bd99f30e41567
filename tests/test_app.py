"""Tests for the application factory and its lifespan."""

from fastapi.testclient import TestClient

from goal_tracker.api.app import create_app
from goal_tracker.api.dependencies import AuthComponents
from goal_tracker.auth.providers import ProviderRegistry
from goal_tracker.auth.session import SessionCodec
from goal_tracker.auth.state import AuthStateCodec
from goal_tracker.config import Settings
from goal_tracker.database import connection
from support import SECRET_KEY


class TestLifespan:
    """The database opened at startup comes from the settings the app was built with."""

    def test_uses_settings_passed_to_create_app(
        self,
        tmp_path,
        session_codec: SessionCodec,
        auth_state_codec: AuthStateCodec,
        registry: ProviderRegistry,
    ):
        settings = Settings(
            _env_file=None,
            secret_key=SECRET_KEY,
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'lifespan.db'}",
        )
        app = create_app(
            settings,
            auth=AuthComponents(
                session_codec=session_codec,
                auth_state_codec=auth_state_codec,
                registry=registry,
            ),
        )

        with TestClient(app) as client:
            assert connection._engine is not None
            assert connection._engine.url.database.endswith("lifespan.db")
            assert client.get("/health").json()["status"] == "healthy"

        assert connection._engine is None

    def test_settings_kept_on_app_state(self, app, settings: Settings):
        assert app.state.settings is settings
