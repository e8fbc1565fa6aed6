"""Fixtures compartilhadas dos testes do WhatsApp Relay."""

import pytest

from app.core.config import Settings


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        WEBHOOK_URL="http://webhook.test/events",
        WA_GATEWAY_URL="http://gateway.test",
        AUTH_STATE_DIR=str(tmp_path / "auth"),
        RECONNECT_DELAY_SECONDS=0.05,
    )
