from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    version: int = 1
    disable_existing_loggers: bool = False
    formatters: dict = {
        "default": {
            "format": "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
        }
    }
    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "default",
        }
    }
    root: dict = {"level": "INFO", "handlers": ["console"]}


class Settings(BaseSettings):
    HOST: str = "0.0.0.0"
    PORT: int = Field(default=3000)
    ENVIRONMENT: str = Field(default="development")

    # Webhook de eventos (qr_generated, connected, message_received)
    WEBHOOK_URL: Optional[str] = None
    WEBHOOK_TIMEOUT_SECONDS: float = 10.0

    # Gateway do protocolo WhatsApp Web (sidecar Baileys/whatsmeow)
    WA_GATEWAY_URL: str = "http://localhost:8080"
    WA_GATEWAY_TIMEOUT_SECONDS: float = 30.0
    DEFAULT_JID_DOMAIN: str = "s.whatsapp.net"

    # Credenciais persistidas por conta: <AUTH_STATE_DIR>/auth_<account_id>/
    AUTH_STATE_DIR: str = "./auth"

    RECONNECT_DELAY_SECONDS: float = 3.0

    LOGGING: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
