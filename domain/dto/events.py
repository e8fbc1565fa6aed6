from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class WebhookEventType(str, Enum):
    QR_GENERATED = "qr_generated"
    CONNECTED = "connected"
    MESSAGE_RECEIVED = "message_received"


class EventPayload(BaseModel):
    """
    Evento enviado ao webhook.

    Estrutura:
    {
        "event_type": "message_received",
        "data": {
            "account_id": "acc1",
            "from": "5511999999999",
            "message": "Olá",
            "timestamp": "2024-01-01T12:00:00+00:00"
        }
    }
    """
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    event_type: WebhookEventType
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def qr_generated(cls, account_id: str, qr_code: str) -> "EventPayload":
        return cls(
            event_type=WebhookEventType.QR_GENERATED,
            data={"account_id": account_id, "qr_code": qr_code},
        )

    @classmethod
    def connected(cls, account_id: str) -> "EventPayload":
        return cls(
            event_type=WebhookEventType.CONNECTED,
            data={"account_id": account_id},
        )

    @classmethod
    def message_received(cls, account_id: str, sender: str, message: str) -> "EventPayload":
        return cls(
            event_type=WebhookEventType.MESSAGE_RECEIVED,
            data={
                "account_id": account_id,
                "from": sender,
                "message": message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
