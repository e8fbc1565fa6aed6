from enum import Enum, IntEnum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class DisconnectReason(IntEnum):
    """Códigos de desconexão do protocolo (mesma numeração do Baileys)."""
    CONNECTION_CLOSED = 428
    CONNECTION_LOST = 408
    CONNECTION_REPLACED = 440
    TIMED_OUT = 408
    LOGGED_OUT = 401
    BAD_SESSION = 500
    RESTART_REQUIRED = 515
    MULTIDEVICE_MISMATCH = 411


class ProtocolEventType(str, Enum):
    CONNECTION_UPDATE = "connection.update"
    CREDS_UPDATE = "creds.update"
    MESSAGES_UPSERT = "messages.upsert"


class _ProtocolModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LastDisconnect(_ProtocolModel):
    """Motivo do último fechamento da conexão."""
    status_code: Optional[int] = Field(None, alias="statusCode")
    message: Optional[str] = None


class ConnectionUpdate(_ProtocolModel):
    """
    Atualização de estado da conexão.

    Um mesmo evento pode carregar um QR, uma mudança de estado ou ambos.
    """
    connection: Optional[Literal["connecting", "open", "close"]] = None
    qr: Optional[str] = None
    last_disconnect: Optional[LastDisconnect] = Field(None, alias="lastDisconnect")

    def is_recoverable_close(self) -> bool:
        """
        True quando o fechamento deve disparar reconexão.

        Só reconecta se houver um código de desconexão e ele não for logout.
        Sem informação de desconexão a sessão é tratada como encerrada.
        """
        if self.last_disconnect is None or self.last_disconnect.status_code is None:
            return False
        return self.last_disconnect.status_code != DisconnectReason.LOGGED_OUT


class CredsUpdate(_ProtocolModel):
    """Credenciais atualizadas pelo protocolo; devem ser persistidas."""
    creds: Dict[str, Any] = Field(default_factory=dict)


class MessageKey(_ProtocolModel):
    remote_jid: str = Field(..., alias="remoteJid")
    from_me: bool = Field(False, alias="fromMe")
    id: Optional[str] = None


class ExtendedTextMessage(_ProtocolModel):
    text: Optional[str] = None


class MessageContent(_ProtocolModel):
    conversation: Optional[str] = None
    extended_text_message: Optional[ExtendedTextMessage] = Field(
        None, alias="extendedTextMessage"
    )

    def get_text(self) -> Optional[str]:
        """Texto da mensagem, simples ou estendida."""
        if self.conversation:
            return self.conversation
        if self.extended_text_message and self.extended_text_message.text:
            return self.extended_text_message.text
        return None


class WAMessage(_ProtocolModel):
    key: MessageKey
    message: Optional[MessageContent] = None
    push_name: Optional[str] = Field(None, alias="pushName")


class MessagesUpsert(_ProtocolModel):
    """Lote de mensagens recebidas (ou enviadas por este mesmo número)."""
    messages: List[WAMessage] = Field(default_factory=list)


ProtocolEvent = Union[ConnectionUpdate, CredsUpdate, MessagesUpsert]

_EVENT_MODELS = {
    ProtocolEventType.CONNECTION_UPDATE.value: ConnectionUpdate,
    ProtocolEventType.CREDS_UPDATE.value: CredsUpdate,
    ProtocolEventType.MESSAGES_UPSERT.value: MessagesUpsert,
}


def parse_protocol_event(raw: Dict[str, Any]) -> Optional[ProtocolEvent]:
    """
    Converte um evento bruto do gateway ({"event": ..., "data": {...}}).

    Returns:
        Evento tipado ou None se o tipo não for conhecido
    """
    model = _EVENT_MODELS.get(raw.get("event"))
    if model is None:
        return None
    return model.model_validate(raw.get("data") or {})
