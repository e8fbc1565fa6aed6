from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Optional

from domain.dto.protocol import ProtocolEvent
from infra.auth_state.file_auth_state import AuthState


class ProtocolSession(ABC):
    """
    Sessão aberta no protocolo WhatsApp Web para uma conta.

    events() é o canal ordenado de eventos da sessão; deve ser consumido
    por uma única task. A iteração termina depois do evento de fechamento.
    """

    account_id: str

    @abstractmethod
    def events(self) -> AsyncIterator[ProtocolEvent]:
        ...

    @abstractmethod
    async def send_text(self, jid: str, text: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


class ProtocolClient(ABC):
    """Fábrica de sessões do protocolo."""

    @abstractmethod
    async def open(self, account_id: str, auth_state: AuthState) -> ProtocolSession:
        ...
