import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from infra.auth_state.file_auth_state import AuthState
from infra.protocol.base import ProtocolSession

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(eq=False)
class ConnectionHandle:
    """Sessão viva (ou reconectando) de uma conta."""
    account_id: str
    session: ProtocolSession
    auth_state: AuthState
    state: ConnectionState = ConnectionState.CONNECTING
    consumer: Optional[asyncio.Task] = field(default=None, repr=False)


class SessionRegistry:
    """
    Mapa conta → conexão ativa.

    Vive apenas em memória: começa vazio e é esvaziado no shutdown.
    Só é alterado no event loop, por isso não usa locks.
    """

    def __init__(self):
        self._handles: Dict[str, ConnectionHandle] = {}

    def put(self, account_id: str, handle: ConnectionHandle) -> Optional[ConnectionHandle]:
        """
        Registra a conexão da conta, substituindo a anterior.

        Returns:
            Conexão substituída, se existia
        """
        previous = self._handles.get(account_id)
        self._handles[account_id] = handle
        return previous

    def get(self, account_id: str) -> Optional[ConnectionHandle]:
        return self._handles.get(account_id)

    def remove(self, account_id: str) -> Optional[ConnectionHandle]:
        return self._handles.pop(account_id, None)

    def contains(self, account_id: str) -> bool:
        return account_id in self._handles

    def size(self) -> int:
        return len(self._handles)

    def account_ids(self) -> List[str]:
        return list(self._handles)

    def drain(self) -> List[ConnectionHandle]:
        """Remove e retorna todas as conexões."""
        handles = list(self._handles.values())
        self._handles.clear()
        logger.info(f"[SessionRegistry] Registro esvaziado ({len(handles)} conexões)")
        return handles
