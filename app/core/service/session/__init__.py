"""
Sessões WhatsApp por conta.

Inclui:
- SessionRegistry: Mapa conta → conexão ativa
- ConnectionManager: Abertura, eventos e reconexão das sessões
"""

from app.core.service.session.connection_manager import ConnectionManager
from app.core.service.session.session_registry import (
    ConnectionHandle,
    ConnectionState,
    SessionRegistry,
)

__all__ = ["ConnectionHandle", "ConnectionManager", "ConnectionState", "SessionRegistry"]
