import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from app.core.config import Settings
from domain.dto.protocol import (
    ConnectionUpdate,
    DisconnectReason,
    LastDisconnect,
    ProtocolEvent,
    parse_protocol_event,
)
from infra.auth_state.file_auth_state import AuthState
from infra.protocol.base import ProtocolClient, ProtocolSession

logger = logging.getLogger(__name__)


class GatewaySession(ProtocolSession):
    """
    Sessão hospedada no gateway do protocolo.

    O stream de eventos é NDJSON ({"event": ..., "data": {...}} por linha).
    Se o stream terminar ou falhar sem um fechamento explícito, a sessão
    emite um connection.update "close" com CONNECTION_LOST.
    """

    def __init__(self, client: httpx.AsyncClient, account_id: str, session_id: str):
        self._client = client
        self.account_id = account_id
        self.session_id = session_id
        self._closed = False

    async def events(self) -> AsyncIterator[ProtocolEvent]:
        reason = "stream encerrado pelo gateway"
        try:
            async with self._client.stream(
                "GET", f"/sessions/{self.session_id}/events", timeout=None
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        event = parse_protocol_event(json.loads(line))
                    except (ValueError, TypeError) as e:
                        logger.warning(f"[GatewaySession] Evento inválido ignorado: {e}")
                        continue
                    if event is None:
                        continue
                    yield event
                    if isinstance(event, ConnectionUpdate) and event.connection == "close":
                        return
        except httpx.HTTPError as e:
            reason = str(e) or e.__class__.__name__
            logger.warning(f"[GatewaySession] Falha no stream de {self.account_id}: {reason}")

        if self._closed:
            return

        yield ConnectionUpdate(
            connection="close",
            last_disconnect=LastDisconnect(
                status_code=DisconnectReason.CONNECTION_LOST,
                message=reason,
            ),
        )

    async def send_text(self, jid: str, text: str) -> Optional[Dict[str, Any]]:
        response = await self._client.post(
            f"/sessions/{self.session_id}/messages",
            json={"jid": jid, "content": {"text": text}},
        )
        response.raise_for_status()
        return response.json() if response.content else None

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._client.delete(f"/sessions/{self.session_id}")
        except httpx.HTTPError as e:
            logger.warning(f"[GatewaySession] Erro ao encerrar sessão {self.session_id}: {e}")
        finally:
            await self._client.aclose()


class GatewayProtocolClient(ProtocolClient):
    """
    Cliente para o gateway do protocolo WhatsApp Web (sidecar Baileys/whatsmeow).

    Cada sessão usa o seu próprio httpx.AsyncClient, fechado em close().

    Exemplo:
        client = GatewayProtocolClient(settings)
        session = await client.open("acc1", auth_state)
        async for event in session.events():
            ...
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = settings.WA_GATEWAY_URL
        self.timeout = settings.WA_GATEWAY_TIMEOUT_SECONDS
        self._transport = transport

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def open(self, account_id: str, auth_state: AuthState) -> ProtocolSession:
        client = self._new_client()
        try:
            response = await client.post(
                "/sessions",
                json={"account_id": account_id, "creds": auth_state.creds},
            )
            response.raise_for_status()
            session_id = response.json()["session_id"]
        except Exception:
            await client.aclose()
            raise

        logger.info(f"[GatewayClient] Sessão {session_id} aberta para {account_id}")
        return GatewaySession(client, account_id, session_id)
