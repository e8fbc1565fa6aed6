import asyncio
import logging
from typing import List, Set

from app.core.config import Settings
from app.core.service.session.session_registry import (
    ConnectionHandle,
    ConnectionState,
    SessionRegistry,
)
from app.core.service.webhook.webhook_notifier import WebhookNotifier
from domain.dto.events import EventPayload
from domain.dto.protocol import (
    ConnectionUpdate,
    CredsUpdate,
    DisconnectReason,
    LastDisconnect,
    MessagesUpsert,
    ProtocolEvent,
)
from domain.exceptions.business_exception import InternalError, NotFoundError
from infra.auth_state.file_auth_state import FileAuthStateStore
from infra.protocol.base import ProtocolClient
from infra.qr.qr_encoder import QRCodeEncoder

logger = logging.getLogger(__name__)


def to_jid(to: str, domain: str = "s.whatsapp.net") -> str:
    """
    Normaliza um destino para jid do protocolo.

    Args:
        to: Número (5511999999999) ou jid completo (5511999999999@s.whatsapp.net)
        domain: Domínio adicionado quando não há "@"

    Returns:
        Jid endereçável
    """
    return to if "@" in to else f"{to}@{domain}"


def _reconnect_task_name(account_id: str) -> str:
    return f"wa-reconnect-{account_id}"


class ConnectionManager:
    """
    Ciclo de vida das conexões WhatsApp de cada conta.

    Estados por conta: connecting → open → closed. Um fechamento
    recuperável agenda uma única reconexão após RECONNECT_DELAY_SECONDS;
    um logout remove a conta do registro.

    Cada sessão tem uma task dedicada que consome o canal de eventos em
    ordem e repassa QR, conexão e mensagens para o webhook.

    Exemplo:
        manager = ConnectionManager(...)
        await manager.open("acc1")
        await manager.send_text("acc1", "5511999999999", "Olá!")
    """

    def __init__(
        self,
        settings: Settings,
        registry: SessionRegistry,
        notifier: WebhookNotifier,
        protocol_client: ProtocolClient,
        auth_store: FileAuthStateStore,
        qr_encoder: QRCodeEncoder,
    ):
        self.settings = settings
        self.registry = registry
        self.notifier = notifier
        self.protocol_client = protocol_client
        self.auth_store = auth_store
        self.qr_encoder = qr_encoder

        self.reconnect_delay = settings.RECONNECT_DELAY_SECONDS
        self.jid_domain = settings.DEFAULT_JID_DOMAIN

        self._reconnects: Set[asyncio.Task] = set()

    def is_connected(self, account_id: str) -> bool:
        return self.registry.get(account_id) is not None

    def has_pending_reconnect(self, account_id: str) -> bool:
        return bool(self._reconnect_tasks(account_id))

    def _reconnect_tasks(self, account_id: str) -> List[asyncio.Task]:
        name = _reconnect_task_name(account_id)
        return [t for t in self._reconnects if t.get_name() == name and not t.done()]

    async def open(self, account_id: str) -> ConnectionHandle:
        """
        Abre uma sessão para a conta e começa a consumir seus eventos.

        Retorna assim que a sessão é criada, sem esperar o estado "open".
        Uma reconexão pendente para a mesma conta é cancelada.

        Args:
            account_id: Identificador da conta

        Returns:
            Conexão registrada
        """
        await self._cancel_reconnect(account_id)
        return await self._open(account_id)

    async def _open(self, account_id: str) -> ConnectionHandle:
        auth_state = await self.auth_store.load(account_id)
        session = await self.protocol_client.open(account_id, auth_state)

        handle = ConnectionHandle(account_id=account_id, session=session, auth_state=auth_state)
        previous = self.registry.put(account_id, handle)
        handle.consumer = asyncio.create_task(
            self._consume(handle), name=f"wa-events-{account_id}"
        )

        logger.info(
            f"[ConnectionManager] Conexão iniciada para {account_id} "
            f"(credenciais {'existentes' if auth_state.is_registered else 'novas'})"
        )

        if previous is not None:
            logger.info(f"[ConnectionManager] Conexão anterior de {account_id} substituída")
            await self._dispose(previous)

        return handle

    async def send_text(self, account_id: str, to: str, text: str) -> None:
        """
        Envia texto simples pela sessão da conta.

        Raises:
            NotFoundError: conta sem conexão registrada
            InternalError: falha no envio pelo protocolo
        """
        handle = self.registry.get(account_id)
        if handle is None:
            raise NotFoundError("Conta não conectada")

        jid = to_jid(to, self.jid_domain)
        try:
            await handle.session.send_text(jid, text)
        except Exception as e:
            logger.exception(f"[ConnectionManager] Erro enviando mensagem de {account_id}: {e}")
            raise InternalError(str(e) or e.__class__.__name__) from e

        logger.info(f"[ConnectionManager] Mensagem enviada de {account_id} para {jid}")

    async def shutdown(self) -> None:
        """Cancela reconexões pendentes, fecha todas as sessões e esvazia o registro."""
        while self._reconnects:
            pending = list(self._reconnects)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            self._reconnects.difference_update(pending)

        for handle in self.registry.drain():
            await self._dispose(handle)

    async def _consume(self, handle: ConnectionHandle) -> None:
        account_id = handle.account_id
        try:
            async for event in handle.session.events():
                if self.registry.get(account_id) is not handle:
                    logger.info(
                        f"[ConnectionManager] Sessão substituída de {account_id}, "
                        "eventos restantes ignorados"
                    )
                    return
                try:
                    await self._handle_event(handle, event)
                except Exception as e:
                    logger.exception(
                        f"[ConnectionManager] Erro processando evento de {account_id}: {e}"
                    )
                # sessão fechada não emite mais eventos úteis
                if isinstance(event, ConnectionUpdate) and event.connection == "close":
                    return
            reason = "canal de eventos encerrado sem fechamento"
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"[ConnectionManager] Canal de eventos de {account_id} falhou: {e}")
            reason = str(e) or e.__class__.__name__

        # canal perdido sem evento de fechamento conta como queda de conexão
        if self.registry.get(account_id) is handle:
            self._on_close(
                handle,
                ConnectionUpdate(
                    connection="close",
                    last_disconnect=LastDisconnect(
                        status_code=DisconnectReason.CONNECTION_LOST,
                        message=reason,
                    ),
                ),
            )

    async def _handle_event(self, handle: ConnectionHandle, event: ProtocolEvent) -> None:
        if isinstance(event, ConnectionUpdate):
            if event.qr:
                await self._on_qr(handle, event.qr)

            if event.connection == "close":
                self._on_close(handle, event)
            elif event.connection == "open":
                await self._on_open(handle)
            elif event.connection == "connecting":
                handle.state = ConnectionState.CONNECTING

        elif isinstance(event, CredsUpdate):
            await handle.auth_state.save_creds(event.creds)

        elif isinstance(event, MessagesUpsert):
            await self._on_messages(handle, event)

    async def _on_qr(self, handle: ConnectionHandle, qr: str) -> None:
        qr_code = self.qr_encoder.to_data_url(qr)
        await self.notifier.notify(EventPayload.qr_generated(handle.account_id, qr_code))

    async def _on_open(self, handle: ConnectionHandle) -> None:
        handle.state = ConnectionState.OPEN
        logger.info(f"[ConnectionManager] WhatsApp conectado: {handle.account_id}")
        await self.notifier.notify(EventPayload.connected(handle.account_id))

    def _on_close(self, handle: ConnectionHandle, event: ConnectionUpdate) -> None:
        handle.state = ConnectionState.CLOSED
        account_id = handle.account_id
        status_code = event.last_disconnect.status_code if event.last_disconnect else None

        if event.is_recoverable_close():
            logger.info(
                f"[ConnectionManager] Conexão de {account_id} fechada (status={status_code}), "
                f"reconectando em {self.reconnect_delay}s"
            )
            self._schedule_reconnect(handle)
        else:
            self.registry.remove(account_id)
            logger.info(
                f"[ConnectionManager] Conexão de {account_id} encerrada "
                f"(status={status_code}), removida do registro"
            )

    async def _on_messages(self, handle: ConnectionHandle, event: MessagesUpsert) -> None:
        suffix = f"@{self.jid_domain}"
        for msg in event.messages:
            if msg.message is None or msg.key.from_me:
                continue

            text = msg.message.get_text()
            if not text:
                continue

            sender = msg.key.remote_jid.replace(suffix, "")
            logger.info(f"[ConnectionManager] Mensagem de {sender} para {handle.account_id}")

            await self.notifier.notify(
                EventPayload.message_received(handle.account_id, sender, text)
            )

    def _schedule_reconnect(self, handle: ConnectionHandle) -> None:
        task = asyncio.create_task(
            self._reconnect_later(handle), name=_reconnect_task_name(handle.account_id)
        )
        self._reconnects.add(task)
        task.add_done_callback(self._reconnects.discard)

    async def _cancel_reconnect(self, account_id: str) -> None:
        pending = self._reconnect_tasks(account_id)
        if not pending:
            return
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        logger.info(f"[ConnectionManager] Reconexão pendente de {account_id} cancelada")

    async def _reconnect_later(self, stale: ConnectionHandle) -> None:
        """Reabre a conta após o atraso; a task fica pendente até o _open terminar."""
        account_id = stale.account_id
        await asyncio.sleep(self.reconnect_delay)

        try:
            await self._open(account_id)
        except Exception as e:
            logger.exception(f"[ConnectionManager] Falha ao reconectar {account_id}: {e}")
            if self.registry.get(account_id) is stale:
                self.registry.remove(account_id)

    async def _dispose(self, handle: ConnectionHandle) -> None:
        consumer = handle.consumer
        if consumer is not None and consumer is not asyncio.current_task() and not consumer.done():
            consumer.cancel()
            await asyncio.gather(consumer, return_exceptions=True)

        try:
            await handle.session.close()
        except Exception as e:
            logger.warning(f"[ConnectionManager] Erro ao fechar sessão de {handle.account_id}: {e}")
