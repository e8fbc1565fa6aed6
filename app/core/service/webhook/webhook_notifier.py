import logging
from typing import Optional

import httpx

from app.core.config import Settings
from domain.dto.events import EventPayload
from domain.exceptions.business_exception import WebhookDeliveryError

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """
    Envia eventos das sessões para o webhook configurado.

    Entrega best-effort: uma tentativa por evento, sem retry. Falhas são
    registradas em log e nunca propagadas, para que uma indisponibilidade
    do webhook não afete as sessões.

    Requisitos:
    - WEBHOOK_URL: endpoint que recebe os eventos

    Exemplo:
        notifier = WebhookNotifier(settings)
        await notifier.notify(EventPayload.connected("acc1"))
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Inicializa o notificador.

        Args:
            settings: Configurações da aplicação
            transport: Transport httpx alternativo (usado em testes)
        """
        self.webhook_url = settings.WEBHOOK_URL
        self.timeout = settings.WEBHOOK_TIMEOUT_SECONDS
        self._transport = transport

        self.enabled = bool(self.webhook_url)

        if not self.enabled:
            logger.warning(
                "[WebhookNotifier] Webhook desabilitado. Configure WEBHOOK_URL."
            )

    async def notify(self, payload: EventPayload) -> bool:
        """
        Envia um evento ao webhook.

        Args:
            payload: Evento a enviar

        Returns:
            True se o webhook aceitou o evento
        """
        if not self.enabled:
            logger.warning(
                f"[WebhookNotifier] Webhook desabilitado, evento {payload.event_type} descartado"
            )
            return False

        try:
            await self._deliver(payload)
        except WebhookDeliveryError as e:
            logger.error(f"[WebhookNotifier] Erro notificando webhook: {e.message}")
            return False

        logger.info(f"[WebhookNotifier] Webhook notificado: {payload.event_type}")
        return True

    async def _deliver(self, payload: EventPayload) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=payload.model_dump())
        except httpx.TimeoutException as e:
            raise WebhookDeliveryError(f"timeout ao enviar {payload.event_type}") from e
        except httpx.HTTPError as e:
            raise WebhookDeliveryError(str(e) or e.__class__.__name__) from e

        if response.is_error:
            raise WebhookDeliveryError(
                f"status {response.status_code} para {payload.event_type}: {response.text[:200]}"
            )
