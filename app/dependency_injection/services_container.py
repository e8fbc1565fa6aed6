from dependency_injector import containers, providers

from app.core.config import Settings
from app.core.service.session.connection_manager import ConnectionManager
from app.core.service.session.session_registry import SessionRegistry
from app.core.service.webhook.webhook_notifier import WebhookNotifier


class Services(containers.DeclarativeContainer):
    """
    Container para serviços do relay.

    Inclui:
    - session_registry: Conexões ativas por conta
    - webhook_notifier: Envio de eventos ao webhook
    - connection_manager: Ciclo de vida das sessões
    """

    gateways = providers.DependenciesContainer()
    settings = providers.Dependency(instance_of=Settings)

    session_registry = providers.Singleton(SessionRegistry)

    webhook_notifier = providers.Singleton(
        WebhookNotifier,
        settings=settings
    )

    connection_manager = providers.Singleton(
        ConnectionManager,
        settings=settings,
        registry=session_registry,
        notifier=webhook_notifier,
        protocol_client=gateways.protocol_client,
        auth_store=gateways.auth_store,
        qr_encoder=gateways.qr_encoder,
    )
