from dependency_injector import containers, providers

from app.core.config import Settings
from infra.auth_state.file_auth_state import FileAuthStateStore
from infra.protocol.gateway_client import GatewayProtocolClient
from infra.qr.qr_encoder import QRCodeEncoder


class Gateways(containers.DeclarativeContainer):
    """
    Container para clientes de infraestrutura (gateways).

    Inclui:
    - protocol_client: Cliente do gateway do protocolo WhatsApp Web
    - auth_store: Credenciais persistidas por conta
    - qr_encoder: Renderização do QR de pareamento
    """

    settings = providers.Dependency(instance_of=Settings)

    protocol_client = providers.Singleton(
        GatewayProtocolClient,
        settings=settings
    )

    auth_store = providers.Singleton(
        FileAuthStateStore,
        settings=settings
    )

    qr_encoder = providers.Singleton(QRCodeEncoder)
