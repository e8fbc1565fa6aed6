from dependency_injector import containers, providers

from app.core.config import Settings
from app.dependency_injection.gateways_container import Gateways
from app.dependency_injection.services_container import Services


class Application(containers.DeclarativeContainer):
    """
    Container raiz da aplicação.

    Estrutura:
    - settings: Configurações globais
    - gateways: Clientes de infraestrutura (gateway do protocolo, credenciais, QR)
    - services: Registro de sessões, webhook e ciclo de vida das conexões
    """

    settings = providers.Singleton(Settings)

    gateways = providers.Container(
        Gateways,
        settings=settings,
    )

    services = providers.Container(
        Services,
        settings=settings,
        gateways=gateways,
    )
