import logging
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from app.core.service.session.connection_manager import ConnectionManager
from app.core.service.session.session_registry import SessionRegistry
from app.dependency_injection.application_container import Application
from domain.dto.requests import ConnectBody, SendMessageBody
from domain.dto.responses import (
    ConnectionStatusResponse,
    ConnectResponse,
    SendMessageResponse,
    ServerStatusResponse,
)
from domain.exceptions.business_exception import (
    BusinessException,
    InternalError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["whatsapp"])


@router.get("/", response_model=ServerStatusResponse)
@inject
def server_status(
    registry: SessionRegistry = Depends(Provide[Application.services.session_registry]),
):
    """Liveness do servidor e quantidade de contas registradas."""
    return ServerStatusResponse(
        status="running",
        message="WhatsApp Relay Server",
        connections=registry.size(),
    )


@router.post("/connect", response_model=ConnectResponse)
@inject
async def connect(
    body: Optional[ConnectBody] = None,
    manager: ConnectionManager = Depends(Provide[Application.services.connection_manager]),
):
    """
    Inicia a conexão de uma conta.

    Retorna assim que a sessão é criada; o QR e o estado da conexão
    chegam ao webhook como eventos (qr_generated, connected).

    Raises:
        ValidationError: account_id ausente
        InternalError: falha ao abrir a sessão
    """
    body = body or ConnectBody()
    if not body.account_id:
        raise ValidationError("account_id requerido")

    logger.info(f"[ControlAPI] Iniciando conexão para: {body.account_id}")

    try:
        await manager.open(body.account_id)
    except BusinessException:
        raise
    except Exception as e:
        logger.exception(f"[ControlAPI] Erro conectando {body.account_id}: {e}")
        raise InternalError(str(e) or e.__class__.__name__) from e

    return ConnectResponse(success=True, message="Conexão iniciada. Escaneie o QR.")


@router.get("/status/{account_id}", response_model=ConnectionStatusResponse)
@inject
def connection_status(
    account_id: str,
    manager: ConnectionManager = Depends(Provide[Application.services.connection_manager]),
):
    """Indica se a conta tem uma conexão registrada."""
    return ConnectionStatusResponse(connected=manager.is_connected(account_id))


@router.post("/send-message", response_model=SendMessageResponse)
@inject
async def send_message(
    body: Optional[SendMessageBody] = None,
    manager: ConnectionManager = Depends(Provide[Application.services.connection_manager]),
):
    """
    Envia uma mensagem de texto por uma conta conectada.

    O destino pode ser só o número; o domínio padrão é adicionado.

    Raises:
        NotFoundError: conta sem conexão registrada
        ValidationError: to ou message ausentes
        InternalError: falha no envio
    """
    body = body or SendMessageBody()
    if not body.account_id or not manager.is_connected(body.account_id):
        raise NotFoundError("Conta não conectada")

    if not body.to or body.message is None:
        raise ValidationError("to e message requeridos")

    await manager.send_text(body.account_id, body.to, body.message)

    return SendMessageResponse(success=True)
