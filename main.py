import logging.config
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.dependency_injection.application_container import Application
from domain.exceptions.business_exception import BusinessException, ValidationError
from interface.api import control_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.container.settings()
    logger.info(f"Servidor WhatsApp Relay iniciando na porta {settings.PORT}")
    logger.info(f"Webhook URL: {settings.WEBHOOK_URL}")
    yield
    await app.container.services.connection_manager().shutdown()
    logger.info("Conexões encerradas")


async def business_exception_handler(request: Request, exc: BusinessException) -> JSONResponse:
    return JSONResponse(status_code=int(exc.status_code), content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Corpo inválido (JSON malformado, tipos errados) vira ValidationError 400."""
    details = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        details.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return await business_exception_handler(
        request, ValidationError("; ".join(details) or "requisição inválida")
    )


def create_app(container: Optional[Application] = None) -> FastAPI:
    """
    Cria e configura a aplicação FastAPI.

    Args:
        container: Container já configurado (ex: com providers sobrescritos em testes)

    Returns:
        FastAPI: Aplicação configurada
    """
    container = container or Application()
    settings = container.settings()
    logging.config.dictConfig(settings.LOGGING.model_dump())

    app = FastAPI(
        title="WhatsApp Relay API",
        version="1.0.0",
        description="Relay de sessões WhatsApp Web com eventos via webhook",
        lifespan=lifespan,
    )

    app.container = container

    container.wire(modules=[control_router])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BusinessException, business_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(control_router.router)

    return app


app = create_app()

if __name__ == "__main__":
    settings = app.container.settings()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
