from typing import Optional

from pydantic import BaseModel, Field


class ConnectBody(BaseModel):
    """Requisição para iniciar a conexão de uma conta."""
    account_id: Optional[str] = Field(None, description="Identificador da conta WhatsApp")


class SendMessageBody(BaseModel):
    """Requisição para enviar mensagem de texto por uma conta conectada."""
    account_id: Optional[str] = Field(None, description="Conta que envia a mensagem")
    to: Optional[str] = Field(None, description="Destino (ex: 5511999999999 ou jid completo)")
    message: Optional[str] = Field(None, description="Conteúdo da mensagem")
