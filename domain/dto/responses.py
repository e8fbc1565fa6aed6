from pydantic import BaseModel


class ServerStatusResponse(BaseModel):
    """Estado do servidor."""
    status: str
    message: str
    connections: int


class ConnectResponse(BaseModel):
    success: bool
    message: str


class ConnectionStatusResponse(BaseModel):
    connected: bool


class SendMessageResponse(BaseModel):
    success: bool
