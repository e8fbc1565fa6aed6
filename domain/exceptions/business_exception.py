from http import HTTPStatus


class BusinessException(Exception):
    def __init__(self, message: str, status_code: HTTPStatus = HTTPStatus.BAD_REQUEST):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(BusinessException):
    """Campo obrigatório ausente ou inválido na requisição."""

    def __init__(self, message: str):
        super().__init__(message, HTTPStatus.BAD_REQUEST)


class NotFoundError(BusinessException):
    """Operação sobre uma conta sem conexão registrada."""

    def __init__(self, message: str):
        super().__init__(message, HTTPStatus.NOT_FOUND)


class InternalError(BusinessException):
    """Falha inesperada (ex: erro ao enviar mensagem pelo protocolo)."""

    def __init__(self, message: str):
        super().__init__(message, HTTPStatus.INTERNAL_SERVER_ERROR)


class WebhookDeliveryError(BusinessException):
    """Falha na entrega de um evento ao webhook. Nunca chega ao cliente HTTP."""

    def __init__(self, message: str):
        super().__init__(message, HTTPStatus.BAD_GATEWAY)
