import base64
import io

import qrcode


class QRCodeEncoder:
    """Renderiza o desafio QR do pareamento como data URL PNG."""

    def to_data_url(self, qr: str) -> str:
        buffer = io.BytesIO()
        qrcode.make(qr).save(buffer)
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"
