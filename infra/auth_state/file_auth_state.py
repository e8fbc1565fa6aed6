from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

from app.core.config import Settings

logger = logging.getLogger(__name__)

CREDS_FILE = "creds.json"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class AuthState:
    """
    Credenciais de uma conta, carregadas do disco.

    O protocolo chama save_creds a cada creds.update; o conteúdo é opaco
    para o relay e apenas gravado como JSON.
    """

    def __init__(self, account_id: str, creds: Optional[Dict[str, Any]], store: "FileAuthStateStore"):
        self.account_id = account_id
        self.creds = creds
        self._store = store

    @property
    def is_registered(self) -> bool:
        """True se já existe sessão pareada (não precisa de QR)."""
        return bool(self.creds)

    async def save_creds(self, creds: Dict[str, Any]) -> None:
        self.creds = creds
        await self._store.save(self.account_id, creds)


class FileAuthStateStore:
    """
    Armazenamento de credenciais em disco, um diretório por conta.

    Layout:
        <AUTH_STATE_DIR>/auth_<account_id>/creds.json
    """

    def __init__(self, settings: Settings):
        self.base_dir = Path(settings.AUTH_STATE_DIR)

    def account_dir(self, account_id: str) -> Path:
        safe_id = _UNSAFE_CHARS.sub("_", account_id)
        return self.base_dir / f"auth_{safe_id}"

    async def load(self, account_id: str) -> AuthState:
        creds = await asyncio.to_thread(self._read, account_id)
        return AuthState(account_id, creds, self)

    async def save(self, account_id: str, creds: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, account_id, creds)
        logger.debug(f"[AuthState] Credenciais salvas para {account_id}")

    def _read(self, account_id: str) -> Optional[Dict[str, Any]]:
        path = self.account_dir(account_id) / CREDS_FILE
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(f"[AuthState] Arquivo de credenciais corrompido: {path}")
            return None

    def _write(self, account_id: str, creds: Dict[str, Any]) -> None:
        folder = self.account_dir(account_id)
        folder.mkdir(parents=True, exist_ok=True)
        tmp_path = folder / f"{CREDS_FILE}.tmp"
        tmp_path.write_text(json.dumps(creds), encoding="utf-8")
        tmp_path.replace(folder / CREDS_FILE)
