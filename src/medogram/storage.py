"""
Durable credential storage. One string value under a fixed key.
"""

import json
from pathlib import Path
from typing import Optional, Protocol

STORAGE_KEY = "authToken"
DEFAULT_STORE_FILE = Path.home() / ".medogram" / "config.json"


class TokenStore(Protocol):
    def get(self) -> Optional[str]: ...

    def set(self, token: str) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStore:
    """Process-local store. Survives as long as the object does."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileTokenStore:
    """JSON file store. Other keys in the file are left as they are."""

    def __init__(self, path: Path = DEFAULT_STORE_FILE):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict:
        try:
            data = json.loads(self._path.read_text())
        except (FileNotFoundError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2))

    def get(self) -> Optional[str]:
        token = self._load().get(STORAGE_KEY)
        return token if isinstance(token, str) and token else None

    def set(self, token: str) -> None:
        data = self._load()
        data[STORAGE_KEY] = token
        self._save(data)

    def clear(self) -> None:
        data = self._load()
        if STORAGE_KEY in data:
            del data[STORAGE_KEY]
            self._save(data)
