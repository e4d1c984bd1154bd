"""
Local per-provider credential storage.

Keys are stored under "ai-api-key:<provider>". The presence of a
non-blank value gates whether a chat request is attempted at all.
"""

import json
import os
from pathlib import Path
from typing import Optional

from utils.logging import get_logger

logger = get_logger("ai_manager.credentials")


def credential_key(provider: str) -> str:
    return f"ai-api-key:{provider}"


class CredentialStore:
    """In-memory credential store."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._values: dict[str, str] = {}
        for provider, value in (initial or {}).items():
            self._values[credential_key(provider)] = value

    def get(self, provider: str) -> Optional[str]:
        """Return the trimmed key for a provider, or None when absent or blank."""
        value = self._values.get(credential_key(provider))
        if value and value.strip():
            return value.strip()
        return None

    def set(self, provider: str, api_key: str) -> None:
        self._values[credential_key(provider)] = api_key
        self._save()

    def clear(self, provider: str) -> None:
        self._values.pop(credential_key(provider), None)
        self._save()

    def _save(self) -> None:
        pass


class FileCredentialStore(CredentialStore):
    """
    Credential store persisted as a JSON file on the client machine.

    The file is created with owner-only permissions.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path).expanduser()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read credential store {self.path}: {e}")
            return
        if isinstance(data, dict):
            self._values = {k: v for k, v in data.items() if isinstance(v, str)}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(self._values, indent=2), encoding="utf-8")
        os.chmod(tmp_path, 0o600)
        tmp_path.replace(self.path)
