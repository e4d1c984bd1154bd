import json
import os
import stat

from modules.ai_manager.credentials import CredentialStore, FileCredentialStore, credential_key


def test_credential_key():
    assert credential_key("openai") == "ai-api-key:openai"


def test_get_trims_and_ignores_blank():
    store = CredentialStore({"openai": "  sk-test  ", "gemini": "   "})

    assert store.get("openai") == "sk-test"
    assert store.get("gemini") is None
    assert store.get("unknown") is None


def test_set_and_clear():
    store = CredentialStore()
    store.set("gemini", "g-key")
    assert store.get("gemini") == "g-key"

    store.clear("gemini")
    assert store.get("gemini") is None


def test_file_store_persists(tmp_path):
    path = tmp_path / "nested" / "credentials.json"

    store = FileCredentialStore(str(path))
    store.set("openai", "sk-file")

    assert json.loads(path.read_text()) == {"ai-api-key:openai": "sk-file"}
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
    assert FileCredentialStore(str(path)).get("openai") == "sk-file"


def test_file_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text("{not json")

    assert FileCredentialStore(str(path)).get("openai") is None
