from pathlib import Path

import pytest

from backend.src.services.config import AppConfig
from backend.src.services.vault import VaultService


@pytest.fixture
def vault_config(tmp_path: Path) -> AppConfig:
    vault_dir = tmp_path / "vault"
    vault_dir.mkdir()
    return AppConfig(vault_path=vault_dir, chat_history_enabled=False)


@pytest.fixture
def vault(vault_config: AppConfig) -> VaultService:
    return VaultService(vault_config)
