"""Configuration loading for the vault and its sync settings."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from vault_sync.constants import (
    CONFIG_ENV_VAR,
    CONFIG_PATH,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_RENAME_POLICY,
    DEFAULT_VERSION_LOG,
    LOG_LEVEL,
    RENAME_POLICIES,
)
from vault_sync.data_models import VaultConfiguration, VaultMetadata

logger = logging.getLogger(__name__)


def _resolve(raw_path: Path) -> Path:
    expanded = raw_path.expanduser()
    try:
        return expanded.resolve(strict=False)
    except RuntimeError:
        # resolve can raise if underlying filesystem is inaccessible; fall back to expanded path
        return expanded


def _section(raw_config: dict, key: str) -> dict:
    section = raw_config.get(key) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Configuration section '{key}' must be a mapping")
    return section


def default_config_path() -> Path:
    """Return the configuration path, honouring the ``VAULT_SYNC_CONFIG`` override."""
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override) if override else CONFIG_PATH


def load_vault_configuration(config_path: Optional[Path] = None) -> VaultConfiguration:
    """Load and validate the vault configuration file.

    Args:
        config_path: Path to the YAML configuration file. Defaults to
            ``$VAULT_SYNC_CONFIG`` or ``vault.yaml`` at the repository root.

    Returns:
        A fully populated :class:`VaultConfiguration` with the vault path
        resolved and the version log path made absolute.

    Raises:
        FileNotFoundError: If the configuration file is missing.
        ValueError: If the file exists but does not provide the expected structure
            (missing vault path, bad debounce window, unknown rename policy, etc.).
    """
    config_path = config_path or default_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Vault configuration file not found at {config_path}")

    raw_config = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw_config, dict):
        raise ValueError("Vault configuration must be a YAML mapping")

    vault_section = _section(raw_config, "vault")
    raw_path = vault_section.get("path")
    if not isinstance(raw_path, str) or not raw_path.strip():
        raise ValueError("Vault configuration is missing a valid 'vault.path' string")

    vault_path = _resolve(Path(raw_path))
    name = str(vault_section.get("name") or vault_path.name).strip()
    vault = VaultMetadata(
        name=name,
        path=vault_path,
        description=str(vault_section.get("description", "")).strip(),
        exists=vault_path.is_dir(),
    )

    sync_section = _section(raw_config, "sync")
    debounce = sync_section.get("debounce_seconds", DEFAULT_DEBOUNCE_SECONDS)
    if isinstance(debounce, bool) or not isinstance(debounce, (int, float)) or debounce < 0:
        raise ValueError("'sync.debounce_seconds' must be a non-negative number")

    rename_policy = str(sync_section.get("rename_policy", DEFAULT_RENAME_POLICY)).strip().lower()
    if rename_policy not in RENAME_POLICIES:
        raise ValueError(
            f"'sync.rename_policy' must be one of {', '.join(RENAME_POLICIES)}, got '{rename_policy}'"
        )

    versions_section = _section(raw_config, "versions")
    version_log = Path(str(versions_section.get("path", DEFAULT_VERSION_LOG))).expanduser()
    if not version_log.is_absolute():
        version_log = vault_path / version_log

    logging_section = _section(raw_config, "logging")
    log_level = str(logging_section.get("level", LOG_LEVEL)).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ValueError(f"Unknown logging level '{log_level}'")

    logger.debug("Loaded vault configuration from %s", config_path)
    return VaultConfiguration(
        vault=vault,
        debounce_seconds=float(debounce),
        rename_policy=rename_policy,
        version_log=version_log,
        log_level=log_level,
    )
