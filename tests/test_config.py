import pytest

from vault_sync.config import load_vault_configuration


def _write_config(tmp_path, text):
    config_path = tmp_path / "vault.yaml"
    config_path.write_text(text, encoding="utf-8")
    return config_path


def test_full_configuration(tmp_path):
    vault_dir = tmp_path / "MyVault"
    vault_dir.mkdir()
    config_path = _write_config(
        tmp_path,
        f"""
vault:
  name: personal
  path: {vault_dir}
  description: "  Personal notes  "
sync:
  debounce_seconds: 0.5
  rename_policy: HARD
versions:
  path: history/log.jsonl
logging:
  level: debug
""",
    )

    configuration = load_vault_configuration(config_path)

    assert configuration.vault.name == "personal"
    assert configuration.vault.path == vault_dir.resolve()
    assert configuration.vault.description == "Personal notes"
    assert configuration.vault.exists is True
    assert configuration.debounce_seconds == 0.5
    assert configuration.rename_policy == "hard"
    assert configuration.version_log == vault_dir.resolve() / "history" / "log.jsonl"
    assert configuration.log_level == "DEBUG"


def test_defaults(tmp_path):
    config_path = _write_config(tmp_path, f"vault:\n  path: {tmp_path / 'Notes'}\n")
    configuration = load_vault_configuration(config_path)

    assert configuration.vault.name == "Notes"
    assert configuration.vault.exists is False
    assert configuration.debounce_seconds == 1.0
    assert configuration.rename_policy == "soft"
    assert configuration.version_log.name == "versions.jsonl"
    assert configuration.log_level == "INFO"


def test_environment_override(tmp_path, monkeypatch):
    config_path = _write_config(tmp_path, f"vault:\n  path: {tmp_path}\n")
    monkeypatch.setenv("VAULT_SYNC_CONFIG", str(config_path))
    assert load_vault_configuration().vault.path == tmp_path.resolve()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_vault_configuration(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "- not\n- a mapping\n",
        "vault: {}\n",
        "vault:\n  path: '   '\n",
        "vault:\n  path: /tmp/v\nsync:\n  debounce_seconds: -1\n",
        "vault:\n  path: /tmp/v\nsync:\n  debounce_seconds: soon\n",
        "vault:\n  path: /tmp/v\nsync:\n  rename_policy: maybe\n",
        "vault:\n  path: /tmp/v\nlogging:\n  level: LOUD\n",
        "vault:\n  path: /tmp/v\nsync: [1, 2]\n",
    ],
)
def test_invalid_structure(tmp_path, text):
    with pytest.raises(ValueError):
        load_vault_configuration(_write_config(tmp_path, text))
