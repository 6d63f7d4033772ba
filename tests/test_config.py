from __future__ import annotations

from pathlib import Path

import pytest

from servercfg.config import (
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_LOGS_MAX_FILES,
    DEFAULT_SCRIPTS_ROOT,
    ProjectConfig,
    initialize_project_config,
    load_project_config,
    load_settings,
    project_config_exists,
    save_project_config,
)
from servercfg.kernel.errors import ProjectConfigError


def test_init_creates_layout(tmp_path: Path):
    config_root = initialize_project_config(tmp_path)

    assert config_root == tmp_path.resolve() / CONFIG_DIR_NAME
    assert (config_root / CONFIG_FILE_NAME).is_file()
    assert (config_root / "state" / "wizards").is_dir()
    assert (config_root / "logs").is_dir()
    assert project_config_exists(tmp_path)

    config = load_project_config(workspace_dir=tmp_path)
    assert config.scripts_root == DEFAULT_SCRIPTS_ROOT
    assert config.dry_run is False
    assert config.logs_redaction == "default"


def test_init_refuses_existing_without_force(tmp_path: Path):
    initialize_project_config(tmp_path)
    with pytest.raises(ProjectConfigError):
        initialize_project_config(tmp_path)
    initialize_project_config(tmp_path, force=True)


def test_missing_config_raises(tmp_path: Path):
    assert not project_config_exists(tmp_path)
    with pytest.raises(ProjectConfigError):
        load_settings(tmp_path)


def test_invalid_toml_raises(tmp_path: Path):
    config_root = initialize_project_config(tmp_path)
    (config_root / CONFIG_FILE_NAME).write_text("[runtime\n", encoding="utf-8")
    with pytest.raises(ProjectConfigError):
        load_project_config(config_root=config_root)


def test_bad_values_fall_back_to_defaults(tmp_path: Path):
    config_root = initialize_project_config(tmp_path)
    (config_root / CONFIG_FILE_NAME).write_text(
        "\n".join(
            [
                "[runtime]",
                'dry_run = "maybe"',
                "[runtime.logs]",
                "max_files = -3",
                'redaction = "loud"',
            ]
        ),
        encoding="utf-8",
    )
    config = load_project_config(config_root=config_root)
    assert config.dry_run is False
    assert config.logs_max_files == DEFAULT_LOGS_MAX_FILES
    assert config.logs_redaction == "default"


def test_save_round_trips_values(tmp_path: Path):
    config_root = initialize_project_config(tmp_path)
    save_project_config(
        ProjectConfig(scripts_root="/opt/scripts", exclusive_in_progress=True, state_dir="var/state"),
        config_root=config_root,
    )
    config = load_project_config(config_root=config_root)
    assert config.scripts_root == "/opt/scripts"
    assert config.exclusive_in_progress is True
    assert config.state_dir == "var/state"


def test_settings_paths_and_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    initialize_project_config(tmp_path)
    monkeypatch.delenv("SERVERCFG_DRY_RUN", raising=False)
    monkeypatch.setenv("SERVERCFG_SCRIPTS_ROOT", str(tmp_path / "scripts"))

    settings = load_settings(tmp_path)
    config_root = tmp_path.resolve() / CONFIG_DIR_NAME
    assert settings.scripts_root == tmp_path / "scripts"
    assert settings.dry_run is False
    assert settings.state_file == config_root / "state" / "state.json"
    assert settings.history_db == config_root / "state" / "history.db"
    assert settings.wizard_state_dir == config_root / "state" / "wizards"
    assert settings.logs_dir == config_root / "logs"

    monkeypatch.setenv("SERVERCFG_DRY_RUN", "1")
    assert load_settings(tmp_path).dry_run is True
    monkeypatch.setenv("SERVERCFG_DRY_RUN", "0")
    assert load_settings(tmp_path, dry_run=True).dry_run is True


def test_relative_state_dir_resolves_against_project(tmp_path: Path):
    config_root = initialize_project_config(tmp_path)
    save_project_config(ProjectConfig(state_dir="var/state"), config_root=config_root)
    settings = load_settings(tmp_path)
    assert settings.state_root == tmp_path.resolve() / "var" / "state"
