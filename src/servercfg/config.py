"""Configuration loading and directory resolution for servercfg."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

try:  # pragma: no cover - exercised on Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for Python 3.9/3.10
    import tomli as tomllib  # type: ignore[no-redef]

from servercfg.kernel.errors import ProjectConfigError

CONFIG_DIR_NAME = ".servercfg_config"
CONFIG_FILE_NAME = "config.toml"
STATE_DIR_NAME = "state"
LOGS_DIR_NAME = "logs"
STATE_FILE_NAME = "state.json"
HISTORY_DB_NAME = "history.db"
WIZARDS_DIR_NAME = "wizards"

ENV_DRY_RUN = "SERVERCFG_DRY_RUN"
ENV_SCRIPTS_ROOT = "SERVERCFG_SCRIPTS_ROOT"

DEFAULT_SCRIPTS_ROOT = "/home/ubuntu/server-config/src"
DEFAULT_DRY_RUN = False
DEFAULT_EXCLUSIVE_IN_PROGRESS = False
DEFAULT_LOGS_ENABLED = True
DEFAULT_LOGS_FORMAT = "jsonl"
DEFAULT_LOGS_MAX_FILE_BYTES = 10 * 1024 * 1024
DEFAULT_LOGS_MAX_FILES = 5
DEFAULT_LOGS_REDACTION = "default"
ALLOWED_LOG_FORMATS = ("jsonl",)
ALLOWED_LOG_REDACTION = ("default", "none", "strict")


@dataclass
class ProjectConfig:
    scripts_root: str = DEFAULT_SCRIPTS_ROOT
    dry_run: bool = DEFAULT_DRY_RUN
    exclusive_in_progress: bool = DEFAULT_EXCLUSIVE_IN_PROGRESS
    state_dir: str = ""
    logs_enabled: bool = DEFAULT_LOGS_ENABLED
    logs_format: str = DEFAULT_LOGS_FORMAT
    logs_max_file_bytes: int = DEFAULT_LOGS_MAX_FILE_BYTES
    logs_max_files: int = DEFAULT_LOGS_MAX_FILES
    logs_redaction: str = DEFAULT_LOGS_REDACTION


@dataclass
class Settings:
    """Resolved runtime settings for one CLI invocation."""

    project_root: Path
    config_root: Path
    scripts_root: Path = field(default_factory=lambda: Path(DEFAULT_SCRIPTS_ROOT))
    dry_run: bool = DEFAULT_DRY_RUN
    exclusive_in_progress: bool = DEFAULT_EXCLUSIVE_IN_PROGRESS
    state_dir: Optional[Path] = None
    logs_enabled: bool = DEFAULT_LOGS_ENABLED
    logs_format: str = DEFAULT_LOGS_FORMAT
    logs_max_file_bytes: int = DEFAULT_LOGS_MAX_FILE_BYTES
    logs_max_files: int = DEFAULT_LOGS_MAX_FILES
    logs_redaction: str = DEFAULT_LOGS_REDACTION

    @property
    def state_root(self) -> Path:
        if self.state_dir is not None:
            return self.state_dir
        return self.config_root / STATE_DIR_NAME

    @property
    def state_file(self) -> Path:
        return self.state_root / STATE_FILE_NAME

    @property
    def history_db(self) -> Path:
        return self.state_root / HISTORY_DB_NAME

    @property
    def wizard_state_dir(self) -> Path:
        return self.state_root / WIZARDS_DIR_NAME

    @property
    def logs_dir(self) -> Path:
        return self.config_root / LOGS_DIR_NAME


def resolve_project_root(workspace_dir: Optional[Path] = None) -> Path:
    return (workspace_dir or Path.cwd()).resolve()


def resolve_project_config_root(workspace_dir: Optional[Path] = None) -> Path:
    return resolve_project_root(workspace_dir) / CONFIG_DIR_NAME


def project_config_exists(workspace_dir: Optional[Path] = None) -> bool:
    config_root = resolve_project_config_root(workspace_dir)
    return config_root.is_dir() and (config_root / CONFIG_FILE_NAME).is_file()


def _safe_positive_int_or_default(value: object, default: int) -> int:
    try:
        converted = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if converted <= 0:
        return default
    return converted


def _safe_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return default


def _safe_choice(value: object, allowed: tuple, default: str) -> str:
    normalized = str(value or default).strip().lower()
    if normalized not in allowed:
        return default
    return normalized


def _safe_text(value: object, default: str) -> str:
    if not isinstance(value, str):
        return default
    return value.strip()


def _toml_string(value: str) -> str:
    return '"{0}"'.format(str(value or "").replace("\\", "\\\\").replace('"', '\\"'))


def _parse_project_config_data(data: Dict[str, object]) -> ProjectConfig:
    runtime = data.get("runtime") if isinstance(data.get("runtime"), dict) else {}
    state = data.get("state") if isinstance(data.get("state"), dict) else {}
    logs = runtime.get("logs") if isinstance(runtime.get("logs"), dict) else {}  # type: ignore[union-attr]

    return ProjectConfig(
        scripts_root=_safe_text(runtime.get("scripts_root"), DEFAULT_SCRIPTS_ROOT) or DEFAULT_SCRIPTS_ROOT,  # type: ignore[union-attr]
        dry_run=_safe_bool(runtime.get("dry_run"), DEFAULT_DRY_RUN),  # type: ignore[union-attr]
        exclusive_in_progress=_safe_bool(
            runtime.get("exclusive_in_progress"),  # type: ignore[union-attr]
            DEFAULT_EXCLUSIVE_IN_PROGRESS,
        ),
        state_dir=_safe_text(state.get("dir"), ""),  # type: ignore[union-attr]
        logs_enabled=_safe_bool(logs.get("enabled"), DEFAULT_LOGS_ENABLED),  # type: ignore[union-attr]
        logs_format=_safe_choice(logs.get("format"), ALLOWED_LOG_FORMATS, DEFAULT_LOGS_FORMAT),  # type: ignore[union-attr]
        logs_max_file_bytes=_safe_positive_int_or_default(
            logs.get("max_file_bytes"),  # type: ignore[union-attr]
            DEFAULT_LOGS_MAX_FILE_BYTES,
        ),
        logs_max_files=_safe_positive_int_or_default(
            logs.get("max_files"),  # type: ignore[union-attr]
            DEFAULT_LOGS_MAX_FILES,
        ),
        logs_redaction=_safe_choice(logs.get("redaction"), ALLOWED_LOG_REDACTION, DEFAULT_LOGS_REDACTION),  # type: ignore[union-attr]
    )


def _render_project_config(config: ProjectConfig) -> str:
    lines: List[str] = [
        "[runtime]",
        "scripts_root = {0}".format(_toml_string(config.scripts_root)),
        "dry_run = {0}".format(str(bool(config.dry_run)).lower()),
        "exclusive_in_progress = {0}".format(str(bool(config.exclusive_in_progress)).lower()),
        "",
        "[runtime.logs]",
        "enabled = {0}".format(str(bool(config.logs_enabled)).lower()),
        "format = {0}".format(_toml_string(_safe_choice(config.logs_format, ALLOWED_LOG_FORMATS, DEFAULT_LOGS_FORMAT))),
        "max_file_bytes = {0}".format(
            _safe_positive_int_or_default(config.logs_max_file_bytes, DEFAULT_LOGS_MAX_FILE_BYTES)
        ),
        "max_files = {0}".format(_safe_positive_int_or_default(config.logs_max_files, DEFAULT_LOGS_MAX_FILES)),
        "redaction = {0}".format(
            _toml_string(_safe_choice(config.logs_redaction, ALLOWED_LOG_REDACTION, DEFAULT_LOGS_REDACTION))
        ),
        "",
        "[state]",
        "# empty means <config dir>/state",
        "dir = {0}".format(_toml_string(config.state_dir)),
        "",
    ]
    return "\n".join(lines)


def initialize_project_config(workspace_dir: Optional[Path] = None, force: bool = False) -> Path:
    project_root = resolve_project_root(workspace_dir)
    config_root = resolve_project_config_root(project_root)
    config_file = config_root / CONFIG_FILE_NAME

    if config_root.exists():
        if not force:
            raise ProjectConfigError(
                "配置目录已存在：{0} (configuration directory already exists)".format(config_root)
            )
        shutil.rmtree(config_root)

    (config_root / STATE_DIR_NAME / WIZARDS_DIR_NAME).mkdir(parents=True, exist_ok=True)
    (config_root / LOGS_DIR_NAME).mkdir(parents=True, exist_ok=True)
    config_file.write_text(_render_project_config(ProjectConfig()), encoding="utf-8")
    return config_root


def load_project_config(config_root: Optional[Path] = None, workspace_dir: Optional[Path] = None) -> ProjectConfig:
    resolved_root = (config_root or resolve_project_config_root(workspace_dir)).resolve()
    config_file = resolved_root / CONFIG_FILE_NAME
    if not resolved_root.is_dir() or not config_file.is_file():
        raise ProjectConfigError(
            "缺少项目配置目录：{0}，请先执行 `servercfg init` (missing project config directory)".format(
                resolved_root
            )
        )

    try:
        parsed = tomllib.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ProjectConfigError("配置文件无效：{0} (invalid config file)".format(config_file)) from exc

    return _parse_project_config_data(parsed)


def save_project_config(
    config: ProjectConfig,
    config_root: Optional[Path] = None,
    workspace_dir: Optional[Path] = None,
) -> Path:
    resolved_root = (config_root or resolve_project_config_root(workspace_dir)).resolve()
    config_file = resolved_root / CONFIG_FILE_NAME
    if not resolved_root.is_dir():
        raise ProjectConfigError(
            "缺少项目配置目录：{0}，请先执行 `servercfg init` (missing project config directory)".format(
                resolved_root
            )
        )
    config_file.write_text(_render_project_config(config), encoding="utf-8")
    return config_file


def load_settings(
    workspace_dir: Optional[Path] = None,
    dry_run: Optional[bool] = None,
) -> Settings:
    """Resolve settings from project config, environment and explicit overrides."""

    project_root = resolve_project_root(workspace_dir)
    config_root = resolve_project_config_root(project_root)
    project_config = load_project_config(config_root=config_root)

    resolved_dry_run = _safe_bool(os.environ.get(ENV_DRY_RUN), project_config.dry_run)
    if dry_run:
        resolved_dry_run = True

    scripts_root = os.environ.get(ENV_SCRIPTS_ROOT, "").strip() or project_config.scripts_root

    state_dir: Optional[Path] = None
    if project_config.state_dir:
        candidate = Path(project_config.state_dir).expanduser()
        state_dir = candidate if candidate.is_absolute() else (project_root / candidate)

    return Settings(
        project_root=project_root,
        config_root=config_root,
        scripts_root=Path(scripts_root).expanduser(),
        dry_run=resolved_dry_run,
        exclusive_in_progress=project_config.exclusive_in_progress,
        state_dir=state_dir,
        logs_enabled=project_config.logs_enabled,
        logs_format=project_config.logs_format,
        logs_max_file_bytes=project_config.logs_max_file_bytes,
        logs_max_files=project_config.logs_max_files,
        logs_redaction=project_config.logs_redaction,
    )
