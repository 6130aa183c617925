"""
Workspace configuration for agentpm.

A workspace is any directory holding a ``.agentpm.json`` file. It records
which epic document commands act on by default, plus optional hint
settings. The workflow core never reads it; only the CLI does.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from agentpm.lib import validate
from agentpm.lib.constants import CONFIG_FILENAME, DEFAULT_ASSIGNEE
from agentpm.storage.file import atomic_write_text

logger = logging.getLogger(__name__)

SCHEMA = "config"


@dataclass
class ProjectConfig:
    """Contents of .agentpm.json"""
    current_epic: str  # Relative to the config file's directory
    project_name: str = ""
    default_assignee: str = DEFAULT_ASSIGNEE
    previous_epic: str = ""
    hints: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            "current_epic": self.current_epic,
            "default_assignee": self.default_assignee,
        }
        if self.project_name:
            data["project_name"] = self.project_name
        if self.previous_epic:
            data["previous_epic"] = self.previous_epic
        if self.hints:
            data["hints"] = self.hints
        return data


def config_path(config: Optional[str] = None, cwd: Optional[Path] = None) -> Path:
    """Resolve the config file: explicit flag wins, else cwd/.agentpm.json"""
    if config:
        return Path(config)
    return (cwd or Path.cwd()) / CONFIG_FILENAME


def load_config(path: Path) -> ProjectConfig:
    """Load and validate the workspace config.

    Raises:
        ConfigError: If missing, malformed, or schema-invalid
    """
    data = validate.validate_file(path, SCHEMA)
    return ProjectConfig(
        current_epic=data["current_epic"],
        project_name=data.get("project_name", ""),
        default_assignee=data.get("default_assignee", DEFAULT_ASSIGNEE),
        previous_epic=data.get("previous_epic", ""),
        hints=data.get("hints", {}),
    )


def save_config(path: Path, cfg: ProjectConfig) -> None:
    """Validate then atomically write the config. Never writes invalid data."""
    data = cfg.to_dict()
    validate.validate(data, SCHEMA)
    atomic_write_text(path, json.dumps(data, indent=2) + "\n")
    logger.debug(f"[CONFIG] saved {path}")


def resolve_epic_path(path: Path, cfg: ProjectConfig) -> Path:
    """Current epic path, relative entries resolved against the config dir."""
    epic = Path(cfg.current_epic)
    if epic.is_absolute():
        return epic
    return path.parent / epic


def init_config(path: Path, epic_file: str, project_name: str = "",
                default_assignee: str = DEFAULT_ASSIGNEE) -> ProjectConfig:
    """Create a new config pointing at ``epic_file``. Overwrites an existing one."""
    cfg = ProjectConfig(
        current_epic=epic_file,
        project_name=project_name,
        default_assignee=default_assignee,
    )
    save_config(path, cfg)
    logger.info(f"[CONFIG] initialized {path} -> {epic_file}")
    return cfg


def switch_epic(path: Path, epic_file: str) -> ProjectConfig:
    """Point the workspace at another epic, remembering the old one."""
    cfg = load_config(path)
    if cfg.current_epic == epic_file:
        logger.debug(f"[CONFIG] already on {epic_file}")
        return cfg
    cfg.previous_epic = cfg.current_epic
    cfg.current_epic = epic_file
    save_config(path, cfg)
    logger.info(f"[CONFIG] switched {cfg.previous_epic} -> {epic_file}")
    return cfg


def switch_back(path: Path) -> ProjectConfig:
    """Swap current and previous epic.

    Raises:
        ConfigError: If no previous epic is recorded
    """
    cfg = load_config(path)
    if not cfg.previous_epic:
        raise validate.ConfigError(SCHEMA, "No previous epic to switch back to", "previous_epic")
    cfg.current_epic, cfg.previous_epic = cfg.previous_epic, cfg.current_epic
    save_config(path, cfg)
    logger.info(f"[CONFIG] switched back to {cfg.current_epic}")
    return cfg
