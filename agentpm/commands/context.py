"""
Shared plumbing for command modules.

Every ``cmd_*`` function receives the parsed args plus a CommandContext
and returns an exit code. ``guarded`` turns an AgentPMError into rendered
output, a hint and the error's exit code.
"""

import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Optional, TextIO

from agentpm.lib import config as config_lib
from agentpm.lib import output, timeutil
from agentpm.lib.hints import HintConfig, HintRegistry, default_registry
from agentpm.lib.validate import ConfigError
from agentpm.storage.file import FileStore
from agentpm.workflow.errors import AgentPMError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class CommandContext:
    config_path: Path
    fmt: str = "text"
    file_flag: Optional[str] = None
    time_flag: Optional[str] = None
    store: object = field(default_factory=FileStore)
    out: TextIO = field(default_factory=lambda: sys.stdout)
    err: TextIO = field(default_factory=lambda: sys.stderr)
    _config: Optional[config_lib.ProjectConfig] = None

    @property
    def config(self) -> config_lib.ProjectConfig:
        """Workspace config, loaded on first use.

        Raises:
            ConfigError: If the config file is missing or invalid
        """
        if self._config is None:
            self._config = config_lib.load_config(self.config_path)
        return self._config

    def optional_config(self) -> Optional[config_lib.ProjectConfig]:
        if not self.config_path.exists():
            return None
        return self.config

    @property
    def epic_path(self) -> Path:
        """``--file`` if given, else the config's current epic."""
        if self.file_flag:
            return Path(self.file_flag)
        return config_lib.resolve_epic_path(self.config_path, self.config)

    @property
    def at(self) -> datetime:
        """Timestamp for this command.

        Raises:
            ValidationError: If ``--time`` is not an RFC3339 timestamp
        """
        try:
            return timeutil.resolve(self.time_flag)
        except ValueError:
            raise ValidationError(f"Invalid --time value: {self.time_flag!r}") from None

    def hints(self) -> HintRegistry:
        hint_settings = {}
        try:
            cfg = self.optional_config()
        except ConfigError:
            cfg = None
        if cfg is not None:
            hint_settings = cfg.hints
        return default_registry(HintConfig.from_config(hint_settings))

    def emit(self, text: str) -> None:
        if text:
            print(text, file=self.out)

    def render(self, root: str, view: dict, epic_id: str) -> None:
        """Emit a read-only view in the selected format."""
        if self.fmt == "json":
            self.emit(output.to_json(view))
        elif self.fmt == "xml":
            self.emit(output.to_xml(root, view, {"epic": epic_id}))
        else:
            self.emit(output.to_text(view))

    def fail(self, error: AgentPMError) -> int:
        hint = self.hints().query(error)
        logger.debug(f"[CLI] {error.kind}: {error.message}")
        print(output.render_error(error, hint, self.fmt), file=self.err)
        return error.exit_code


def guarded(func):
    """Run a ``cmd_*`` function, rendering any AgentPMError it raises."""
    @wraps(func)
    def wrapper(args, ctx: CommandContext) -> int:
        try:
            return func(args, ctx)
        except AgentPMError as e:
            return ctx.fail(e)
    return wrapper
