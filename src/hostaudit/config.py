"""Configuration management for hostaudit."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from hostaudit.core.errors import ConfigError
from hostaudit.runners.process import DEFAULT_LINE_LIMIT, AsyncioProcessLauncher

DEFAULT_CONFIG_PATH = Path(".hostaudit/config.yaml")


class Config(BaseModel):
    """hostaudit configuration.

    Execution settings:
        interpreter: Program that runs each check script
        script_name: Script file expected in every check directory
        mode: Value passed as ``--mode`` to every script
        check_timeout: Seconds before a check is killed; None waits forever
    """

    resource_base: Path | None = Field(
        default=None,
        description="Directory containing checks/ (default: probe $HOSTAUDIT_RESOURCES, then cwd)",
    )
    interpreter: str = Field(default="/bin/bash", description="Interpreter used to run check scripts")
    script_name: str = Field(default="check.sh", description="Script file name inside each check directory")
    mode: str = Field(default="scan", description="Mode passed to scripts as --mode <mode>")
    platform: str | None = Field(
        default=None,
        description="Platform tag used to filter checks (default: detected from the host)",
    )
    check_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-check timeout in seconds (default: none)",
    )
    line_limit: int = Field(
        default=DEFAULT_LINE_LIMIT,
        gt=0,
        description="Longest stdout line accepted from a check, in bytes",
    )
    output: Literal["terminal", "json"] = Field(default="terminal", description="Output mode: terminal or json")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Level for diagnostic logging on stderr",
    )

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from file or use defaults."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if config_path.exists():
            try:
                with config_path.open() as f:
                    data = yaml.safe_load(f) or {}
                return cls.model_validate(data)
            except (OSError, yaml.YAMLError, ValidationError) as e:
                raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

        return cls()

    def save(self, config_path: Path) -> None:
        """Save configuration to file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)

    def build_launcher(self) -> AsyncioProcessLauncher:
        return AsyncioProcessLauncher(line_limit=self.line_limit)
