# ScriptGuard — Rule-driven static analysis for scripts
# Copyright (C) 2026 ScriptGuard Project Contributors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""User settings from ~/.scriptguard/config.yaml and the environment.

Priority (highest first):
1. command-line flags (applied by the CLI)
2. SCRIPTGUARD_RULES / SCRIPTGUARD_BLOCK environment variables
3. the YAML config file
4. built-in defaults; the bundled rule set when no rule file is named
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ValidationError

from scriptguard.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".scriptguard"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
DEFAULT_RULES_FILE = Path(__file__).parent / "rules" / "default_rules.json"


class Settings(BaseModel):
    """Resolved analysis settings."""

    rules_file: Optional[str] = None
    block: int = 0
    show_nodes: bool = True

    def resolved_rules_file(self) -> Path:
        if self.rules_file:
            return Path(self.rules_file).expanduser()
        return DEFAULT_RULES_FILE


def load_config(config_path: Optional[str | Path] = None) -> Settings:
    """Load settings.

    With no ``config_path`` the default file is optional and a missing one
    yields defaults. An explicit path must exist. Malformed YAML or unknown
    value types raise ``ConfigError`` either way.
    """
    path = Path(config_path).expanduser() if config_path else CONFIG_FILE
    data: dict = {}

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not load config from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must be a mapping")
        logger.debug("Loaded config from %s", path)
    elif config_path:
        raise ConfigError(f"Config file not found: {path}")

    env_rules = os.environ.get("SCRIPTGUARD_RULES")
    if env_rules:
        data["rules_file"] = env_rules
    env_block = os.environ.get("SCRIPTGUARD_BLOCK")
    if env_block:
        data["block"] = env_block

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e
