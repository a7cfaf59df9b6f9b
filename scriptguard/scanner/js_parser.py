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

"""JavaScript front end: read a script and parse it with esprima.

The parser is a black box to the rest of ScriptGuard. Its output is a tree of
esprima node objects, each tagged with a ``type`` string; the normalizer
dispatches on that tag.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import esprima
from esprima.error_handler import Error as EsprimaError

from scriptguard.errors import ScriptParseError

logger = logging.getLogger(__name__)


def read_script(file_path: str | Path) -> str:
    path = Path(file_path)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ScriptParseError(f"Could not read script {path}: {e}") from e


def parse_script(source: str, filename: str = "<script>") -> Any:
    """Parse ``source`` as a classic (non-module) script.

    Returns the esprima ``Program`` node. Raises ``ScriptParseError`` on any
    syntax error.
    """
    try:
        program = esprima.parseScript(source, loc=True)
    except EsprimaError as e:
        raise ScriptParseError(f"Could not parse {filename}: {e}") from e
    logger.debug("Parsed %s: %d top-level statement(s)", filename, len(program.body))
    return program


def parse_script_file(file_path: str | Path) -> Any:
    source = read_script(file_path)
    return parse_script(source, filename=str(file_path))
