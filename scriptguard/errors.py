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

"""Exceptions raised by ScriptGuard.

Fatal input errors (unreadable script, parse failure, bad rule or config
file) all derive from ``InputError``. ``RuleFailure`` is not an input error:
it is raised when a rule with a ``fail`` action matches and stops the run.
"""

from __future__ import annotations

from scriptguard.models.rules import Violation


class ScriptGuardError(Exception):
    """Base class for all ScriptGuard errors."""


class InputError(ScriptGuardError):
    """An input could not be read or understood. Always fatal."""


class ScriptParseError(InputError):
    """The script file could not be read or parsed."""


class RuleFileError(InputError):
    """The rule file is missing, unreadable or malformed."""


class ConfigError(InputError):
    """The settings file is missing or malformed."""


class RuleFailure(ScriptGuardError):
    """A rule with a ``fail`` action matched."""

    def __init__(self, violation: Violation) -> None:
        super().__init__(violation.info)
        self.violation = violation
