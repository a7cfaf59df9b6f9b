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

"""Symbol table: which properties have ever been assigned onto which variable.

Scope is flat. A name declared twice shares one entry and the
second declaration resets it.
"""

from __future__ import annotations

import logging

from scriptguard.models.analysis import Variable

logger = logging.getLogger(__name__)


class SymbolTable:
    """Mapping of variable name to its recorded property sequence."""

    def __init__(self) -> None:
        self._variables: dict[str, Variable] = {}

    def declare(self, name: str) -> None:
        """Create (or reset) ``name`` with the single placeholder entry."""
        self._variables[name] = Variable(properties=[""])

    def record_property(self, name: str, prop: str) -> None:
        """Append ``prop`` to ``name``. Does nothing for undeclared names."""
        variable = self._variables.get(name)
        if variable is None:
            logger.debug("Ignoring property %r on undeclared variable %r", prop, name)
            return
        variable.properties.append(prop)

    def has_property(self, name: str, prop: str) -> bool:
        variable = self._variables.get(name)
        if variable is None:
            return False
        return prop in variable.properties

    def is_declared(self, name: str) -> bool:
        return name in self._variables

    def properties(self, name: str) -> list[str]:
        variable = self._variables.get(name)
        return list(variable.properties) if variable else []

    def as_dict(self) -> dict[str, Variable]:
        return {name: var.model_copy(deep=True) for name, var in self._variables.items()}

    def __len__(self) -> int:
        return len(self._variables)
