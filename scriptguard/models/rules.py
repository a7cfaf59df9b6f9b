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

"""Pydantic models for analysis rules and their actions.

Rule files are JSON arrays of objects shaped like::

    {"Type": "Expression", "ID": "eval",
     "Action": {"Type": "warn", "Info": "eval is dangerous"}}

Rule and action types are kept as plain strings so that unknown kinds still
load: an unknown rule type never applies and an unknown action type is
reported as not implemented.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RuleType(str, Enum):
    """Rule kinds understood by the rule engine."""

    EXPRESSION = "Expression"
    PROPERTY_DOES_NOT_EXIST = "PropertyDoesNotExist"


class ActionType(str, Enum):
    """Action kinds understood by the rule engine."""

    WARN = "warn"
    FAIL = "fail"


# Rule ID matching any identifier.
WILDCARD_ID = "*"


class RuleAction(BaseModel):
    """What to do when a rule matches."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(default="", alias="Type")
    info: str = Field(default="", alias="Info")


class Rule(BaseModel):
    """A single declarative rule: a condition plus an action."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(alias="Type")
    id: Optional[str] = Field(default=None, alias="ID")
    action: RuleAction = Field(default_factory=RuleAction, alias="Action")


class Violation(BaseModel):
    """A rule that fired against a node."""

    rule_type: str
    rule_id: Optional[str] = None
    action: str
    info: str
    node_type: str
    node_id: str = ""
