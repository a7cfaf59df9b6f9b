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

"""Pydantic models for the normalized script tree."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NodeType(str, Enum):
    """Closed set of normalized node kinds."""

    VARIABLE_STATEMENT = "VariableStatement"
    VARIABLE_EXPRESSION = "VariableExpression"
    DOT_EXPRESSION = "DotExpression"
    CALL_EXPRESSION = "CallExpression"
    STRING_LITERAL = "StringLiteral"
    IDENTIFIER = "Identifier"
    EXPRESSION_STATEMENT = "ExpressionStatement"
    FUNCTION_LITERAL = "FunctionLiteral"
    VARIABLE_DECLARATION = "VariableDeclaration"
    NUMBER_LITERAL = "NumberLiteral"
    BINARY_EXPRESSION = "BinaryExpression"
    OBJECT_LITERAL = "ObjectLiteral"
    IF_STATEMENT = "IfStatement"
    BLOCK_STATEMENT = "BlockStatement"
    OBJECT_PROPERTY = "ObjectProperty"
    ASSIGN_EXPRESSION = "AssignExpression"
    FUNCTION_STATEMENT = "FunctionStatement"
    UNKNOWN = "Unknown"


# Nodes carrying this class are eligible for "Expression" rules.
EXPRESSION_CLASS = "Expression"


class Node(BaseModel):
    """A normalized AST node.

    ``id`` depends on ``type``: identifier name, literal text, operator
    symbol or property key. ``children`` order is significant, e.g. a
    CallExpression holds its arguments in order followed by the callee.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: NodeType = Field(alias="Type")
    id: str = Field(default="", alias="ID")
    children: list[Node] = Field(default_factory=list, alias="Children")
    node_class: Optional[str] = Field(default=None, alias="Class")

    @property
    def is_expression(self) -> bool:
        return self.node_class == EXPRESSION_CLASS

    def __str__(self) -> str:
        if not self.children:
            return f"{self.type.value}({self.id!r})"
        inner = ", ".join(str(child) for child in self.children)
        return f"{self.type.value}({self.id!r}, [{inner}])"


Node.model_rebuild()
