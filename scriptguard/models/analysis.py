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

"""Pydantic models for symbol and basic-block tables and the analysis report."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from scriptguard import __version__
from scriptguard.models.nodes import Node
from scriptguard.models.rules import Rule, Violation


class Variable(BaseModel):
    """Properties ever recorded against a variable.

    The first entry is always the empty-string placeholder written when the
    variable is declared. Duplicates are kept in observation order.
    """

    model_config = ConfigDict(populate_by_name=True)

    properties: list[str] = Field(default_factory=lambda: [""], alias="Properties")


class BasicBlock(BaseModel):
    """Parameter/statement grouping captured for one function literal."""

    model_config = ConfigDict(populate_by_name=True)

    parameters: list[Node] = Field(default_factory=list, alias="Parameters")
    statements: list[Node] = Field(default_factory=list, alias="Statements")


class StatementIdentifiers(BaseModel):
    """IDs reachable under one basic-block statement."""

    statement: Node
    ids: list[str] = Field(default_factory=list)


class GraphNode(BaseModel):
    """One arena slot of a dependency graph."""

    model_config = ConfigDict(frozen=True)

    index: int
    kind: str  # "statement" or "identifier"
    label: str


class DependencyGraph(BaseModel):
    """Directed graph over a block's statements and identifiers.

    Nodes live in an index-addressed arena; edges are ``(src, dst)`` index
    pairs pointing from a statement to each identifier it mentions.
    """

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[tuple[int, int]] = Field(default_factory=list)
    _identifiers: dict[str, int] = PrivateAttr(default_factory=dict)

    def add_node(self, kind: str, label: str) -> int:
        index = len(self.nodes)
        self.nodes.append(GraphNode(index=index, kind=kind, label=label))
        return index

    def identifier(self, label: str) -> int:
        """Index of the identifier node for ``label``, created on first use."""
        if label not in self._identifiers:
            self._identifiers[label] = self.add_node("identifier", label)
        return self._identifiers[label]

    def add_edge(self, src: int, dst: int) -> None:
        if (src, dst) not in self.edges:
            self.edges.append((src, dst))

    def statements(self) -> list[GraphNode]:
        return [node for node in self.nodes if node.kind == "statement"]

    def successors(self, index: int) -> list[int]:
        return [dst for src, dst in self.edges if src == index]

    def statements_using(self, label: str) -> list[int]:
        target = self._identifiers.get(label)
        if target is None:
            return []
        return [src for src, dst in self.edges if dst == target]


class AnalysisReport(BaseModel):
    """Everything one analysis run produced, in emission order."""

    scriptguard_version: str = __version__
    script: str = ""
    rules_file: str = ""
    analyzed_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    unknowns: list[str] = Field(default_factory=list)
    nodes: list[Node] = Field(default_factory=list)
    variables: dict[str, Variable] = Field(default_factory=dict)
    rules: list[Rule] = Field(default_factory=list)
    violations: list[Violation] = Field(default_factory=list)
    basic_blocks: dict[int, BasicBlock] = Field(default_factory=dict)
    block: int = 0
    block_identifiers: list[StatementIdentifiers] = Field(default_factory=list)
    dependency_graph: Optional[DependencyGraph] = None
    failed: bool = False
    failure: Optional[Violation] = None
