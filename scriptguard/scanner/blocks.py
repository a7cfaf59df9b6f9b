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

"""Basic blocks captured per function literal, and what hangs off them.

A "basic block" here is not a control-flow block: it is the parameter and
statement grouping of one function literal. The normalizer fills the table;
the identifier extractor and the dependency graph read it.
"""

from __future__ import annotations

import logging
from typing import Sequence, TypeVar

from scriptguard.models.analysis import BasicBlock, DependencyGraph, StatementIdentifiers
from scriptguard.models.nodes import Node, NodeType
from scriptguard.policy.rule_engine import merge_str_lists

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BasicBlockTable:
    """Blocks keyed by an integer id handed out in allocation order."""

    def __init__(self) -> None:
        self._blocks: dict[int, BasicBlock] = {}
        self._next_id = 0

    @property
    def next_id(self) -> int:
        return self._next_id

    def allocate(self) -> int:
        """Reserve the next block id with an empty block and bump the counter."""
        block_id = self._next_id
        self._blocks[block_id] = BasicBlock()
        self._next_id += 1
        return block_id

    def store(self, block_id: int, parameters: list[Node], statements: list[Node]) -> None:
        if block_id not in self._blocks:
            raise KeyError(f"Block {block_id} was never allocated")
        self._blocks[block_id] = BasicBlock(parameters=parameters, statements=statements)

    def get(self, block_id: int) -> BasicBlock | None:
        return self._blocks.get(block_id)

    def as_dict(self) -> dict[int, BasicBlock]:
        return dict(self._blocks)

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self):
        return iter(sorted(self._blocks))


def partition_function_children(
    parameters: Sequence[T], declarations: Sequence[T]
) -> tuple[list[T], list[T]]:
    """Split a function's parameters and declarations positionally.

    Over the combined sequence, positions before ``len // 2 - 1`` (and within
    the parameter list) are parameters; the rest are statements, taken from
    the declarations first. Parameters that fall past the cut are appended to
    the statements rather than dropped.
    """
    total = len(parameters) + len(declarations)
    cut = max(0, min(total // 2 - 1, len(parameters)))
    leftover = list(parameters[cut:])
    if leftover:
        logger.debug(
            "%d parameter(s) fall past the positional cut and are kept as statements",
            len(leftover),
        )
    return list(parameters[:cut]), list(declarations) + leftover


def statement_ids(statement: Node) -> list[str]:
    """Every ID under ``statement`` in pre-order, its own ID first."""
    ids = [statement.id]
    for child in statement.children:
        ids = merge_str_lists(ids, statement_ids(child))
    return ids


def block_identifier_dump(block: BasicBlock) -> list[StatementIdentifiers]:
    return [
        StatementIdentifiers(statement=statement, ids=statement_ids(statement))
        for statement in block.statements
    ]


# ── Dependency graph ──────────────────────────────────────────────


def _identifier_names(node: Node) -> list[str]:
    names = [node.id] if node.type == NodeType.IDENTIFIER else []
    for child in node.children:
        names.extend(_identifier_names(child))
    return names


def build_dependency_graph(block: BasicBlock) -> DependencyGraph:
    """Link each statement of ``block`` to every identifier under it."""
    graph = DependencyGraph()
    for statement in block.statements:
        src = graph.add_node("statement", statement.type.value)
        for name in _identifier_names(statement):
            graph.add_edge(src, graph.identifier(name))
    return graph
