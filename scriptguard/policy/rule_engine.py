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

"""Rule evaluation engine.

Evaluates declared rules against every node of a normalized tree, pre-order,
and fires each matching rule's action:

- ``warn``: record the violation, log it, keep going
- ``fail``: record the violation and raise ``RuleFailure``; nothing after
  the failing node is evaluated
- anything else: log that the action is not implemented, keep going

A match never prunes the walk; descendants are always checked.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from scriptguard.errors import RuleFailure, RuleFileError
from scriptguard.models.nodes import Node, NodeType
from scriptguard.models.rules import (
    ActionType,
    Rule,
    RuleType,
    Violation,
    WILDCARD_ID,
)
from scriptguard.scanner.symbols import SymbolTable

logger = logging.getLogger(__name__)

_RULE_LIST = TypeAdapter(list[Rule])


def load_rules(rules_path: str | Path) -> list[Rule]:
    """Load a JSON rule file.

    Raises ``RuleFileError`` when the file is missing or unreadable, is not
    valid JSON, is not a JSON array, or holds entries that are not rules.
    An empty array is a valid, empty rule set.
    """
    path = Path(rules_path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise RuleFileError(f"Could not read rule file {path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise RuleFileError(f"Malformed JSON in rule file {path}: {e}") from e

    if not isinstance(data, list):
        raise RuleFileError(
            f"Rule file {path} must contain a JSON array, got {type(data).__name__}"
        )

    try:
        rules = _RULE_LIST.validate_python(data)
    except ValidationError as e:
        raise RuleFileError(f"Invalid rule in {path}: {e}") from e

    logger.debug("Loaded %d rule(s) from %s", len(rules), path)
    return rules


# ── String-list helpers ──


def merge_str_lists(a: Sequence[str], b: Sequence[str]) -> list[str]:
    """Return ``a`` followed by ``b`` as a new list."""
    merged = list(a)
    merged.extend(b)
    return merged


def contains_str(strings: Iterable[str], s: str) -> bool:
    """Plain membership. ``"*"`` has no special meaning here."""
    return any(item == s for item in strings)


def contains_identifier(identifiers: Iterable[str], identifier: Optional[str]) -> bool:
    """Membership where the wildcard ``"*"`` matches anything."""
    if identifier == WILDCARD_ID:
        return True
    return contains_str(identifiers, identifier)


def node_identifiers(node: Node) -> list[str]:
    """IDs of the Identifier nodes directly under ``node``.

    An Identifier node yields its own ID. Other nodes yield the IDs of their
    immediate Identifier children, so a statement wrapping a call does not
    inherit the call's callee.
    """
    if node.type == NodeType.IDENTIFIER:
        return [node.id]

    identifiers: list[str] = []
    for child in node.children:
        if child.type == NodeType.IDENTIFIER:
            identifiers = merge_str_lists(identifiers, node_identifiers(child))
    return identifiers


def rule_applies(rule: Rule, node: Node, symbols: SymbolTable) -> bool:
    """Check whether ``rule``'s condition holds at ``node``."""
    if rule.type == RuleType.EXPRESSION:
        return node.is_expression and contains_identifier(node_identifiers(node), rule.id)

    if rule.type == RuleType.PROPERTY_DOES_NOT_EXIST:
        if node.type != NodeType.DOT_EXPRESSION or not node.children:
            return False
        owner = node.children[0].id
        return symbols.is_declared(owner) and not symbols.has_property(owner, node.id)

    return False


class RuleEngine:
    """Walks normalized trees and fires rule actions."""

    def __init__(self, rules: Sequence[Rule], symbols: SymbolTable) -> None:
        self.rules = list(rules)
        self.symbols = symbols
        self.violations: list[Violation] = []

    def check_nodes(self, nodes: Iterable[Node]) -> list[Violation]:
        for node in nodes:
            self.check_node(node)
        return self.violations

    def check_node(self, node: Node) -> None:
        for rule in self.rules:
            if rule_applies(rule, node, self.symbols):
                self.apply_action(rule, node)

        for child in node.children:
            self.check_node(child)

    def apply_action(self, rule: Rule, node: Node) -> Optional[Violation]:
        action = rule.action
        if action.type not in (ActionType.WARN, ActionType.FAIL):
            logger.warning("Action not implemented: %r", action.type)
            return None

        violation = Violation(
            rule_type=rule.type,
            rule_id=rule.id,
            action=action.type,
            info=action.info,
            node_type=node.type.value,
            node_id=node.id,
        )
        self.violations.append(violation)

        if action.type == ActionType.FAIL:
            logger.error("Rule %s failed at %s: %s", rule.type, node.type.value, action.info)
            raise RuleFailure(violation)

        logger.warning("Rule %s matched at %s: %s", rule.type, node.type.value, action.info)
        return violation
