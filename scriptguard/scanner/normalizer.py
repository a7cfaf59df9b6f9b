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

"""AST normalizer: esprima nodes in, uniform ``Node`` trees out.

Dispatch is a closed table keyed on esprima's ``type`` tag. Anything not in
the table becomes an ``Unknown`` node and is reported, never dropped.

Normalizing also fills the run's ``AnalysisContext``:

- a variable declarator declares its name in the symbol table and becomes
  the context's last declared variable
- an object literal records each property key against the variable being
  initialized (threaded down as ``owner``; the last declared variable when
  nothing was threaded)
- an assignment to ``a.b`` records ``b`` against ``a``
- a function literal allocates a basic block and fills it with its
  positionally partitioned parameters and hoisted declarations
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, Optional

from scriptguard.models.nodes import EXPRESSION_CLASS, Node, NodeType
from scriptguard.scanner.blocks import BasicBlockTable, partition_function_children
from scriptguard.scanner.symbols import SymbolTable

logger = logging.getLogger(__name__)

Handler = Callable[[Any, Optional[str]], Node]

# Statement attributes searched for hoisted declarations. Function bodies
# are not entered: nested functions hoist into their own block.
_HOIST_CONTAINERS: dict[str, tuple[str, ...]] = {
    "BlockStatement": ("body",),
    "IfStatement": ("consequent", "alternate"),
    "ForStatement": ("init", "body"),
    "ForInStatement": ("left", "body"),
    "ForOfStatement": ("left", "body"),
    "WhileStatement": ("body",),
    "DoWhileStatement": ("body",),
    "LabeledStatement": ("body",),
    "WithStatement": ("body",),
    "TryStatement": ("block", "handler", "finalizer"),
    "CatchClause": ("body",),
    "SwitchStatement": ("cases",),
    "SwitchCase": ("consequent",),
}

_HOISTED_KINDS = frozenset({"VariableDeclaration", "FunctionDeclaration"})


class AnalysisContext:
    """All mutable state of one analysis run.

    Create one per run; nothing here is shared between contexts.
    """

    def __init__(self) -> None:
        self.symbols = SymbolTable()
        self.blocks = BasicBlockTable()
        self.last_declared: Optional[Node] = None
        self.unknowns: list[str] = []


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def hoisted_declarations(body: Any) -> list[Any]:
    """Variable and function declarations of a function body, in source order."""
    found: list[Any] = []

    def visit(statement: Any) -> None:
        kind = getattr(statement, "type", None)
        if kind in _HOISTED_KINDS:
            found.append(statement)
            return
        for attr in _HOIST_CONTAINERS.get(kind, ()):
            for child in _as_list(getattr(statement, attr, None)):
                visit(child)

    for statement in _as_list(getattr(body, "body", None)):
        visit(statement)
    return found


class Normalizer:
    """Turns esprima nodes into ``Node`` trees, filling ``context`` as it goes."""

    def __init__(self, context: Optional[AnalysisContext] = None) -> None:
        self.context = context or AnalysisContext()
        self._handlers: dict[str, Handler] = {
            "VariableDeclaration": self._variable_statement,
            "VariableDeclarator": self._variable_expression,
            "MemberExpression": self._dot_expression,
            "CallExpression": self._call_expression,
            "Literal": self._literal,
            "Identifier": self._identifier,
            "ExpressionStatement": self._expression_statement,
            "FunctionExpression": self._function_literal,
            "BinaryExpression": self._binary_expression,
            "LogicalExpression": self._binary_expression,
            "ObjectExpression": self._object_literal,
            "IfStatement": self._if_statement,
            "BlockStatement": self._block_statement,
            "Property": self._object_property,
            "AssignmentExpression": self._assign_expression,
            "FunctionDeclaration": self._function_statement,
        }

    def normalize_program(self, program: Any) -> list[Node]:
        return [self.normalize(statement) for statement in program.body]

    def normalize(self, node: Any, owner: Optional[str] = None) -> Node:
        handler = self._handlers.get(getattr(node, "type", None))
        if handler is None:
            return self._unknown(node)
        return handler(node, owner)

    # ── helpers ──

    def _children(self, nodes: Any, owner: Optional[str]) -> list[Node]:
        return [self.normalize(child, owner) for child in _as_list(nodes)]

    def _unknown(self, node: Any) -> Node:
        kind = getattr(node, "type", None) or type(node).__name__
        loc = getattr(node, "loc", None)
        where = f" at line {loc.start.line}" if loc is not None and loc.start else ""
        notice = f"{kind}{where}"
        self.context.unknowns.append(notice)
        logger.warning("Unsupported node: %s", notice)
        return Node(type=NodeType.UNKNOWN)

    def _record_object_property(self, prop: Node, owner: Optional[str]) -> None:
        if owner is None and self.context.last_declared is not None:
            owner = self.context.last_declared.id
        if owner is not None:
            self.context.symbols.record_property(owner, prop.id)

    # ── handlers ──

    def _variable_statement(self, node: Any, owner: Optional[str]) -> Node:
        return Node(
            type=NodeType.VARIABLE_STATEMENT,
            children=self._children(node.declarations, owner),
        )

    def _variable_expression(self, node: Any, owner: Optional[str]) -> Node:
        if getattr(node.id, "type", None) != "Identifier":
            # Destructuring patterns bind no single name.
            result = Node(
                type=NodeType.VARIABLE_EXPRESSION,
                node_class=EXPRESSION_CLASS,
                children=[self._unknown(node.id)],
            )
            if node.init is not None:
                result.children.append(self.normalize(node.init, ""))
            return result

        name = node.id.name
        result = Node(type=NodeType.VARIABLE_EXPRESSION, id=name, node_class=EXPRESSION_CLASS)
        self.context.symbols.declare(name)
        self.context.last_declared = result
        if node.init is not None:
            result.children = [self.normalize(node.init, name)]
        return result

    def _dot_expression(self, node: Any, owner: Optional[str]) -> Node:
        if node.computed:
            return self._unknown(node)
        result = Node(
            type=NodeType.DOT_EXPRESSION,
            id=getattr(node.property, "name", "") or "",
            node_class=EXPRESSION_CLASS,
        )
        if node.object is not None:
            result.children = [self.normalize(node.object, owner)]
        return result

    def _call_expression(self, node: Any, owner: Optional[str]) -> Node:
        children = self._children(node.arguments, owner)
        children.append(self.normalize(node.callee, owner))
        return Node(type=NodeType.CALL_EXPRESSION, children=children, node_class=EXPRESSION_CLASS)

    def _literal(self, node: Any, owner: Optional[str]) -> Node:
        value = node.value
        if getattr(node, "regex", None) is None:
            if isinstance(value, str):
                return Node(type=NodeType.STRING_LITERAL, id=value)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return Node(type=NodeType.NUMBER_LITERAL, id=node.raw)
        return self._unknown(node)

    def _identifier(self, node: Any, owner: Optional[str]) -> Node:
        return Node(type=NodeType.IDENTIFIER, id=node.name)

    def _expression_statement(self, node: Any, owner: Optional[str]) -> Node:
        return Node(
            type=NodeType.EXPRESSION_STATEMENT,
            children=[self.normalize(node.expression, owner)],
            node_class=EXPRESSION_CLASS,
        )

    def _function_literal(self, node: Any, owner: Optional[str]) -> Node:
        blocks: BasicBlockTable = self.context.blocks
        block_id = blocks.allocate()

        params = [partial(self.normalize, p) for p in _as_list(node.params)]
        declarations = [
            partial(self._hoisted_declaration, d) for d in hoisted_declarations(node.body)
        ]
        param_thunks, statement_thunks = partition_function_children(params, declarations)
        parameters = [thunk() for thunk in param_thunks]
        statements = [thunk() for thunk in statement_thunks]

        blocks.store(block_id, parameters, statements)
        return Node(
            type=NodeType.FUNCTION_LITERAL,
            id=node.id.name if node.id is not None else "",
            children=parameters + statements,
        )

    def _hoisted_declaration(self, node: Any) -> Node:
        if node.type == "VariableDeclaration":
            return Node(
                type=NodeType.VARIABLE_DECLARATION,
                children=self._children(node.declarations, None),
            )
        return self.normalize(node)

    def _binary_expression(self, node: Any, owner: Optional[str]) -> Node:
        return Node(
            type=NodeType.BINARY_EXPRESSION,
            id=node.operator,
            children=[self.normalize(node.left, owner), self.normalize(node.right, owner)],
            node_class=EXPRESSION_CLASS,
        )

    def _object_literal(self, node: Any, owner: Optional[str]) -> Node:
        result = Node(type=NodeType.OBJECT_LITERAL)
        for prop in _as_list(node.properties):
            child = self.normalize(prop, owner)
            result.children.append(child)
            if child.type == NodeType.OBJECT_PROPERTY:
                self._record_object_property(child, owner)
        return result

    def _if_statement(self, node: Any, owner: Optional[str]) -> Node:
        children = [self.normalize(node.test, owner), self.normalize(node.consequent, owner)]
        if node.alternate is not None:
            children.append(self.normalize(node.alternate, owner))
        return Node(type=NodeType.IF_STATEMENT, children=children)

    def _block_statement(self, node: Any, owner: Optional[str]) -> Node:
        return Node(type=NodeType.BLOCK_STATEMENT, children=self._children(node.body, owner))

    def _object_property(self, node: Any, owner: Optional[str]) -> Node:
        if node.computed:
            return self._unknown(node)
        key = node.key
        if getattr(key, "type", None) == "Identifier":
            name = key.name
        else:
            name = str(getattr(key, "value", ""))
        return Node(
            type=NodeType.OBJECT_PROPERTY,
            id=name,
            children=[self.normalize(node.value, owner)],
        )

    def _assign_expression(self, node: Any, owner: Optional[str]) -> Node:
        left = self.normalize(node.left, owner)
        if left.type == NodeType.IDENTIFIER:
            owner = left.id
        right = self.normalize(node.right, owner)
        if left.type == NodeType.DOT_EXPRESSION and left.children:
            self.context.symbols.record_property(left.children[0].id, left.id)
        return Node(
            type=NodeType.ASSIGN_EXPRESSION,
            id=node.operator,
            children=[left, right],
            node_class=EXPRESSION_CLASS,
        )

    def _function_statement(self, node: Any, owner: Optional[str]) -> Node:
        return Node(
            type=NodeType.FUNCTION_STATEMENT,
            children=[self._function_literal(node, owner)],
        )


def normalize_program(
    program: Any, context: Optional[AnalysisContext] = None
) -> tuple[list[Node], AnalysisContext]:
    """Normalize every top-level statement of ``program``."""
    normalizer = Normalizer(context)
    nodes = normalizer.normalize_program(program)
    return nodes, normalizer.context
