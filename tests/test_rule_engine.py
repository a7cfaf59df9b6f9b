"""Tests for the rule evaluation engine."""

from pathlib import Path

import pytest

from scriptguard.errors import RuleFailure, RuleFileError
from scriptguard.models.nodes import EXPRESSION_CLASS, Node, NodeType
from scriptguard.models.rules import Rule, RuleAction
from scriptguard.policy.rule_engine import (
    RuleEngine,
    contains_identifier,
    contains_str,
    load_rules,
    merge_str_lists,
    node_identifiers,
    rule_applies,
)
from scriptguard.scanner.symbols import SymbolTable

FIXTURES = Path(__file__).parent / "fixtures"


def _ident(name: str) -> Node:
    return Node(type=NodeType.IDENTIFIER, id=name)


def _call(*children: Node) -> Node:
    return Node(type=NodeType.CALL_EXPRESSION, node_class=EXPRESSION_CLASS, children=list(children))


@pytest.fixture
def symbols() -> SymbolTable:
    table = SymbolTable()
    table.declare("test")
    table.record_property("test", "test_prop")
    return table


class TestStringHelpers:
    """merge / contains helpers."""

    def test_merge_keeps_order_and_length(self):
        a = ["a string", "array"]
        b = ["has", "been merged"]
        merged = merge_str_lists(a, b)
        assert merged == ["a string", "array", "has", "been merged"]
        assert len(merged) == len(a) + len(b)

    def test_merge_does_not_mutate_inputs(self):
        a = ["x"]
        merge_str_lists(a, ["y"])
        assert a == ["x"]

    def test_merge_empty(self):
        assert merge_str_lists([], []) == []

    def test_contains_str(self):
        items = ["foo", "bar", "lorem", "ipsum"]
        assert contains_str(items, "bar")
        assert not contains_str(items, "not_in_array")

    def test_contains_str_has_no_wildcard(self):
        assert not contains_str(["foo"], "*")

    def test_contains_identifier(self):
        items = ["foo", "bar", "lorem", "ipsum"]
        assert contains_identifier(items, "bar")
        assert not contains_identifier(items, "not_in_array")

    def test_wildcard_always_contained(self):
        assert contains_identifier([], "*")
        assert contains_identifier(["foo"], "*")


class TestNodeIdentifiers:
    def test_identifier_yields_itself(self):
        assert node_identifiers(_ident("x")) == ["x"]

    def test_direct_identifier_children(self):
        assert node_identifiers(_call(_ident("b"), _ident("eval"))) == ["b", "eval"]

    def test_non_identifier_children_are_skipped(self):
        statement = Node(
            type=NodeType.EXPRESSION_STATEMENT,
            node_class=EXPRESSION_CLASS,
            children=[_call(_ident("eval"))],
        )
        assert node_identifiers(statement) == []


class TestRuleApplies:
    """Expression and PropertyDoesNotExist conditions."""

    def test_expression_rule(self, symbols: SymbolTable):
        rule = Rule(type="Expression", id="eval")
        node = Node(
            type=NodeType.EXPRESSION_STATEMENT,
            node_class=EXPRESSION_CLASS,
            children=[_ident("eval")],
        )
        assert rule_applies(rule, node, symbols)

        node.children[0] = _ident("not_eval")
        assert not rule_applies(rule, node, symbols)

        rule.id = "*"
        assert rule_applies(rule, node, symbols)

    def test_wildcard_needs_expression_class(self, symbols: SymbolTable):
        rule = Rule(type="Expression", id="*")
        assert not rule_applies(rule, _ident("eval"), symbols)
        assert rule_applies(rule, _call(), symbols)

    def test_property_does_not_exist(self, symbols: SymbolTable):
        rule = Rule(type="PropertyDoesNotExist")
        node = Node(type=NodeType.DOT_EXPRESSION, id="test_prop", children=[_ident("test")])
        assert not rule_applies(rule, node, symbols)

        node.id = "does_not_exist"
        assert rule_applies(rule, node, symbols)

        node.type = NodeType.CALL_EXPRESSION
        assert not rule_applies(rule, node, symbols)

    def test_property_rule_ignores_undeclared_variable(self, symbols: SymbolTable):
        rule = Rule(type="PropertyDoesNotExist")
        node = Node(type=NodeType.DOT_EXPRESSION, id="anything", children=[_ident("unknown")])
        assert not rule_applies(rule, node, symbols)

    def test_property_rule_without_left_operand(self, symbols: SymbolTable):
        rule = Rule(type="PropertyDoesNotExist")
        node = Node(type=NodeType.DOT_EXPRESSION, id="anything")
        assert not rule_applies(rule, node, symbols)

    def test_unknown_rule_type_never_applies(self, symbols: SymbolTable):
        rule = Rule(type="SomethingElse", id="*")
        assert not rule_applies(rule, _call(_ident("eval")), symbols)


class TestLoadRules:
    """Rule file parsing."""

    def test_parses_rule_file(self):
        rules = load_rules(FIXTURES / "rules" / "strict.json")
        assert rules == [
            Rule(
                type="Expression",
                id="eval",
                action=RuleAction(type="warn", info="Eval is a dangerous expression, please don't use it"),
            ),
            Rule(
                type="PropertyDoesNotExist",
                action=RuleAction(type="fail", info="Script attempts to access property that does not exist"),
            ),
        ]

    def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(RuleFileError):
            load_rules(tmp_path / "fileDoesNotExist.json")

    def test_malformed_json_raises(self):
        with pytest.raises(RuleFileError):
            load_rules(FIXTURES / "rules" / "malformed.json")

    def test_non_array_raises(self, tmp_path: Path):
        path = tmp_path / "rules.json"
        path.write_text('{"Type": "Expression"}')
        with pytest.raises(RuleFileError):
            load_rules(path)

    def test_entry_without_type_raises(self, tmp_path: Path):
        path = tmp_path / "rules.json"
        path.write_text('[{"ID": "eval"}]')
        with pytest.raises(RuleFileError):
            load_rules(path)

    def test_empty_array_is_empty_rule_set(self, tmp_path: Path):
        path = tmp_path / "rules.json"
        path.write_text("[]")
        assert load_rules(path) == []


class TestRuleEngine:
    """Traversal and action semantics."""

    def _tree(self) -> list[Node]:
        first = Node(
            type=NodeType.EXPRESSION_STATEMENT,
            node_class=EXPRESSION_CLASS,
            children=[_call(_ident("b"), _ident("eval"))],
        )
        second = Node(
            type=NodeType.EXPRESSION_STATEMENT,
            node_class=EXPRESSION_CLASS,
            children=[_call(_ident("eval"))],
        )
        return [first, second]

    def test_warn_continues(self, symbols: SymbolTable):
        rule = Rule(type="Expression", id="eval", action=RuleAction(type="warn", info="no eval"))
        engine = RuleEngine([rule], symbols)
        violations = engine.check_nodes(self._tree())
        assert len(violations) == 2
        assert all(v.action == "warn" for v in violations)
        assert violations[0].node_type == "CallExpression"

    def test_fail_stops_traversal(self, symbols: SymbolTable):
        rule = Rule(type="Expression", id="eval", action=RuleAction(type="fail", info="no eval"))
        engine = RuleEngine([rule], symbols)
        with pytest.raises(RuleFailure) as exc_info:
            engine.check_nodes(self._tree())
        assert exc_info.value.violation.info == "no eval"
        assert len(engine.violations) == 1

    def test_match_does_not_prune_children(self, symbols: SymbolTable):
        rule = Rule(type="Expression", id="*", action=RuleAction(type="warn", info="any"))
        engine = RuleEngine([rule], symbols)
        engine.check_nodes(self._tree())
        # statement + call, twice
        assert len(engine.violations) == 4

    def test_unknown_action_is_not_recorded(self, symbols: SymbolTable, caplog):
        rule = Rule(type="Expression", id="eval", action=RuleAction(type="explode", info="?"))
        engine = RuleEngine([rule], symbols)
        with caplog.at_level("WARNING"):
            engine.check_nodes(self._tree())
        assert engine.violations == []
        assert "not implemented" in caplog.text

    def test_rules_evaluated_in_declaration_order(self, symbols: SymbolTable):
        rules = [
            Rule(type="Expression", id="b", action=RuleAction(type="warn", info="first")),
            Rule(type="Expression", id="eval", action=RuleAction(type="warn", info="second")),
        ]
        engine = RuleEngine(rules, symbols)
        engine.check_node(self._tree()[0])
        assert [v.info for v in engine.violations] == ["first", "second"]
