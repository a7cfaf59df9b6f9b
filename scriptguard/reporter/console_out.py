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

"""Rich terminal output for analysis runs.

Sections print in the order the analysis produces them: unsupported nodes,
the normalized tree, the symbol table, the rule set, rule violations in
traversal order, basic blocks, then the identifier dump and dependency graph
of one block.
"""

from __future__ import annotations

from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from scriptguard.models.analysis import (
    AnalysisReport,
    BasicBlock,
    DependencyGraph,
    StatementIdentifiers,
    Variable,
)
from scriptguard.models.nodes import Node
from scriptguard.models.rules import ActionType, Rule, Violation


def _make_console() -> Console:
    """Soft-wrapping console sized to the live terminal."""
    return Console(soft_wrap=True)


console = _make_console()

ICON_WARN = "[bold yellow][WARN][/bold yellow]"
ICON_FAIL = "[bold red][FAIL][/bold red]"


def _heading(title: str) -> None:
    console.print(f"\n[bold cyan]{title}[/bold cyan]")


def print_unknowns(unknowns: Sequence[str]) -> None:
    _heading("Unknowns:")
    if not unknowns:
        console.print("  [dim]none[/dim]")
    for notice in unknowns:
        console.print(f"  {escape(notice)}")


def print_nodes(nodes: Sequence[Node]) -> None:
    _heading("Nodes:")
    for node in nodes:
        console.print(f"  {escape(str(node))}")


def print_variables(variables: dict[str, Variable]) -> None:
    _heading("Variables:")
    if not variables:
        console.print("  [dim]none[/dim]")
        return
    table = Table(show_header=True, header_style="bold dim", border_style="dim", padding=(0, 1))
    table.add_column("Variable", style="cyan", overflow="fold")
    table.add_column("Properties", style="white", overflow="fold")
    for name, variable in variables.items():
        table.add_row(escape(name), escape(repr(variable.properties)))
    console.print(table)


def print_rules(rules: Sequence[Rule]) -> None:
    _heading("Rules:")
    if not rules:
        console.print("  [dim]none[/dim]")
        return
    table = Table(show_header=True, header_style="bold dim", border_style="dim", padding=(0, 1))
    table.add_column("Type", style="cyan", overflow="fold")
    table.add_column("ID", style="yellow", overflow="fold")
    table.add_column("Action", style="white")
    table.add_column("Info", style="white", overflow="fold")
    for rule in rules:
        table.add_row(
            escape(rule.type),
            escape(rule.id or "-"),
            escape(rule.action.type),
            escape(rule.action.info),
        )
    console.print(table)


def print_violation(violation: Violation) -> None:
    icon = ICON_FAIL if violation.action == ActionType.FAIL else ICON_WARN
    label = "Error" if violation.action == ActionType.FAIL else "Warning"
    where = violation.node_type + (f" {violation.node_id!r}" if violation.node_id else "")
    console.print(f"\n{icon} [bold]{label}:[/bold] {escape(violation.info)}")
    console.print(f"  [dim]{escape(violation.rule_type)} rule at {escape(where)}[/dim]")


def print_basic_blocks(blocks: dict[int, BasicBlock]) -> None:
    _heading("Basic Blocks:")
    if not blocks:
        console.print("  [dim]none[/dim]")
    for block_id in sorted(blocks):
        block = blocks[block_id]
        params = ", ".join(str(p) for p in block.parameters)
        console.print(f"  [bold]#{block_id}[/bold] parameters: {escape(params) or '-'}")
        for statement in block.statements:
            console.print(f"      {escape(str(statement))}")


def print_block_identifiers(block_id: int, dump: Sequence[StatementIdentifiers]) -> None:
    _heading(f"Basic block #{block_id}:")
    if not dump:
        console.print("  [dim]no statements[/dim]")
    for entry in dump:
        console.print(f"  {escape(str(entry.statement))}")
        console.print(f"    {escape(repr(entry.ids))}")


def print_dependency_graph(graph: Optional[DependencyGraph]) -> None:
    _heading("Dependency graph:")
    if graph is None or not graph.nodes:
        console.print("  [dim]none[/dim]")
        return
    for statement in graph.statements():
        uses = ", ".join(graph.nodes[i].label for i in graph.successors(statement.index))
        console.print(f"  #{statement.index} {escape(statement.label)} -> {escape(uses) or '-'}")
    for node in graph.nodes:
        if node.kind == "identifier":
            users = ", ".join(f"#{i}" for i in graph.statements_using(node.label))
            console.print(f"  [cyan]{escape(node.label)}[/cyan] used by {users}")


def print_failure(violation: Optional[Violation]) -> None:
    info = violation.info if violation else "rule failed"
    console.print(
        Panel(
            f"  {ICON_FAIL}  [bold red]ANALYSIS STOPPED[/bold red]\n\n  {escape(info)}",
            border_style="red",
            title="[bold red]scriptguard check[/bold red]",
            expand=True,
            safe_box=True,
        )
    )


def print_error(message: str) -> None:
    console.print(f"[red]Error: {escape(message)}[/red]")


def print_front_matter(report: AnalysisReport, *, show_nodes: bool = True) -> None:
    """Print what normalization alone produced."""
    print_unknowns(report.unknowns)
    if show_nodes:
        print_nodes(report.nodes)
    print_variables(report.variables)


def print_report(report: AnalysisReport, *, show_nodes: bool = True) -> None:
    """Print a full report in emission order."""
    print_front_matter(report, show_nodes=show_nodes)
    print_rules(report.rules)
    for violation in report.violations:
        print_violation(violation)

    if report.failed:
        print_failure(report.failure)
        return

    print_basic_blocks(report.basic_blocks)
    print_block_identifiers(report.block, report.block_identifiers)
    print_dependency_graph(report.dependency_graph)
