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

"""Analysis pipeline: parse → normalize → check rules → extract blocks.

Each run builds a fresh ``AnalysisContext``, so repeated runs in one
process never see each other's symbols or blocks. The CLI drives the two
stages separately so the normalized tree is available before the rule file
is read.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from scriptguard.errors import RuleFailure
from scriptguard.models.analysis import AnalysisReport
from scriptguard.models.rules import Rule
from scriptguard.policy.rule_engine import RuleEngine
from scriptguard.scanner.blocks import block_identifier_dump, build_dependency_graph
from scriptguard.scanner.js_parser import parse_script_file
from scriptguard.scanner.normalizer import AnalysisContext, normalize_program

logger = logging.getLogger(__name__)


def prepare_report(
    script_path: str | Path, *, block: int = 0
) -> tuple[AnalysisReport, AnalysisContext]:
    """Parse and normalize a script.

    Returns a report holding the unknowns, nodes and variables, plus the
    context the rule stage needs. Raises ``ScriptParseError`` for unreadable
    or unparsable scripts.
    """
    path = Path(script_path)
    program = parse_script_file(path)
    nodes, context = normalize_program(program)

    report = AnalysisReport(
        script=str(path),
        unknowns=list(context.unknowns),
        nodes=nodes,
        variables=context.symbols.as_dict(),
        block=block,
    )
    return report, context


def run_rules(
    report: AnalysisReport,
    context: AnalysisContext,
    rules: Sequence[Rule],
    *,
    rules_file: str = "",
) -> AnalysisReport:
    """Evaluate ``rules`` over the report's nodes, then extract block output.

    A ``fail`` rule does not raise: the report has ``failed`` set, carries
    the violations up to and including the failing one, and has no block
    output because nothing after the failure is evaluated.
    """
    report.rules = list(rules)
    report.rules_file = rules_file

    engine = RuleEngine(rules, context.symbols)
    try:
        engine.check_nodes(report.nodes)
    except RuleFailure as failure:
        report.violations = list(engine.violations)
        report.failed = True
        report.failure = failure.violation
        return report
    report.violations = list(engine.violations)

    report.basic_blocks = context.blocks.as_dict()
    selected = context.blocks.get(report.block)
    if selected is None:
        logger.debug(
            "No basic block %d in %s (%d block(s))",
            report.block, report.script, len(context.blocks),
        )
    else:
        report.block_identifiers = block_identifier_dump(selected)
        report.dependency_graph = build_dependency_graph(selected)

    logger.info(
        "Analyzed %s: %d node(s), %d violation(s), %d block(s)",
        report.script, len(report.nodes), len(report.violations), len(context.blocks),
    )
    return report


def analyze_script(
    script_path: str | Path,
    rules: Sequence[Rule],
    *,
    block: int = 0,
    rules_file: str = "",
) -> AnalysisReport:
    """Run every analysis stage over one script."""
    report, context = prepare_report(script_path, block=block)
    return run_rules(report, context, rules, rules_file=rules_file)
