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

"""ScriptGuard CLI — Typer entry point.

Commands:
- scriptguard check <script> [rules]  — normalize the script, evaluate rules
- scriptguard version                 — print the installed version

Exit status: 0 on success, 1 when a ``fail`` rule matches, 2 on unreadable
or malformed input (script, rule file, config).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from scriptguard import __version__
from scriptguard.config import load_config
from scriptguard.errors import InputError
from scriptguard.policy.rule_engine import load_rules
from scriptguard.reporter.console_out import (
    console,
    print_error,
    print_front_matter,
    print_report,
)
from scriptguard.reporter.json_out import to_canonical_json, write_report
from scriptguard.scanner.coordinator import prepare_report, run_rules

app = typer.Typer(
    name="scriptguard",
    help=(
        "ScriptGuard: rule-driven static analysis for JavaScript. "
        "Run 'scriptguard <command> --help' for flags."
    ),
    add_completion=False,
)

logger = logging.getLogger("scriptguard")

EXIT_RULE_FAILURE = 1
EXIT_INPUT_ERROR = 2


def _configure_logging(*, verbose: bool, quiet: bool) -> None:
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@app.command()
def check(
    script: str = typer.Argument(..., help="JavaScript file to analyze"),
    rules: Optional[str] = typer.Argument(
        None, help="JSON rule file (default: config, $SCRIPTGUARD_RULES, or bundled rules)"
    ),
    config: Optional[str] = typer.Option(None, "--config", help="Path to a YAML settings file"),
    block: Optional[int] = typer.Option(None, "--block", help="Basic block whose identifiers to dump"),
    output_json: bool = typer.Option(False, "--json", help="Output the report as JSON to stdout"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Also write the JSON report to a file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress all output except errors"),
) -> None:
    """Analyze a script against a rule file.

    Prints unsupported nodes, the normalized tree, the symbol table, the
    rules, every violation, the basic blocks and the identifier dump of one
    block. Stops at the first rule whose action is "fail".
    """
    _configure_logging(verbose=verbose, quiet=quiet)

    try:
        settings = load_config(config)
        if rules:
            settings.rules_file = rules
        if block is not None:
            settings.block = block
        rules_path = settings.resolved_rules_file()
        report, context = prepare_report(script, block=settings.block)
    except InputError as e:
        print_error(str(e))
        raise typer.Exit(code=EXIT_INPUT_ERROR)

    # The normalized tree is shown before a bad rule file is reported.
    try:
        rule_set = load_rules(rules_path)
    except InputError as e:
        if not output_json and not quiet:
            print_front_matter(report, show_nodes=settings.show_nodes)
        print_error(str(e))
        raise typer.Exit(code=EXIT_INPUT_ERROR)

    report = run_rules(report, context, rule_set, rules_file=str(rules_path))

    if output:
        write_report(report, Path(output))

    if output_json:
        typer.echo(to_canonical_json(report), nl=False)
    elif not quiet:
        print_report(report, show_nodes=settings.show_nodes)

    if report.failed:
        raise typer.Exit(code=EXIT_RULE_FAILURE)


@app.command()
def version() -> None:
    """Print the ScriptGuard version."""
    console.print(f"scriptguard {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
