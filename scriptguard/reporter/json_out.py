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

"""Canonical JSON output for analysis reports: sorted keys, one trailing newline."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from scriptguard.models.analysis import AnalysisReport

logger = logging.getLogger(__name__)


def to_canonical_json(data: dict[str, Any] | Any) -> str:
    """Convert data (or a pydantic model) to a canonical JSON string.

    Models are dumped by alias, so nodes keep their ``Type``/``ID``/
    ``Children``/``Class`` keys.
    """
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json", by_alias=True)

    return json.dumps(data, sort_keys=True, indent=2, ensure_ascii=False) + "\n"


def write_report(report: AnalysisReport, output_path: Path) -> None:
    """Write an analysis report as canonical JSON to file."""
    content = to_canonical_json(report)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8", newline="\n")
    logger.info("Wrote report to %s", output_path)
