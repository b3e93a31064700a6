# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""HTML rendering of the build matrix as a PR comment body.

Output shape (row_headers=["os", "compiler"], column_header="std"):

    <table>
      <thead><tr><th colspan="2">Environment</th><th>C++20</th><th>C++23</th></tr></thead>
      <tbody>
        <tr><th rowspan="2">ubuntu</th><th>clang</th><td><a href="...">✅success</a></td><td></td></tr>
        <tr><th>gcc</th><td>...</td><td>...</td></tr>
      </tbody>
    </table>

(emitted on one line, no whitespace between tags). Every interpolated value goes through
`escape_html`; this is the only sanitization before the text reaches the PR thread.
"""

from __future__ import annotations

import html
from typing import Iterable, List, Sequence

from .common_types import ResultRow
from .config import DEFAULT_COLUMN_LABEL_PREFIX
from .exceptions import ConfigError
from .matrix import MatrixGrid, build_grid, group_rows

ENVIRONMENT_LABEL = "Environment"


def escape_html(text: str) -> str:
    """Escape &, <, > and " (single quotes are left as-is)."""
    return html.escape(text or "", quote=False).replace('"', "&quot;")


def _render_cells(representative: ResultRow, grid: MatrixGrid) -> str:
    row_values = [representative.get(f) for f in grid.row_headers]
    tds: List[str] = []
    for col in grid.columns:
        cell = grid.cell(row_values, col)
        if cell is None:
            tds.append("<td></td>")
        else:
            tds.append(f'<td><a href="{escape_html(cell.url)}">{escape_html(cell.status)}</a></td>')
    return "".join(tds)


def render_rows(rows: Sequence[ResultRow], grid: MatrixGrid, depth: int = 0) -> List[str]:
    """Render `rows` (already sorted) into table-row fragments, one per leaf group.

    Each fragment is the inner HTML of a `<tr>`; the caller wraps it. A group's `<th>`
    goes on the first fragment of that group and spans all of its fragments.
    """
    if depth == len(grid.row_headers):
        return [_render_cells(rows[0], grid)]

    out: List[str] = []
    for value, group in group_rows(rows, grid.row_headers[depth]).items():
        child = render_rows(group, grid, depth + 1)
        span = len(child)
        if span > 1:
            th = f'<th rowspan="{span}">{escape_html(value)}</th>'
        else:
            th = f"<th>{escape_html(value)}</th>"
        child[0] = th + child[0]
        out.extend(child)
    return out


def render_table(grid: MatrixGrid, *, column_label_prefix: str = DEFAULT_COLUMN_LABEL_PREFIX) -> str:
    thead_cols = "".join(f"<th>{escape_html(column_label_prefix + col)}</th>" for col in grid.columns)
    thead = (
        f'<thead><tr><th colspan="{len(grid.row_headers)}">{ENVIRONMENT_LABEL}</th>{thead_cols}</tr></thead>'
    )
    body_rows = render_rows(grid.rows, grid) if grid.rows else []
    tbody = "<tbody>" + "".join(f"<tr>{r}</tr>" for r in body_rows) + "</tbody>"
    return f"<table>{thead}{tbody}</table>"


def generate_table(
    rows: Iterable[ResultRow],
    row_headers: Sequence[str],
    column_header: str,
    *,
    column_label_prefix: str = DEFAULT_COLUMN_LABEL_PREFIX,
) -> str:
    """Group `rows` and render the whole `<table>`; an empty row list gives a header-only table."""
    if not row_headers or any(not f for f in row_headers):
        raise ConfigError("row_headers must be a non-empty list of field names")
    if not column_header:
        raise ConfigError("column_header must be a non-empty field name")
    grid = build_grid(rows, row_headers, column_header)
    return render_table(grid, column_label_prefix=column_label_prefix)
