# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Group result rows into a (row headers..., column) grid.

Rows carry arbitrary fields captured from the job name (os, compiler, std, ...).
`row_headers` picks the nested row dimensions (outermost first) and `column_header`
picks the dimension that becomes table columns.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from .common_types import CompositeKey, ResultRow

JS_DECIMAL_RE = re.compile(r"^[+-]?(?:(?P<inf>Infinity)|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)$")
JS_RADIX_RE = re.compile(r"^0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$")


def _numeric_value(value: str) -> float:
    """Number() semantics: surrounding whitespace ignored, "" is 0, junk is NaN.

    Only JS numeric literals parse, so Python-only spellings ("1_0", "inf", "nan") are NaN.
    """
    s = (value or "").strip()
    if not s:
        return 0.0
    m = JS_DECIMAL_RE.match(s)
    if m:
        if m.group("inf"):
            return -math.inf if s.startswith("-") else math.inf
        return float(s)
    if JS_RADIX_RE.match(s):
        # 0x1f / 0o17 / 0b101
        return float(int(s, 0))
    return math.nan


def column_sort_key(value: str) -> Tuple[int, float, str]:
    """Numeric order first; values that are not numbers go last, in string order."""
    num = _numeric_value(value)
    if math.isnan(num):
        return (1, 0.0, value)
    return (0, num, value)


def distinct_columns(rows: Iterable[ResultRow], column_header: str) -> List[str]:
    seen = {r.get(column_header) for r in rows}
    return sorted(seen, key=column_sort_key)


def row_sort_key(row: ResultRow, row_headers: Sequence[str], column_header: str) -> Tuple[str, ...]:
    # Row headers decide the order; column/url/status only make ties deterministic.
    return tuple(row.get(f) for f in row_headers) + (row.get(column_header), row.url, row.status)


def sort_rows(rows: Iterable[ResultRow], row_headers: Sequence[str], column_header: str) -> List[ResultRow]:
    return sorted(rows, key=lambda r: row_sort_key(r, row_headers, column_header))


def composite_key(row: ResultRow, row_headers: Sequence[str], column_header: str) -> CompositeKey:
    return tuple(row.get(f) for f in row_headers) + (row.get(column_header),)


def build_cell_map(
    sorted_rows: Iterable[ResultRow], row_headers: Sequence[str], column_header: str
) -> Dict[CompositeKey, ResultRow]:
    """Later rows overwrite earlier ones that share the same cell."""
    cells: Dict[CompositeKey, ResultRow] = {}
    for row in sorted_rows:
        cells[composite_key(row, row_headers, column_header)] = row
    return cells


def group_rows(rows: Iterable[ResultRow], field: str) -> Dict[str, List[ResultRow]]:
    """Partition by one field, keeping first-seen key order."""
    groups: Dict[str, List[ResultRow]] = {}
    for row in rows:
        groups.setdefault(row.get(field), []).append(row)
    return groups


@dataclass(frozen=True)
class MatrixGrid:
    row_headers: Tuple[str, ...]
    column_header: str
    columns: Tuple[str, ...]
    rows: Tuple[ResultRow, ...]  # sorted
    cells: Dict[CompositeKey, ResultRow]

    def cell(self, row_values: Sequence[str], column: str):
        return self.cells.get(tuple(row_values) + (column,))


def build_grid(rows: Iterable[ResultRow], row_headers: Sequence[str], column_header: str) -> MatrixGrid:
    rows = list(rows)
    ordered = sort_rows(rows, row_headers, column_header)
    return MatrixGrid(
        row_headers=tuple(row_headers),
        column_header=column_header,
        columns=tuple(distinct_columns(rows, column_header)),
        rows=tuple(ordered),
        cells=build_cell_map(ordered, row_headers, column_header),
    )
