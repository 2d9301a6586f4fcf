"""
Symmetric matrix of pairwise LD results and its tabular projections.
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple
import typing

import numpy as np

from .ld import LDResult


if typing.TYPE_CHECKING:
    import pandas as pd


STATISTICS = ("d_prime", "r_squared")


def _check_stat(stat: str):
    if stat not in STATISTICS:
        raise ValueError(stat)


class LDMatrix(object):
    """LD results indexed by pairs of variant ids.

    ``set`` is the only write operation and stores the result for both
    (a, b) and (b, a), so the matrix is always symmetric.

    """
    def __init__(self):
        self.ids: List[str] = []
        self.cells: Dict[str, Dict[str, LDResult]] = {}

    def _add_id(self, variant_id: str):
        if variant_id not in self.cells:
            self.ids.append(variant_id)
            self.cells[variant_id] = {}

    def set(self, a: str, b: str, result: LDResult):
        self._add_id(a)
        self._add_id(b)
        self.cells[a][b] = result
        self.cells[b][a] = result

    def get(self, a: str, b: str) -> Optional[LDResult]:
        return self.cells.get(a, {}).get(b)

    def __getitem__(self, key: Tuple[str, str]) -> LDResult:
        a, b = key
        return self.cells[a][b]

    def __contains__(self, key) -> bool:
        a, b = key
        return self.get(a, b) is not None

    def __len__(self) -> int:
        return len(self.ids)

    def to_array(self, stat: str = "r_squared") -> np.ndarray:
        """Matrix of a statistic in the order of ``ids``.

        Pairs without a result are NaN.

        """
        _check_stat(stat)
        n = len(self.ids)
        m = np.full((n, n), np.nan)
        for i, a in enumerate(self.ids):
            for j, b in enumerate(self.ids):
                result = self.get(a, b)
                if result is not None:
                    m[i, j] = getattr(result, stat)

        return m

    def to_frame(self, stat: str = "r_squared") -> "pd.DataFrame":
        import pandas as pd
        return pd.DataFrame(
            self.to_array(stat), index=self.ids, columns=self.ids
        )

    def __repr__(self):
        return f"<LDMatrix - {len(self.ids)} variants>"


def as_matrix(
    records: Iterable[LDResult],
    x_key: Callable[[LDResult], str] = lambda r: r.variant_a,
    y_key: Callable[[LDResult], str] = lambda r: r.variant_b,
) -> LDMatrix:
    matrix = LDMatrix()
    for record in records:
        matrix.set(x_key(record), y_key(record), record)

    return matrix


def format_value(value: float) -> str:
    return f"{value:.3f}"


def get_table(matrix: LDMatrix) -> List[List[str]]:
    """Header row and one row per variant with both statistics per cell."""
    header = ["id"] + matrix.ids
    rows = [header]
    for a in matrix.ids:
        row = [a]
        for b in matrix.ids:
            result = matrix.get(a, b)
            if result is None:
                row.append("")
            else:
                row.append(
                    f"D' = {format_value(result.d_prime)}\n"
                    f"R² = {format_value(result.r_squared)}"
                )

        rows.append(row)

    return rows


def get_export_table(matrix: LDMatrix, stat: str) -> List[List[str]]:
    _check_stat(stat)
    rows = [["id"] + matrix.ids]
    for a in matrix.ids:
        row = [a]
        for b in matrix.ids:
            result = matrix.get(a, b)
            row.append(
                "" if result is None else format_value(getattr(result, stat))
            )

        rows.append(row)

    return rows


def get_export_tables(
    matrix: LDMatrix
) -> Tuple[List[List[str]], List[List[str]]]:
    """Returns the (D', r²) tables for export."""
    return (
        get_export_table(matrix, "d_prime"),
        get_export_table(matrix, "r_squared"),
    )


def format_delimited(rows: Sequence[Sequence[str]], delimiter="\t") -> str:
    return "\r\n".join(delimiter.join(row) for row in rows)


def write_delimited(
    rows: Sequence[Sequence[str]],
    filename: str,
    delimiter="\t"
):
    # newline="" keeps the \r\n separators untouched on all platforms.
    with open(filename, "w", encoding="utf-8", newline="") as f:
        f.write(format_delimited(rows, delimiter))
