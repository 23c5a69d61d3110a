from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

import numpy as np

from ..schemas import PlayRecord
from ..utils.zone import GRID, course_cell


def pitch_chart(
    plays: Iterable[PlayRecord],
    pitcher_id: Optional[str] = None,
    results: Optional[Sequence[str]] = None,
) -> np.ndarray:
    """5x5 pitch counts per course, row-major from the top-left of the zone.

    Filter by pitcher and/or pitch result (``swing``, ``ball``, ...).
    """
    grid = np.zeros((GRID, GRID), dtype=int)
    wanted = set(results) if results else None
    for play in plays:
        if pitcher_id is not None and play.pitcher_id != pitcher_id:
            continue
        for p in play.pitches:
            if wanted is not None and p.result not in wanted:
                continue
            row, col = course_cell(p.course)
            grid[row, col] += 1
    return grid


def chart_percentages(grid: np.ndarray) -> List[List[float]]:
    total = float(grid.sum())
    if total <= 0:
        return np.zeros_like(grid, dtype=float).tolist()
    return np.round(grid / total * 100.0, 1).tolist()
