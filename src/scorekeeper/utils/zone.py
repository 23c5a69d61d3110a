from typing import Tuple

# Strike-zone pad size in zone coordinates; courses are a 5x5 grid over it.
ZONE_WIDTH = 260.0
ZONE_HEIGHT = 325.0
GRID = 5


def course_for(x: float, y: float) -> int:
    """Map a zone location to its course number 1..25 (row-major, top-left = 1)."""
    col = min(GRID - 1, max(0, int((float(x) / ZONE_WIDTH) * GRID)))
    row = min(GRID - 1, max(0, int((float(y) / ZONE_HEIGHT) * GRID)))
    return row * GRID + col + 1


def course_cell(course: int) -> Tuple[int, int]:
    return (course - 1) // GRID, (course - 1) % GRID
