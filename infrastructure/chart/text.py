"""Plain-text implementation of ChartRenderer.

Draws one horizontal bar per bucket, scaled to the largest count. Keeps the
last rendering per link so callers (and tests) can read it back.
"""

from typing import Dict, List, Sequence, Tuple

_BAR = "█"


def render_bars(points: Sequence[Tuple[str, int]], width: int = 40) -> List[str]:
    if not points:
        return ["(no clicks yet)"]
    label_width = max(len(label) for label, _ in points)
    peak = max(value for _, value in points)
    lines = []
    for label, value in points:
        bar = _BAR * max(1, round(value / peak * width))
        lines.append(f"{label.rjust(label_width)} | {bar} {value}")
    return lines


class TextChartRenderer:
    def __init__(self, width: int = 40) -> None:
        self.width = width
        self.charts: Dict[str, str] = {}

    def render(self, code: str, points: Sequence[Tuple[str, int]]) -> None:
        self.charts[code] = "\n".join(render_bars(points, self.width))
