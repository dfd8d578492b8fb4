"""ChartRenderer protocol: the interface analytics controllers draw through."""

from typing import Protocol, Sequence, Tuple


class ChartRenderer(Protocol):
    def render(self, code: str, points: Sequence[Tuple[str, int]]) -> None: ...
