"""Colour sequence for chart data series."""

from __future__ import annotations

from dataclasses import dataclass

GRAPH_COLOURS: tuple[str, ...] = (
    "red", "green", "yellow", "orange", "purple", "black",
    "maroon", "blue", "ltgreen", "navy", "ltred", "ltltgreen", "ltltorange",
    "olive", "gray", "ltltred", "ltorange", "lime", "ltblue", "ltltblue",
)


@dataclass
class GraphColours:
    """
    Cycles through GRAPH_COLOURS, one colour per data series.

    Each chart holds its own instance; next_index is the only state.
    """

    next_index: int = 0

    def next_colour(self) -> str:
        colour = GRAPH_COLOURS[self.next_index % len(GRAPH_COLOURS)]
        self.next_index = (self.next_index + 1) % len(GRAPH_COLOURS)
        return colour

    def reset(self) -> None:
        self.next_index = 0
