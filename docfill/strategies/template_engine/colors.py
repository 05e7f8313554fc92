"""Variable-to-color mapping for hint drawing.

Each template variable gets a highlighter color; a hint drawn with a
variable's color carries that variable as its label.
"""

from collections.abc import Iterable

VARIABLE_COLORS: tuple[str, ...] = (
    "#EF4444",  # red
    "#3B82F6",  # blue
    "#22C55E",  # green
    "#F97316",  # orange
    "#A855F7",  # purple
    "#EC4899",  # pink
    "#06B6D4",  # cyan
    "#EAB308",  # yellow
    "#6366F1",  # indigo
    "#14B8A6",  # teal
)

DEFAULT_HIGHLIGHT = "#ffff00"


def build_variable_color_map(variables: Iterable[str]) -> dict[str, str]:
    """Assign palette colors to variables cyclically, in order."""
    return {
        variable: VARIABLE_COLORS[i % len(VARIABLE_COLORS)]
        for i, variable in enumerate(variables)
    }


def color_for(
    variable: str | None,
    color_map: dict[str, str],
    default: str = DEFAULT_HIGHLIGHT,
) -> str:
    if variable is None:
        return default
    return color_map.get(variable, default)
