"""Label sizing: text measurement, width enforcement and metanode font scaling.

Rendered text width is not proportional to character count, so truncation
measures every candidate instead of computing a cut position.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from graphscene.config import SceneConfig
from graphscene.hierarchy.nodes import NodeType

ELLIPSIS = "..."


class TextMeasurer(Protocol):
    """Anything that can report the rendered width of a string."""

    def width(self, text: str, font_size: float) -> float: ...


class CharWidthMeasurer:
    """Estimate text width from per-glyph advance widths.

    Widths are in thousandths of an em for a proportional sans-serif face.
    Glyphs missing from the table use DEFAULT_WIDTH.
    """

    DEFAULT_WIDTH = 556
    GLYPH_WIDTHS: dict[str, int] = {
        " ": 278, "!": 278, '"': 355, "#": 556, "$": 556, "%": 889, "&": 667,
        "'": 191, "(": 333, ")": 333, "*": 389, "+": 584, ",": 278, "-": 333,
        ".": 278, "/": 278, ":": 278, ";": 278, "<": 584, "=": 584, ">": 584,
        "?": 556, "@": 1015, "[": 278, "\\": 278, "]": 278, "^": 469, "_": 556,
        "`": 333, "{": 334, "|": 260, "}": 334, "~": 584,
        "A": 667, "B": 667, "C": 722, "D": 722, "E": 667, "F": 611, "G": 778,
        "H": 722, "I": 278, "J": 500, "K": 667, "L": 556, "M": 833, "N": 722,
        "O": 778, "P": 667, "Q": 778, "R": 722, "S": 667, "T": 611, "U": 722,
        "V": 667, "W": 944, "X": 667, "Y": 667, "Z": 611,
        "a": 556, "b": 556, "c": 500, "d": 556, "e": 556, "f": 278, "g": 556,
        "h": 556, "i": 222, "j": 222, "k": 500, "l": 222, "m": 833, "n": 556,
        "o": 556, "p": 556, "q": 556, "r": 333, "s": 500, "t": 278, "u": 556,
        "v": 500, "w": 722, "x": 500, "y": 500, "z": 500,
    }  # fmt: skip

    def width(self, text: str, font_size: float) -> float:
        units = sum(self.GLYPH_WIDTHS.get(ch, self.DEFAULT_WIDTH) for ch in text)
        return units * font_size / 1000


@dataclass(frozen=True)
class FontScale:
    """Linear map from label length to font size, clamped to the range.

    Example:
        >>> scale = FontScale(domain=(11, 18), range=(9, 6))
        >>> scale(11), scale(18), scale(40)
        (9.0, 6.0, 6.0)
    """

    domain: tuple[float, float]
    range: tuple[float, float]

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return float(r0)
        t = (value - d0) / (d1 - d0)
        t = min(1.0, max(0.0, t))
        return float(r0 + t * (r1 - r0))


class FontScaleCache:
    """Holds the metanode label font scale.

    The scale is computed from the config passed with the first request and
    reused for the lifetime of the cache. Later config changes are not
    picked up; create a new cache for that.
    """

    def __init__(self) -> None:
        self._scale: FontScale | None = None

    def get(self, config: SceneConfig) -> FontScale:
        if self._scale is None:
            self._scale = FontScale(
                domain=(
                    config.max_metanode_label_length_large_font,
                    config.max_metanode_label_length,
                ),
                range=(
                    config.max_metanode_label_length_font_size,
                    config.min_metanode_label_length_font_size,
                ),
            )
        return self._scale

    @property
    def computed(self) -> bool:
        return self._scale is not None


@dataclass(frozen=True)
class LabelFit:
    """Result of fitting a label into a width budget.

    Attributes:
        text: The text to draw
        full_text: The original text, shown as a tooltip when truncated
        truncated: Whether ``text`` differs from ``full_text``
    """

    text: str
    full_text: str
    truncated: bool = False


def label_budget(
    config: SceneConfig,
    node_type: NodeType | None,
    expanded: bool = False,
    *,
    annotation: bool = False,
) -> float | None:
    """Pixel budget for a label, or None when the label is never truncated.

    Collapsed metanodes and ops have budgets; expanded metanodes, series
    and bridges do not. Annotation labels use their own budget.
    """
    if annotation:
        return config.annotation_max_label_width
    if node_type is NodeType.META:
        return None if expanded else config.meta_max_label_width
    if node_type is NodeType.OP:
        return config.op_max_label_width
    return None


def enforce_label_width(
    text: str,
    max_width: float | None,
    measure: TextMeasurer,
    font_size: float,
) -> LabelFit:
    """Truncate ``text`` with a trailing ellipsis until it fits ``max_width``.

    The prefix grows until its width first reaches the budget, then shrinks
    one character at a time, re-measuring ``prefix + "..."`` each step.
    """
    if max_width is None or measure.width(text, font_size) <= max_width:
        return LabelFit(text, text)

    i = 1
    while i < len(text) and measure.width(text[:i], font_size) < max_width:
        i += 1
    prefix = text[:i]

    while True:
        prefix = prefix[:-1]
        candidate = prefix + ELLIPSIS
        if measure.width(candidate, font_size) <= max_width or not prefix:
            break
    return LabelFit(candidate, text, truncated=True)


def shorten_metanode_label(text: str, max_length: int) -> str:
    """Cut a collapsed metanode label to ``max_length - 2`` characters plus an ellipsis."""
    if len(text) > max_length:
        return text[: max_length - 2] + ELLIPSIS
    return text
