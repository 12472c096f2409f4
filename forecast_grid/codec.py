"""Cell text <-> (shot, man-day) pairs.

Two forms are accepted when typing into a cell:

    ``A/B``           shorthand, 1.0 MD split evenly -> A 0.5, B 0.5
    ``A:0.25/B:0.75`` explicit weights; a bare ``C`` defaults to 1.0

Segments that cannot be parsed are dropped rather than failing the cell.
"""

from __future__ import annotations

import logging
from typing import Iterable, Union

from .models import Assignment

logger = logging.getLogger(__name__)

SEGMENT_SEP = "/"
WEIGHT_SEP = ":"
EQUAL_TOLERANCE = 0.001

Pair = tuple[str, float]


def _parse_weight(raw: str) -> float | None:
    try:
        value = float(raw)
    except ValueError:
        return None
    if value != value:  # NaN
        return None
    return value


def decode(text: str | None) -> list[Pair]:
    """Parse a cell value into ``(item, weight)`` pairs. Blank -> []."""
    if not text or not text.strip():
        return []

    segments = [s.strip() for s in text.split(SEGMENT_SEP)]
    segments = [s for s in segments if s]
    if not segments:
        return []

    if not any(WEIGHT_SEP in s for s in segments):
        share = 1.0 / len(segments)
        return [(name, share) for name in segments]

    pairs: list[Pair] = []
    for segment in segments:
        # only the first ":" separates; "A:0.5:x" has an unreadable weight and is dropped
        name, _, raw_weight = segment.partition(WEIGHT_SEP)
        name = name.strip()
        raw_weight = raw_weight.strip()
        weight = _parse_weight(raw_weight) if raw_weight else 1.0
        if not name or weight is None:
            logger.debug("dropping malformed segment %r", segment)
            continue
        pairs.append((name, weight))
    return pairs


def _format_weight(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return text or "0"


def encode(entries: Iterable[Union[Assignment, Pair]]) -> str:
    """Render records or pairs back to cell text. Leave/idle are skipped."""
    pairs: list[Pair] = []
    for entry in entries:
        if isinstance(entry, Assignment):
            if not entry.is_work:
                continue
            pairs.append((entry.item, entry.weight))
        else:
            pairs.append((entry[0], float(entry[1])))

    if not pairs:
        return ""

    first = pairs[0][1]
    all_equal = all(abs(w - first) < EQUAL_TOLERANCE for _, w in pairs)
    if all_equal and abs(first - 1.0 / len(pairs)) < EQUAL_TOLERANCE:
        return SEGMENT_SEP.join(name for name, _ in pairs)
    return SEGMENT_SEP.join(f"{name}{WEIGHT_SEP}{_format_weight(w)}" for name, w in pairs)


def total_weight(pairs: Iterable[Pair]) -> float:
    return sum(w for _, w in pairs)
