"""
Color sampling and shared-palette construction.

**Pass 1 -- Histogram accumulation:**
    Walk every normalized frame and count each exact RGBA value across
    the whole corpus (``ColorObservation``).

**Palette decision:**
    If the corpus holds no more than ``max_colors`` distinct colors the
    palette is exactly that set, sorted by channel tuple.  Otherwise the
    ``max_colors`` most frequent colors survive, in descending-count
    order, ties broken by ascending channel tuple.

Colors are packed into a single ``uint32`` (``r << 24 | g << 16 | b << 8 | a``)
for counting.  Ascending packed order is the same as ascending
lexicographic ``(r, g, b, a)`` order, which is what the tie-break relies on.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple

import numpy as np
from PIL import Image

from togif.types import MAX_PALETTE_SIZE, Color, Palette

logger = logging.getLogger(__name__)

FALLBACK_COLORS: Tuple[Color, ...] = (
    (0, 0, 0, 255),
    (255, 255, 255, 255),
)

LEGACY_COLORS: Tuple[Color, ...] = (
    (0, 0, 0, 255),        # Black
    (255, 255, 255, 255),  # White
    (255, 0, 0, 255),      # Red
    (0, 255, 0, 255),      # Green
    (0, 0, 255, 255),      # Blue
    (255, 255, 0, 255),    # Yellow
    (255, 0, 255, 255),    # Magenta
    (0, 255, 255, 255),    # Cyan
    (128, 128, 128, 255),  # Gray
)


# ---------------------------------------------------------------------------
# Packing helpers
# ---------------------------------------------------------------------------

def frame_pixels(frame: Image.Image) -> np.ndarray:
    """Return an ``(N, 4)`` uint8 array of the frame's RGBA pixels."""
    if frame.mode != "RGBA":
        frame = frame.convert("RGBA")
    return np.asarray(frame, dtype=np.uint8).reshape(-1, 4)


def pack_colors(pixels: np.ndarray) -> np.ndarray:
    """Pack an ``(N, 4)`` RGBA array into ``(N,)`` uint32 keys."""
    p = pixels.astype(np.uint32)
    return (p[:, 0] << 24) | (p[:, 1] << 16) | (p[:, 2] << 8) | p[:, 3]


def unpack_colors(keys: np.ndarray) -> np.ndarray:
    """Inverse of :func:`pack_colors`; returns an ``(N, 4)`` uint8 array."""
    keys = keys.astype(np.uint32)
    return np.stack(
        [(keys >> 24) & 0xFF, (keys >> 16) & 0xFF, (keys >> 8) & 0xFF, keys & 0xFF],
        axis=1,
    ).astype(np.uint8)


def _key_to_color(key: int) -> Color:
    return ((key >> 24) & 0xFF, (key >> 16) & 0xFF, (key >> 8) & 0xFF, key & 0xFF)


# ---------------------------------------------------------------------------
# Color sampling
# ---------------------------------------------------------------------------

class ColorObservation:
    """
    Multiset of exact RGBA colors seen across all frames.

    Memory grows with the number of *distinct* colors in the corpus (one
    dict entry each, up to 2**32 in the worst case) and is the dominant
    cost of the whole conversion.  Counts only grow until :meth:`freeze`
    is called; after that the observation is read-only.
    """

    def __init__(self) -> None:
        self._counts: Dict[int, int] = {}
        self._total = 0
        self._frozen = False

    def add_frame(self, frame: Image.Image) -> None:
        """Count every pixel of *frame*."""
        if self._frozen:
            raise RuntimeError("ColorObservation is frozen; sampling has finished.")
        keys, counts = np.unique(pack_colors(frame_pixels(frame)), return_counts=True)
        table = self._counts
        for key, count in zip(keys.tolist(), counts.tolist()):
            table[key] = table.get(key, 0) + count
        self._total += int(counts.sum())

    def freeze(self) -> "ColorObservation":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def total_pixels(self) -> int:
        return self._total

    def __len__(self) -> int:
        return len(self._counts)

    def counts(self) -> Mapping[Color, int]:
        """Read-only ``Color -> count`` view."""
        return MappingProxyType(
            {_key_to_color(k): v for k, v in self._counts.items()}
        )

    def most_common(self, n: int) -> List[Tuple[Color, int]]:
        """Top *n* colors by count; ties by ascending channel tuple."""
        ranked = sorted(self._counts.items(), key=lambda kv: (-kv[1], kv[0]))
        return [(_key_to_color(k), c) for k, c in ranked[:n]]

    def sorted_colors(self) -> List[Color]:
        """Every observed color, ascending by channel tuple."""
        return [_key_to_color(k) for k in sorted(self._counts)]


def sample_colors(frames: Iterable[Image.Image]) -> ColorObservation:
    """Accumulate a frozen :class:`ColorObservation` over *frames*."""
    observation = ColorObservation()
    for frame in frames:
        observation.add_frame(frame)
    return observation.freeze()


# ---------------------------------------------------------------------------
# Palette construction
# ---------------------------------------------------------------------------

def build_palette(
    observation: ColorObservation,
    max_colors: int = MAX_PALETTE_SIZE,
) -> Palette:
    """Derive the shared palette from a completed observation."""
    if not 1 <= max_colors <= MAX_PALETTE_SIZE:
        raise ValueError(f"max_colors must be 1 -- {MAX_PALETTE_SIZE}, got {max_colors}")

    distinct = len(observation)
    if distinct == 0:
        logger.info("No colors observed; using the black/white fallback palette.")
        return Palette(FALLBACK_COLORS)

    if distinct <= max_colors:
        logger.info("Palette keeps all %d observed colors.", distinct)
        return Palette(tuple(observation.sorted_colors()))

    logger.info(
        "%d distinct colors observed; keeping the %d most frequent.",
        distinct, max_colors,
    )
    return Palette(tuple(color for color, _ in observation.most_common(max_colors)))


def legacy_palette() -> Palette:
    """The fixed nine-color palette of the degraded legacy mode."""
    return Palette(LEGACY_COLORS)
