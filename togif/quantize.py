"""
Frame requantization onto the shared palette.

Each pixel maps to its exact palette entry when one exists; any other
color maps to the entry with the smallest squared euclidean distance
over the four RGBA channels (lowest index wins ties).  No dithering.
The work is done once per *distinct* color of a frame, then scattered
back to the pixels.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, Iterator, Optional

import numpy as np
from PIL import Image

from togif.palette import frame_pixels, pack_colors, unpack_colors
from togif.types import IndexedFrame, Palette

logger = logging.getLogger(__name__)

# Colors compared against the palette per block in nearest-color search.
_NEAREST_BLOCK = 4096


class PaletteLookup:
    """Read-only lookup structure built once per palette."""

    def __init__(self, palette: Palette) -> None:
        self.palette = palette
        self._colors = np.array(palette.colors, dtype=np.int32).reshape(-1, 4)
        keys = pack_colors(self._colors)
        self._order = np.argsort(keys, kind="stable")
        self._sorted_keys = keys[self._order]

    def indices_for(self, keys: np.ndarray) -> np.ndarray:
        """Map packed color *keys* to palette indices."""
        result = np.empty(len(keys), dtype=np.int64)
        if len(keys) == 0:
            return result
        pos = np.searchsorted(self._sorted_keys, keys)
        pos = np.minimum(pos, len(self._sorted_keys) - 1)
        exact = self._sorted_keys[pos] == keys
        result[exact] = self._order[pos[exact]]
        missing = ~exact
        if missing.any():
            logger.debug("%d colors need nearest-color search.", int(missing.sum()))
            result[missing] = self.nearest(unpack_colors(keys[missing]))
        return result

    def nearest(self, colors: np.ndarray) -> np.ndarray:
        """Index of the closest palette entry for each ``(N, 4)`` color."""
        colors = colors.astype(np.int32)
        out = []
        for start in range(0, len(colors), _NEAREST_BLOCK):
            block = colors[start:start + _NEAREST_BLOCK]
            diff = block[:, None, :] - self._colors[None, :, :]
            dist = np.einsum("ijk,ijk->ij", diff, diff)
            out.append(np.argmin(dist, axis=1))
        return np.concatenate(out) if out else np.empty(0, dtype=np.int64)


def quantize_frame(
    frame: Image.Image,
    palette: Palette,
    lookup: Optional[PaletteLookup] = None,
) -> IndexedFrame:
    """Map every pixel of *frame* onto *palette*."""
    if lookup is None:
        lookup = PaletteLookup(palette)
    elif lookup.palette is not palette:
        raise ValueError("lookup was built for a different palette")
    keys = pack_colors(frame_pixels(frame))
    unique, inverse = np.unique(keys, return_inverse=True)
    indices = lookup.indices_for(unique)[inverse.reshape(-1)].astype(np.uint8)
    width, height = frame.size
    return IndexedFrame(width=width, height=height,
                        indices=indices.tobytes(), palette=palette)


def quantize_frames(
    items: Iterable[Any],
    palette: Palette,
    workers: int = 1,
    prepare: Optional[Callable[[Any], Image.Image]] = None,
) -> Iterator[IndexedFrame]:
    """Quantize *items* in order, optionally across worker threads.

    *prepare*, when given, turns each item into a frame inside the worker
    (for example decoding a path), so at most one decoded frame per
    worker is alive at a time.  Results are yielded in input order.
    """
    lookup = PaletteLookup(palette)

    def work(item: Any) -> IndexedFrame:
        frame = prepare(item) if prepare is not None else item
        return quantize_frame(frame, palette, lookup)

    if workers <= 1:
        for item in items:
            yield work(item)
        return
    with ThreadPoolExecutor(max_workers=workers) as pool:
        yield from pool.map(work, items)
