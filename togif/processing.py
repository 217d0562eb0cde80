"""
Frame decoding and geometry normalization.

Every source image is decoded to RGBA and, when its size differs from
the reference (first) frame, resampled onto the reference size:

    file  -->  load_frame()  -->  RGBA frame  -->  normalize_geometry()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from togif.exceptions import DecodeError, InputError

logger = logging.getLogger(__name__)

# Catmull-Rom cubic; Pillow premultiplies alpha while resampling RGBA.
RESAMPLE_FILTER = Image.Resampling.BICUBIC


def load_frame(path: Union[str, Path]) -> Image.Image:
    """Decode *path* into a fully loaded RGBA image."""
    path = Path(path)
    try:
        with Image.open(path) as img:
            img.load()
            frame = img.convert("RGBA")
    except (FileNotFoundError, IsADirectoryError, PermissionError) as exc:
        raise InputError(f"Error opening file {path}: {exc}", path) from exc
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise DecodeError(f"Error decoding image file {path}: {exc}", path) from exc
    if frame.width == 0 or frame.height == 0:
        raise DecodeError(f"Image file {path} has zero dimension {frame.size}.", path)
    return clear_transparent(frame)


def clear_transparent(frame: Image.Image) -> Image.Image:
    """Set every fully transparent pixel to ``(0, 0, 0, 0)``.

    Encoders may leave arbitrary RGB under alpha 0; such pixels would
    otherwise take separate, visibly opaque palette entries.
    """
    pixels = np.asarray(frame, dtype=np.uint8)
    hidden = pixels[:, :, 3] == 0
    if not hidden.any() or not pixels[hidden].any():
        return frame
    pixels = pixels.copy()
    pixels[hidden] = 0
    return Image.fromarray(pixels)


def normalize_geometry(frame: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """Return *frame* resampled to exactly *size*.

    A frame already at *size* is returned as-is, without copying.
    """
    if frame.size == tuple(size):
        return frame
    if frame.mode != "RGBA":
        frame = frame.convert("RGBA")
    logger.debug("Resizing frame %s -> %s", frame.size, tuple(size))
    return clear_transparent(frame.resize(tuple(size), resample=RESAMPLE_FILTER))


def iter_normalized_frames(
    paths: Iterable[Union[str, Path]],
    size: Optional[Tuple[int, int]] = None,
) -> Iterator[Tuple[Path, Image.Image]]:
    """Yield ``(path, frame)`` with every frame normalized to one size.

    When *size* is None the first decoded frame defines it.
    """
    for path in paths:
        frame = load_frame(path)
        if size is None:
            size = frame.size
        yield Path(path), normalize_geometry(frame, size)
