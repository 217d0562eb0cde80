"""
Animation assembly engine.

Combines indexed frames with a uniform display duration into an
:class:`~togif.types.AnimatedDocument` and serializes it as GIF89a.

Document layout::

    Header + logical screen descriptor
    Global color table            (the shared palette, padded to 2**n)
    for each frame:
        Graphic control extension (duration, disposal, transparency)
        Image descriptor          (full frame, no local color table)
        LZW image data
    Trailer

The container is written frame by frame with Pillow's GIF codec rather
than ``Image.save(save_all=True)``: the latter merges identical
consecutive frames and may rewrite palettes, which would break the
one-frame-per-input and shared-palette guarantees.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence, Union

from PIL import GifImagePlugin

from togif.exceptions import OutputError, ValidationError
from togif.types import AnimatedDocument, IndexedFrame

logger = logging.getLogger(__name__)

# GIF stores durations in hundredths of a second.
MS_PER_TICK = 10

# Restore to background before the next frame; frames are independent.
DISPOSAL_RESTORE_BACKGROUND = 2

GIF_TRAILER = b";"


def to_centiseconds(delay_ms: int) -> int:
    """Convert milliseconds to GIF ticks, truncating any remainder."""
    if isinstance(delay_ms, bool) or not isinstance(delay_ms, int):
        raise ValidationError(f"Frame delay must be an integer, got {delay_ms!r}.")
    if delay_ms < 0:
        raise ValidationError(f"Frame delay must be non-negative, got {delay_ms}.")
    return delay_ms // MS_PER_TICK


def assemble(indexed_frames: Sequence[IndexedFrame], delay_ms: int) -> AnimatedDocument:
    """Build a document with the same duration on every frame."""
    ticks = to_centiseconds(delay_ms)
    if not indexed_frames:
        raise ValidationError("No frames to assemble.")
    palette = indexed_frames[0].palette
    return AnimatedDocument(
        frames=tuple(indexed_frames),
        durations=(ticks,) * len(indexed_frames),
        palette=palette,
    )


def encode_gif(document: AnimatedDocument) -> bytes:
    """Serialize *document* to GIF89a bytes.

    Identical documents always produce identical bytes.
    """
    palette = document.palette
    transparency = palette.transparent_index

    screen = document.frames[0].to_image()
    screen.info["version"] = b"89a"
    header, _ = GifImagePlugin.getheader(screen, info={})
    chunks = list(header)

    for frame, ticks in zip(document.frames, document.durations):
        params = {
            "duration": ticks * MS_PER_TICK,
            "disposal": DISPOSAL_RESTORE_BACKGROUND,
        }
        if transparency is not None:
            params["transparency"] = transparency
        chunks.extend(GifImagePlugin.getdata(frame.to_image(), **params))

    chunks.append(GIF_TRAILER)
    return b"".join(bytes(c) for c in chunks)


def write_document(document: AnimatedDocument, output_path: Union[str, Path]) -> Path:
    """Encode *document* and write it to *output_path*."""
    output_path = Path(output_path)
    data = encode_gif(document)
    try:
        output_path.write_bytes(data)
    except OSError as exc:
        raise OutputError(f"Error writing output file {output_path}: {exc}", output_path) from exc
    logger.info(
        "Wrote %s: %d frames, %dx%d, %d palette entries, %d bytes.",
        output_path, document.frame_count, document.width, document.height,
        len(document.palette), len(data),
    )
    return output_path
