"""
Two-pass conversion pipeline.

    files --> [decode + normalize] --> ColorObservation     (pass 1)
                                            |
                                       build_palette
                                            |
    files --> [decode + normalize] --> quantize_frame       (pass 2)
                                            |
                                  assemble --> GIF bytes --> output

Frames are decoded twice so that only one decoded frame (per worker) is
held in memory at a time; the palette needs the whole corpus before any
frame can be quantized.  With ``PaletteStrategy.LEGACY`` the palette is
fixed and pass 1 is skipped.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from PIL import Image

from togif.assembly import assemble, write_document
from togif.exceptions import InputError
from togif.inputs import validate_input_files
from togif.palette import ColorObservation, build_palette, legacy_palette
from togif.processing import iter_normalized_frames, load_frame, normalize_geometry
from togif.progress import NullProgress
from togif.quantize import quantize_frames
from togif.types import (
    ConversionConfig,
    IndexedFrame,
    Palette,
    PaletteStrategy,
    ProgressEvent,
    ProgressStage,
)

logger = logging.getLogger(__name__)

FINAL_STEP_NAME = "Creating output GIF"


def sample_files(
    paths: Sequence[Path],
    progress=None,
    step_total: Optional[int] = None,
) -> Tuple[ColorObservation, Tuple[int, int]]:
    """Pass 1: count colors over every normalized frame.

    Returns the frozen observation and the reference size.
    """
    progress = progress or NullProgress()
    total = step_total if step_total is not None else len(paths)
    observation = ColorObservation()
    size: Optional[Tuple[int, int]] = None
    for i, (path, frame) in enumerate(iter_normalized_frames(paths)):
        progress.emit(ProgressEvent(str(path), i, total, ProgressStage.SAMPLING))
        size = frame.size
        observation.add_frame(frame)
    if size is None:
        raise InputError("No input files specified.")
    return observation.freeze(), size


def quantize_files(
    paths: Sequence[Path],
    palette: Palette,
    size: Optional[Tuple[int, int]] = None,
    workers: int = 1,
    progress=None,
    step_offset: int = 0,
    step_total: Optional[int] = None,
) -> List[IndexedFrame]:
    """Pass 2: re-read, re-normalize and quantize every file in order."""
    progress = progress or NullProgress()
    total = step_total if step_total is not None else len(paths)
    if size is None:
        size = load_frame(paths[0]).size

    def prepare(path: Path) -> Image.Image:
        return normalize_geometry(load_frame(path), size)

    results = quantize_frames(paths, palette, workers=workers, prepare=prepare)
    indexed: List[IndexedFrame] = []
    for i, (path, frame) in enumerate(zip(paths, results)):
        progress.emit(ProgressEvent(str(path), step_offset + i, total,
                                    ProgressStage.QUANTIZING))
        indexed.append(frame)
    return indexed


def convert(
    input_files: Sequence[Union[str, Path]],
    output_path: Union[str, Path],
    delay_ms: Optional[int] = None,
    config: Optional[ConversionConfig] = None,
    progress=None,
) -> Path:
    """Convert *input_files* into one animated GIF at *output_path*.

    ``delay_ms`` overrides ``config.delay_ms``.  Any failure aborts the
    whole conversion; nothing is written before every frame succeeded.
    """
    config = config or ConversionConfig()
    if delay_ms is not None:
        config = replace(config, delay_ms=delay_ms)
    config.validate()
    progress = progress or NullProgress()
    output_path = Path(output_path)

    paths = validate_input_files(input_files, config.extensions)
    n = len(paths)
    t_start = time.perf_counter()

    if config.palette_strategy is PaletteStrategy.LEGACY:
        total = n
        palette = legacy_palette()
        size = None
        step_offset = 0
    else:
        total = 2 * n
        logger.info("Pass 1: sampling colors from %d frames...", n)
        observation, size = sample_files(paths, progress, step_total=total)
        palette = build_palette(observation, config.max_colors)
        step_offset = n

    logger.info("Pass 2: quantizing %d frames onto %d colors...", n, len(palette))
    indexed = quantize_files(
        paths, palette, size=size, workers=config.workers,
        progress=progress, step_offset=step_offset, step_total=total,
    )

    document = assemble(indexed, config.delay_ms)
    progress.emit(ProgressEvent(FINAL_STEP_NAME, total, total, ProgressStage.WRITING))
    write_document(document, output_path)
    progress.emit(ProgressEvent(FINAL_STEP_NAME, total, total, ProgressStage.DONE,
                                output_path=output_path))

    logger.info("Converted %d frames in %.2fs.", n, time.perf_counter() - t_start)
    return output_path
