"""
togif -- PNG sequence to animated GIF converter.

Builds one shared, frequency-ranked palette of at most 256 colors across
every input frame, requantizes each frame onto it, and writes a GIF
whose frames all match the first input's dimensions.
"""

__version__ = "0.1.0"

from togif.types import (
    AnimatedDocument,
    ConversionConfig,
    IndexedFrame,
    Palette,
    PaletteStrategy,
    ProgressEvent,
    ProgressStage,
)

__all__ = [
    "AnimatedDocument",
    "ConversionConfig",
    "IndexedFrame",
    "Palette",
    "PaletteStrategy",
    "ProgressEvent",
    "ProgressStage",
]
