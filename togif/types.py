"""
Core data structures shared by every stage of the conversion pipeline.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Tuple

from PIL import Image

from togif.exceptions import ValidationError

Color = Tuple[int, int, int, int]

MAX_PALETTE_SIZE = 256


class PaletteStrategy(enum.Enum):
    """How the shared color table is chosen."""
    FREQUENCY = "frequency"   # Global frequency-ranked palette (two passes).
    LEGACY = "legacy"         # Fixed nine-color palette, no sampling pass.


class ProgressStage(enum.Enum):
    """Pipeline stage a progress event belongs to."""
    SAMPLING = "sampling"
    QUANTIZING = "quantizing"
    WRITING = "writing"
    DONE = "done"


@dataclass(frozen=True)
class Palette:
    """Ordered table of at most 256 distinct RGBA colors."""
    colors: Tuple[Color, ...]

    def __post_init__(self) -> None:
        colors = tuple(tuple(int(ch) for ch in c) for c in self.colors)
        if not colors:
            raise ValueError("A palette needs at least one color.")
        if len(colors) > MAX_PALETTE_SIZE:
            raise ValueError(
                f"Palette has {len(colors)} colors; the limit is {MAX_PALETTE_SIZE}."
            )
        for c in colors:
            if len(c) != 4 or any(ch < 0 or ch > 255 for ch in c):
                raise ValueError(f"Invalid RGBA color: {c!r}")
        if len(set(colors)) != len(colors):
            raise ValueError("Palette contains duplicate colors.")
        object.__setattr__(self, "colors", colors)

    def __len__(self) -> int:
        return len(self.colors)

    def __iter__(self) -> Iterator[Color]:
        return iter(self.colors)

    def __getitem__(self, index: int) -> Color:
        return self.colors[index]

    def __contains__(self, color: object) -> bool:
        return color in self.colors

    def index_of(self, color: Color) -> int:
        """Return the index of *color*; raises ValueError if absent."""
        return self.colors.index(tuple(color))

    @property
    def transparent_index(self) -> Optional[int]:
        """Index of the first fully transparent entry, if any."""
        for i, c in enumerate(self.colors):
            if c[3] == 0:
                return i
        return None

    def rgb_bytes(self) -> bytes:
        """Flat ``r g b`` bytes, alpha dropped (GIF color tables are RGB)."""
        return bytes(ch for c in self.colors for ch in c[:3])


@dataclass(frozen=True)
class IndexedFrame:
    """A frame whose pixels are indices into a shared palette."""
    width: int
    height: int
    indices: bytes
    palette: Palette

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid frame size {self.width}x{self.height}.")
        if len(self.indices) != self.width * self.height:
            raise ValueError(
                f"Expected {self.width * self.height} indices, got {len(self.indices)}."
            )
        if self.indices and max(self.indices) >= len(self.palette):
            raise ValueError("Pixel index outside the palette.")

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def color_at(self, x: int, y: int) -> Color:
        return self.palette[self.indices[y * self.width + x]]

    def to_image(self) -> Image.Image:
        """Return a ``P``-mode Pillow image carrying the palette's RGB values."""
        img = Image.frombytes("P", self.size, self.indices)
        img.putpalette(self.palette.rgb_bytes(), rawmode="RGB")
        return img


@dataclass(frozen=True)
class AnimatedDocument:
    """Ordered indexed frames plus one duration (1/100 s) per frame."""
    frames: Tuple[IndexedFrame, ...]
    durations: Tuple[int, ...]
    palette: Palette

    def __post_init__(self) -> None:
        object.__setattr__(self, "frames", tuple(self.frames))
        object.__setattr__(self, "durations", tuple(self.durations))
        if not self.frames:
            raise ValidationError("An animated document needs at least one frame.")
        if len(self.durations) != len(self.frames):
            raise ValidationError(
                f"{len(self.frames)} frames but {len(self.durations)} durations."
            )
        if any(d < 0 for d in self.durations):
            raise ValidationError("Frame durations must be non-negative.")
        size = self.frames[0].size
        for i, frame in enumerate(self.frames):
            if frame.palette is not self.palette:
                raise ValidationError(f"Frame {i} does not use the shared palette.")
            if frame.size != size:
                raise ValidationError(
                    f"Frame {i}: size {frame.size} != expected {size}."
                )

    @property
    def width(self) -> int:
        return self.frames[0].width

    @property
    def height(self) -> int:
        return self.frames[0].height

    @property
    def frame_count(self) -> int:
        return len(self.frames)


@dataclass(frozen=True)
class ProgressEvent:
    """A single progress update sent to the presentation layer."""
    current_item: str
    processed: int
    total: int
    stage: ProgressStage
    output_path: Optional[Path] = None

    @property
    def is_terminal(self) -> bool:
        return self.stage is ProgressStage.DONE


@dataclass
class ConversionConfig:
    """Full configuration for a conversion job."""
    delay_ms: int = 100
    palette_strategy: PaletteStrategy = PaletteStrategy.FREQUENCY
    max_colors: int = MAX_PALETTE_SIZE  # 2 -- 256
    workers: int = 1                    # Quantization threads
    extensions: tuple[str, ...] = field(default_factory=lambda: (".png",))
    debug: bool = False

    def validate(self) -> None:
        if (isinstance(self.delay_ms, bool) or not isinstance(self.delay_ms, int)
                or self.delay_ms < 0):
            raise ValidationError(
                f"Frame delay must be a non-negative integer, got {self.delay_ms!r}."
            )
        if not 2 <= self.max_colors <= MAX_PALETTE_SIZE:
            raise ValidationError(
                f"max_colors must be between 2 and {MAX_PALETTE_SIZE}, got {self.max_colors}."
            )
        if self.workers < 1:
            raise ValidationError(f"workers must be >= 1, got {self.workers}.")
        if not self.extensions:
            raise ValidationError("At least one input extension is required.")
