"""
Shared fixtures for the togif test suite.
"""

from __future__ import annotations

import struct
import tempfile
from pathlib import Path

import pytest
from PIL import Image


SIX_COLORS = [
    (255, 0, 0, 255),
    (0, 255, 0, 255),
    (0, 0, 255, 255),
    (255, 255, 0, 255),
    (0, 0, 0, 255),
    (255, 255, 255, 255),
]


def make_striped_frame(colors, size=(100, 100), offset=0):
    """Vertical stripes cycling through *colors*, shifted by *offset*."""
    w, h = size
    img = Image.new("RGBA", size)
    stripe = max(1, w // len(colors))
    for x in range(w):
        color = colors[((x // stripe) + offset) % len(colors)]
        for y in range(h):
            img.putpixel((x, y), color)
    return img


def write_png(img: Image.Image, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(str(path), format="PNG")
    return path


def _skip_sub_blocks(data: bytes, pos: int) -> int:
    while data[pos] != 0:
        pos += data[pos] + 1
    return pos + 1


def parse_gif_blocks(data: bytes) -> dict:
    """Walk a GIF byte string and collect the fields the tests check.

    Returns a dict with ``version``, ``global_table_size``, ``delays``
    (one per graphic control extension), ``images`` (count),
    ``local_tables`` (count), and ``extensions`` (labels seen).
    """
    assert data[:3] == b"GIF"
    info = {
        "version": data[3:6],
        "delays": [],
        "images": 0,
        "local_tables": 0,
        "extensions": [],
    }
    packed = data[10]
    info["global_table_size"] = (2 << (packed & 0x07)) if packed & 0x80 else 0
    pos = 13 + 3 * info["global_table_size"]
    while True:
        block = data[pos]
        if block == 0x3B:
            break
        if block == 0x21:
            label = data[pos + 1]
            info["extensions"].append(label)
            if label == 0xF9:
                (delay,) = struct.unpack("<H", data[pos + 4:pos + 6])
                info["delays"].append(delay)
            pos = _skip_sub_blocks(data, pos + 2)
        elif block == 0x2C:
            flags = data[pos + 9]
            pos += 10
            if flags & 0x80:
                info["local_tables"] += 1
                pos += 3 * (2 << (flags & 0x07))
            pos = _skip_sub_blocks(data, pos + 1)
            info["images"] += 1
        else:
            raise AssertionError(f"Unexpected GIF block 0x{block:02x} at {pos}")
    return info


def gif_delays(data: bytes) -> list[int]:
    """Delay field of every graphic control extension in a GIF byte string."""
    return parse_gif_blocks(data)["delays"]


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory(prefix="togif_test_") as d:
        yield Path(d)


@pytest.fixture
def sample_rgba_frame():
    """A 200x200 RGBA frame with a red square on white background."""
    img = Image.new("RGBA", (200, 200), "white")
    for x in range(50, 150):
        for y in range(50, 150):
            img.putpixel((x, y), (255, 0, 0, 255))
    return img


@pytest.fixture
def six_color_files(tmp_path):
    """Three 100x100 PNGs, each using the same six colors."""
    return [
        write_png(make_striped_frame(SIX_COLORS, offset=i), tmp_path / f"frame{i + 1}.png")
        for i in range(3)
    ]


@pytest.fixture
def many_color_files(tmp_path):
    """Two 32x32 PNGs with 1024 distinct colors and a skewed histogram."""
    paths = []
    for n in range(2):
        img = Image.new("RGBA", (32, 32))
        for y in range(32):
            for x in range(32):
                img.putpixel((x, y), (x * 8, y * 8, n * 100, 255))
        # A block of one dominant color.
        for y in range(8):
            for x in range(8):
                img.putpixel((x, y), (10, 20, 30, 255))
        paths.append(write_png(img, tmp_path / f"many{n}.png"))
    return paths
