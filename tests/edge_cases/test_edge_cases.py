"""
Edge case tests for togif.

These tests verify that the pipeline handles degenerate, unusual, and
boundary-condition inputs gracefully -- producing clear errors rather
than crashes or silent corruption.

Run with:
    pytest tests/edge_cases/ -v
"""

from __future__ import annotations

import shutil
import subprocess
import sys
from pathlib import Path

import pytest
from PIL import Image

from togif.converter import convert
from togif.exceptions import DecodeError, ToGifError

# ---------------------------------------------------------------------------
# Skip conditions
# ---------------------------------------------------------------------------

TOGIF = shutil.which("togif")

requires_togif = pytest.mark.skipif(
    TOGIF is None, reason="togif console script not on PATH"
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _save(img: Image.Image, path: Path) -> Path:
    img.save(str(path), format="PNG")
    return path


def _frames_of(path: Path) -> list[Image.Image]:
    frames = []
    with Image.open(path) as im:
        for n in range(im.n_frames):
            im.seek(n)
            frames.append(im.convert("RGBA"))
    return frames


def _run_togif(tmp_path: Path, *args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [TOGIF, "convert", *args],
        capture_output=True, text=True, timeout=60, cwd=str(tmp_path),
    )


# ---------------------------------------------------------------------------
# Image content
# ---------------------------------------------------------------------------

class TestImageEdgeCases:
    """Unusual pixel formats and sizes."""

    def test_single_pixel_frame(self, tmp_path: Path):
        """A 1x1 image is a valid animation of one frame."""
        src = _save(Image.new("RGBA", (1, 1), (7, 8, 9, 255)), tmp_path / "dot.png")
        out = convert([src], tmp_path / "out.gif")
        (frame,) = _frames_of(out)
        assert frame.size == (1, 1)
        assert frame.getpixel((0, 0))[:3] == (7, 8, 9)

    def test_fully_transparent_frame(self, tmp_path: Path):
        """An all-transparent frame maps onto a transparent palette entry."""
        src = _save(Image.new("RGBA", (4, 4), (0, 0, 0, 0)), tmp_path / "clear.png")
        out = convert([src], tmp_path / "out.gif")
        with Image.open(out) as im:
            assert im.info.get("transparency") == 0

    def test_color_under_zero_alpha_stays_transparent(self, tmp_path: Path):
        """Hidden RGB under alpha 0 must not come back as an opaque color."""
        img = Image.new("RGBA", (4, 1))
        img.putpixel((0, 0), (0, 0, 0, 0))
        img.putpixel((1, 0), (255, 0, 0, 0))
        img.putpixel((2, 0), (0, 255, 0, 255))
        img.putpixel((3, 0), (0, 255, 0, 255))
        src = _save(img, tmp_path / "hidden.png")
        out = convert([src], tmp_path / "out.gif")
        (frame,) = _frames_of(out)
        assert frame.getpixel((0, 0))[3] == 0
        assert frame.getpixel((1, 0))[3] == 0
        assert frame.getpixel((2, 0)) == (0, 255, 0, 255)
        with Image.open(out) as im:
            assert sorted(im.getcolors()) == [(2, 0), (2, 1)]

    def test_grayscale_and_rgb_inputs_mix(self, tmp_path: Path):
        """Different source modes are normalized to RGBA before sampling."""
        paths = [
            _save(Image.new("L", (10, 10), 128), tmp_path / "a.png"),
            _save(Image.new("RGB", (10, 10), (128, 128, 128)), tmp_path / "b.png"),
            _save(Image.new("LA", (10, 10), (128, 255)), tmp_path / "c.png"),
        ]
        out = convert(paths, tmp_path / "out.gif")
        for frame in _frames_of(out):
            assert frame.getpixel((5, 5))[:3] == (128, 128, 128)

    def test_palette_png_with_transparency(self, tmp_path: Path):
        """A P-mode PNG with a tRNS entry keeps its transparent pixels."""
        img = Image.new("P", (4, 4), 1)
        img.putpalette([0, 0, 0, 255, 0, 0])
        img.putpixel((0, 0), 0)
        src = tmp_path / "p.png"
        img.save(str(src), format="PNG", transparency=0)
        out = convert([src], tmp_path / "out.gif")
        with Image.open(out) as im:
            assert "transparency" in im.info

    def test_wide_frame(self, tmp_path: Path):
        """Extreme aspect ratios survive geometry normalization."""
        paths = [
            _save(Image.new("RGBA", (400, 1), "red"), tmp_path / "a.png"),
            _save(Image.new("RGBA", (3, 3), "blue"), tmp_path / "b.png"),
        ]
        out = convert(paths, tmp_path / "out.gif")
        assert [f.size for f in _frames_of(out)] == [(400, 1), (400, 1)]

    def test_many_frames(self, tmp_path: Path):
        """A longer sequence keeps one frame per input."""
        paths = [
            _save(Image.new("RGBA", (6, 6), (i, 255 - i, 0, 255)), tmp_path / f"f{i:03d}.png")
            for i in range(60)
        ]
        out = convert(paths, tmp_path / "out.gif", delay_ms=20)
        with Image.open(out) as im:
            assert im.n_frames == 60


# ---------------------------------------------------------------------------
# Malformed inputs
# ---------------------------------------------------------------------------

class TestMalformedInputs:
    """Broken files must fail the whole job with a typed error."""

    def test_truncated_png(self, tmp_path: Path):
        """A PNG cut off mid-stream raises DecodeError."""
        good = _save(Image.new("RGBA", (64, 64), "green"), tmp_path / "good.png")
        truncated = tmp_path / "cut.png"
        truncated.write_bytes(good.read_bytes()[:40])
        with pytest.raises(DecodeError):
            convert([good, truncated], tmp_path / "out.gif")
        assert not (tmp_path / "out.gif").exists()

    def test_non_png_content_with_png_name(self, tmp_path: Path):
        """The extension alone does not make a file decodable."""
        fake = tmp_path / "fake.png"
        fake.write_text("hello")
        with pytest.raises(ToGifError):
            convert([fake], tmp_path / "out.gif")

    def test_jpeg_bytes_with_png_name(self, tmp_path: Path):
        """Any format Pillow can decode is accepted once the name matches."""
        src = tmp_path / "photo.png"
        Image.new("RGB", (8, 8), (200, 10, 10)).save(str(src), format="JPEG")
        out = convert([src], tmp_path / "out.gif")
        assert out.exists()


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

class TestCommandLineEdgeCases:
    """Run the installed console script as a subprocess."""

    @requires_togif
    def test_success_exit_code(self, tmp_path: Path):
        _save(Image.new("RGBA", (5, 5), "red"), tmp_path / "a.png")
        result = _run_togif(tmp_path, "-i", "*.png", "-o", "out.gif", "--no-progress")
        assert result.returncode == 0
        assert (tmp_path / "out.gif").exists()

    @requires_togif
    def test_failure_exit_code(self, tmp_path: Path):
        result = _run_togif(tmp_path, "-i", "*.png", "-o", "out.gif")
        assert result.returncode == 1
        assert "Error:" in result.stderr

    @requires_togif
    def test_usage_exit_code(self, tmp_path: Path):
        result = _run_togif(tmp_path, "-o", "out.gif")
        assert result.returncode == 2

    def test_module_invocation(self, tmp_path: Path):
        """``python -m togif`` behaves like the console script."""
        _save(Image.new("RGBA", (5, 5), "blue"), tmp_path / "a.png")
        result = subprocess.run(
            [sys.executable, "-m", "togif", "convert", "-i", "a.png", "-o", "out.gif",
             "--no-progress"],
            capture_output=True, text=True, timeout=60, cwd=str(tmp_path),
        )
        assert result.returncode == 0, result.stderr
        assert (tmp_path / "out.gif").exists()
