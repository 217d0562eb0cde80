"""
Input resolution and validation.

A pattern is split into a directory and a base name, then resolved in
three steps:

    1. Shell-style glob, if the base name has glob metacharacters.
    2. Regular expression searched against the file names in the
       directory, if the base name is anchored (``^``) or has regex
       metacharacters.  A base name that was globbed and does not
       compile as a regex skips this step unless it starts with ``^``.
    3. A plain file name.

Matches are filtered to the allowed extensions and returned sorted.
"""

from __future__ import annotations

import glob
import logging
import os
import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from togif.exceptions import InputError, PatternError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".png",)

_GLOB_CHARS = set("*?[")
_REGEX_CHARS = set(".*+?[](){}|")


def _has_extension(name: str, extensions: Sequence[str]) -> bool:
    lower = name.lower()
    return any(lower.endswith(ext.lower()) for ext in extensions)


def _split_pattern(pattern: str) -> tuple[str, str]:
    if os.sep in pattern or "/" in pattern:
        return os.path.dirname(pattern) or os.sep, os.path.basename(pattern)
    return ".", pattern


def _glob_matches(directory: str, base: str, extensions: Sequence[str]) -> List[str]:
    return [
        m for m in glob.glob(os.path.join(directory, base))
        if os.path.isfile(m) and _has_extension(m, extensions)
    ]


def _compile_pattern(base: str, tried_glob: bool) -> Optional[re.Pattern[str]]:
    try:
        return re.compile(base)
    except re.error as exc:
        # Unanchored glob syntax such as ``*.png`` is not a valid regex.
        if tried_glob and not base.startswith("^"):
            return None
        raise PatternError(f"Invalid regex pattern {base!r}: {exc}", base) from exc


def _regex_matches(directory: str, regex: re.Pattern[str], extensions: Sequence[str]) -> List[str]:
    matches = []
    for entry in os.scandir(directory):
        if not entry.is_file() or not _has_extension(entry.name, extensions):
            continue
        if regex.search(entry.name):
            matches.append(os.path.join(directory, entry.name))
    return matches


def expand_input_pattern(
    pattern: str,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
) -> List[str]:
    """Expand a glob or regex *pattern* into a sorted list of image paths."""
    directory, base = _split_pattern(pattern)
    if not os.path.isdir(directory):
        raise InputError(f"Directory does not exist: {directory}", directory)

    tried_glob = bool(_GLOB_CHARS & set(base))
    if tried_glob:
        matches = _glob_matches(directory, base, extensions)
        if matches:
            logger.debug("Pattern %r resolved as glob (%d files).", pattern, len(matches))
            return sorted(matches)

    if base.startswith("^") or _REGEX_CHARS & set(base):
        regex = _compile_pattern(base, tried_glob)
        matches = [] if regex is None else _regex_matches(directory, regex, extensions)
        if matches:
            logger.debug("Pattern %r resolved as regex (%d files).", pattern, len(matches))
            return sorted(matches)

    candidate = os.path.join(directory, base)
    if os.path.isfile(candidate) and _has_extension(base, extensions):
        return [candidate]

    allowed = ", ".join(extensions)
    raise InputError(f"No {allowed} files found matching pattern: {pattern}", pattern)


def expand_input_patterns(
    patterns: Iterable[str],
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
) -> List[str]:
    """Expand several patterns in order, dropping repeated files."""
    seen: set[str] = set()
    files: List[str] = []
    for pattern in patterns:
        for path in expand_input_pattern(pattern, extensions):
            if path not in seen:
                seen.add(path)
                files.append(path)
    return files


def validate_input_files(
    files: Sequence[str | Path],
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
) -> List[Path]:
    """Check every file exists and carries an allowed extension."""
    if not files:
        raise InputError("No input files specified.")
    paths = []
    for f in files:
        path = Path(f)
        if not path.exists():
            raise InputError(f"Input file not found: {path}", path)
        if not path.is_file():
            raise InputError(f"Input path is not a file: {path}", path)
        if not _has_extension(path.name, extensions):
            allowed = ", ".join(extensions)
            raise InputError(f"File {path} is not one of: {allowed}", path)
        paths.append(path)
    return paths
