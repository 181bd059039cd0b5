# Where: e2e/runner/discovery.py
# What: Resolve e2e test files from glob patterns.
# Why: Keep file discovery identical for one-shot runs and watch matching.
from __future__ import annotations

import glob
import re
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable

from e2e.runner.utils import PROJECT_ROOT

_GLOB_CHARS = set("*?[")

# Wildcards never match a leading dot, as with glob.
_ANY_DIRS = r"(?:(?!\.)[^/]+/)*"
_ANY_TAIL = r"(?:(?!\.)[^/]+(?:/(?!\.)[^/]+)*)?"


def select_patterns(files: str | None, default_patterns: Iterable[str]) -> list[str]:
    if files:
        return [files]
    return list(default_patterns)


def expand_pattern(pattern: str, *, root: Path = PROJECT_ROOT) -> list[Path]:
    path = Path(pattern)
    if not path.is_absolute():
        path = root / path
    matches = sorted(glob.glob(str(path), recursive=True))
    return [Path(match).resolve() for match in matches if Path(match).is_file()]


def resolve_test_files(patterns: Iterable[str], *, root: Path = PROJECT_ROOT) -> list[Path]:
    """Expand each pattern independently, keeping first-seen order."""
    resolved: list[Path] = []
    seen: set[Path] = set()
    for pattern in patterns:
        for path in expand_pattern(pattern, root=root):
            if path in seen:
                continue
            seen.add(path)
            resolved.append(path)
    return resolved


def watch_root(pattern: str, *, root: Path = PROJECT_ROOT) -> Path:
    """Deepest directory of ``pattern`` that contains no glob characters."""
    path = Path(pattern)
    if not path.is_absolute():
        path = root / path
    static_parts: list[str] = []
    for part in path.parts:
        if _GLOB_CHARS & set(part):
            break
        static_parts.append(part)
    base = Path(*static_parts) if static_parts else root
    if base == path and not base.is_dir():
        base = base.parent
    return base


def _segment_regex(segment: str) -> str:
    out = ["(?!\\.)"] if segment[:1] in _GLOB_CHARS else []
    i = 0
    while i < len(segment):
        char = segment[i]
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[" and "]" in segment[i + 2 :]:
            end = segment.index("]", i + 2)
            body = segment[i + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            out.append(f"[{body.replace(chr(92), chr(92) * 2)}]")
            i = end
        else:
            out.append(re.escape(char))
        i += 1
    return "".join(out)


def compile_pattern(pattern: str, *, root: Path = PROJECT_ROOT) -> re.Pattern[str]:
    """Regex equivalent of the recursive glob ``pattern`` anchored at ``root``."""
    path = Path(pattern)
    if not path.is_absolute():
        path = root / path
    segments = path.as_posix().split("/")
    pieces: list[str] = []
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            pieces.append(_ANY_TAIL if last else _ANY_DIRS)
        else:
            pieces.append(_segment_regex(segment) + ("" if last else "/"))
    return re.compile("".join(pieces))


class PatternMatcher:
    """Tests paths against glob patterns without reading the filesystem."""

    def __init__(self, patterns: Iterable[str], *, root: Path = PROJECT_ROOT) -> None:
        self.patterns = list(patterns)
        self._regexes = [compile_pattern(p, root=root) for p in self.patterns]
        names = [Path(p).name for p in self.patterns]
        # A trailing ** accepts any basename.
        self._basenames = None if "**" in names else names

    def accepts_name(self, name: str) -> bool:
        if self._basenames is None:
            return True
        return any(fnmatchcase(name, basename) for basename in self._basenames)

    def matches(self, path: Path) -> bool:
        text = path.as_posix()
        return any(regex.fullmatch(text) for regex in self._regexes)
