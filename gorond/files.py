"""Resolve Go package patterns into the list of source files to process."""
from __future__ import annotations
from fnmatch import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Optional

from gorond.errors import PatternError

LOG = logging.getLogger(__name__)

SKIP_DIRS = {"vendor", "testdata"}


def _ignored_name(name: str) -> bool:
    # the go tool ignores files and directories starting with '.' or '_'
    return name.startswith((".", "_"))


def is_go_file(path: Path, include_tests: bool = True) -> bool:
    if path.suffix != ".go" or _ignored_name(path.name):
        return False
    return include_tests or not path.name.endswith("_test.go")


def _package_files(directory: Path, include_tests: bool) -> List[Path]:
    return sorted(p for p in directory.iterdir() if p.is_file() and is_go_file(p, include_tests))


def _walk_packages(root: Path, include_tests: bool) -> Iterator[Path]:
    for dirpath, dirnames, _ in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS and not _ignored_name(d))
        yield from _package_files(Path(dirpath), include_tests)


def _excluded(path: Path, exclude: Iterable[str]) -> bool:
    posix = path.as_posix()
    return any(fnmatch(posix, pattern) or fnmatch(path.name, pattern) for pattern in exclude)


def pattern_root(pattern: str) -> Optional[Path]:
    """Return the directory walked by a recursive pattern, or None."""
    if pattern == "...":
        return Path(".")
    if pattern.endswith("/..."):
        return Path(pattern[:-4] or "/")
    return None


def _resolve(pattern: str, include_tests: bool) -> List[Path]:
    root = pattern_root(pattern)
    if root is not None:
        if not root.is_dir():
            raise PatternError(f"pattern {pattern}: directory {root} does not exist")
        return list(_walk_packages(root, include_tests))

    path = Path(pattern)
    if path.is_dir():
        return _package_files(path, include_tests)
    if path.is_file():
        if path.suffix != ".go":
            raise PatternError(f"pattern {pattern}: not a Go source file")
        return [path]
    raise PatternError(f"pattern {pattern}: no such file or directory")


def iter_go_files(patterns: Iterable[str], include_tests: bool = True,
                  exclude: Optional[Iterable[str]] = None) -> Iterator[Path]:
    """Yield the Go files selected by ``patterns``, each at most once.

    ``dir/...`` selects every package below ``dir``, a directory selects the
    files of that package and a file path selects the file itself. Files are
    yielded in pattern order, sorted within each package.
    """
    exclude = list(exclude or [])
    seen = set()
    for pattern in list(patterns) or ["."]:
        matched = _resolve(pattern, include_tests)
        if not matched:
            LOG.warning("pattern %s matched no Go files", pattern)
        for path in matched:
            key = path.resolve()
            if key in seen or _excluded(path, exclude):
                continue
            seen.add(key)
            yield path
