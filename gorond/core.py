#!/usr/bin/env python3
"""Core utilities for gorond. This module classifies Go import paths,
regroups the specs of every import declaration into standard library, third
party and local groups, and persists the rendered result with an atomic
replace when it differs from the file on disk.
"""
from __future__ import annotations
from dataclasses import dataclass
from dataclasses import field
import logging
import os
from pathlib import Path
import stat
import tempfile
from typing import AbstractSet
from typing import FrozenSet
from typing import Iterable
from typing import List
from typing import Sequence

from gorond import printer
from gorond.errors import FileError
from gorond.errors import ReadFailure
from gorond.errors import RenameFailure
from gorond.errors import WriteFailure
from gorond.parser import parse_file
from gorond.syntax import SEPARATOR
from gorond.syntax import ImportSpec
from gorond.syntax import SourceFile
from gorond.syntax import SpecEntry

LOG = logging.getLogger(__name__)

STD = "std"
THIRD_PARTY = "third_party"
LOCAL = "local"


@dataclass(frozen=True)
class ModuleContext:
    """Module path and standard library set shared by every file of a run."""

    root: str
    std: FrozenSet[str] = frozenset()


def classify_import(path: str, module_root: str, stdlib: AbstractSet[str]) -> str:
    """Classify an import path into 'std', 'third_party' or 'local'."""
    if path in stdlib:
        return STD
    if path == module_root or path.startswith(module_root + "/"):
        return LOCAL
    return THIRD_PARTY


@dataclass
class ImportGroups:
    std: List[ImportSpec] = field(default_factory=list)
    third_party: List[ImportSpec] = field(default_factory=list)
    local: List[ImportSpec] = field(default_factory=list)

    def add(self, category: str, spec: ImportSpec) -> None:
        getattr(self, category).append(spec)

    def sort(self) -> None:
        # list.sort is stable: same path with different aliases keeps input order
        for group in (self.std, self.third_party, self.local):
            group.sort(key=lambda spec: spec.import_path)

    def ordered(self) -> List[List[ImportSpec]]:
        return [self.std, self.third_party, self.local]


def group_imports(specs: Iterable[ImportSpec], context: ModuleContext) -> ImportGroups:
    groups = ImportGroups()
    for spec in specs:
        groups.add(classify_import(spec.import_path, context.root, context.std), spec)
    return groups


def join_import_groups(*groups: Sequence[ImportSpec]) -> List[SpecEntry]:
    """Concatenate groups with one separator between non-empty neighbours."""
    joined: List[SpecEntry] = []
    for group in groups:
        if group and joined:
            joined.append(SEPARATOR)
        joined.extend(group)
    return joined


def build_import_list(specs: Iterable[ImportSpec], context: ModuleContext) -> List[SpecEntry]:
    groups = group_imports(specs, context)
    groups.sort()
    return join_import_groups(*groups.ordered())


def rewrite_declarations(source_file: SourceFile, context: ModuleContext) -> int:
    """Regroup the specs of every import declaration in place.

    Every relocated spec loses its source positions so that the printer lays
    the declaration out from the new order and the separators. Returns the
    number of declarations rewritten.
    """
    rewritten = 0
    for decl in source_file.decls:
        specs = decl.import_specs
        if not specs:
            continue
        decl.specs = build_import_list(specs, context)
        for spec in specs:
            spec.clear_positions()
        rewritten += 1
    LOG.debug("[%s] rewrote %d import declarations", source_file.path, rewritten)
    return rewritten


def write_atomic(file_path, data: bytes) -> None:
    """Replace ``file_path`` with ``data`` through a temp file and a rename.

    The temp file lives in the same directory so the rename never crosses
    filesystems. Permission bits of the original are carried over.
    """
    path = Path(file_path)
    tmp_path = None
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".gorond",
            delete=False,
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp_path, mode)
    except OSError as exc:
        if tmp_path is not None:
            _remove_temp(tmp_path)
        raise WriteFailure(file_path, f"could not write file: {exc}") from exc

    try:
        os.replace(tmp_path, path)
    except OSError as exc:
        _remove_temp(tmp_path)
        raise RenameFailure(file_path, f"could not replace file: {exc}") from exc


def _remove_temp(tmp_path: Path) -> None:
    try:
        tmp_path.unlink()
    except OSError as exc:
        LOG.warning("[%s] could not remove temporary file: %s", tmp_path, exc)


def apply_changes(source_file: SourceFile, rendered: bytes, apply: bool = True) -> bool:
    """Compare ``rendered`` with the file on disk and replace it if different.

    Returns True when the content differs. Nothing is written when the bytes
    are identical or when ``apply`` is False.
    """
    try:
        existing = Path(source_file.path).read_bytes()
    except OSError as exc:
        raise ReadFailure(source_file.path, f"could not read file: {exc}") from exc
    if existing == rendered:
        return False
    if apply:
        write_atomic(source_file.path, rendered)
    return True


def process_file(file_path, context: ModuleContext, apply: bool = True) -> bool:
    """Regroup the imports of a single Go file.

    Returns True if the file was (or, with ``apply=False``, would be)
    modified. Raises a ``FileError`` subclass on failure; the file on disk is
    then left exactly as it was.
    """
    source_file = parse_file(file_path)
    rewrite_declarations(source_file, context)
    rendered = printer.render(source_file).encode("utf-8")
    return apply_changes(source_file, rendered, apply=apply)


@dataclass
class RunResult:
    changed: List[str] = field(default_factory=list)
    failed: List[FileError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def run(paths: Iterable, context: ModuleContext, apply: bool = True) -> RunResult:
    """Process files one at a time, isolating per file failures."""
    result = RunResult()
    for file_path in paths:
        LOG.debug("[%s] processing", file_path)
        try:
            modified = process_file(file_path, context, apply=apply)
        except FileError as exc:
            LOG.error("[%s] ERROR: %s", exc.path, exc.message)
            result.failed.append(exc)
            continue

        if modified:
            msg = "file updated." if apply else "imports would be regrouped."
            LOG.info("[%s] %s", file_path, msg)
            result.changed.append(str(file_path))

    if result.failed:
        LOG.info("Failed files: %d", len(result.failed))
    return result
