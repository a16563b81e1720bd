"""Render a ``SourceFile`` back to Go source text.

Text outside the import declarations is copied verbatim. A declaration whose
specs were relocated (their positions are unset) is laid out fresh, the way
gofmt prints an import block: one spec per line, an empty line for every
group separator, and trailing comments of consecutive lines aligned.
"""
from __future__ import annotations
from typing import List

from gorond.syntax import BLANK
from gorond.syntax import ImportDecl
from gorond.syntax import ImportSpec
from gorond.syntax import SourceFile

INDENT = "\t"


def spec_head(spec: ImportSpec) -> str:
    if spec.name is not None:
        return f"{spec.name.name} {spec.path.value}"
    return spec.path.value


def _layout(decl: ImportDecl) -> list:
    """Flatten a declaration into (kind, value) rows.

    Kinds are ``blank``, ``doc`` and ``spec``; spec rows keep the spec so
    that comment alignment can be computed afterwards. Runs of blank rows
    collapse into one and none is kept right after ``(`` or before ``)``.
    """
    rows = []

    def add_comments(comments):
        for comment in comments:
            rows.append(("blank", None) if comment == BLANK else ("doc", comment))

    for entry in decl.specs:
        if not isinstance(entry, ImportSpec):
            rows.append(("blank", None))
            continue
        add_comments(entry.doc)
        rows.append(("spec", entry))
    add_comments(decl.trailing)

    layout = []
    for row in rows:
        if row[0] == "blank" and (not layout or layout[-1][0] == "blank"):
            continue
        layout.append(row)
    while layout and layout[-1][0] == "blank":
        layout.pop()
    return layout


def _align(rows) -> List[str]:
    lines: List[str] = []
    run: List[ImportSpec] = []

    def flush():
        width = max(len(spec_head(spec)) for spec in run)
        for spec in run:
            head = spec_head(spec)
            padding = " " * (width - len(head) + 1)
            lines.append(INDENT + head + padding + " ".join(spec.comment))
        run.clear()

    for kind, value in rows:
        if kind == "spec" and value.comment:
            run.append(value)
            continue
        if run:
            flush()
        if kind == "blank":
            lines.append("")
        elif kind == "doc":
            lines.append(INDENT + value)
        else:
            lines.append(INDENT + spec_head(value))
    if run:
        flush()
    return lines


def render_decl(decl: ImportDecl, newline: str = "\n") -> str:
    """Return the canonical text of one import declaration."""
    if not decl.parenthesized:
        spec = decl.import_specs[0]
        text = "import " + spec_head(spec)
        if spec.comment:
            text += " " + " ".join(spec.comment)
        return text

    opening = "import ("
    if decl.lparen_comment:
        opening += " " + " ".join(decl.lparen_comment)
    lines = [opening]
    lines.extend(_align(_layout(decl)))
    lines.append(")")
    return newline.join(lines)


def detect_newline(source: str) -> str:
    """Return the line ending used by the first line of ``source``."""
    first = source.find("\n")
    if first > 0 and source[first - 1] == "\r":
        return "\r\n"
    return "\n"


def render(source_file: SourceFile) -> str:
    """Render the whole file, re-laying out only the rewritten declarations."""
    source = source_file.source
    newline = detect_newline(source)
    chunks = []
    pos = 0
    for decl in source_file.decls:
        chunks.append(source[pos:decl.start])
        if decl.needs_layout:
            chunks.append(render_decl(decl, newline))
        else:
            chunks.append(source[decl.start:decl.end])
        pos = decl.end
    chunks.append(source[pos:])
    return "".join(chunks)
