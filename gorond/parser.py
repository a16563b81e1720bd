"""Parser module for gorond.

This module reads the header of a Go source file (package clause and the
import declarations that follow it) into a ``SourceFile``. Scanning stops at
the first top-level token that is not part of an import declaration, so the
rest of the file is never inspected.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Tuple

from gorond.errors import ParseFailure
from gorond.errors import ReadFailure
from gorond.syntax import BLANK
from gorond.syntax import BasicLit
from gorond.syntax import Ident
from gorond.syntax import ImportDecl
from gorond.syntax import ImportSpec
from gorond.syntax import Position
from gorond.syntax import SourceFile

LOG = logging.getLogger(__name__)

COMMENT = "comment"
IDENT = "ident"
STRING = "string"
PUNCT = "punct"
EOF = "eof"

_BLANK = " \t\r\n"


class Token(NamedTuple):
    kind: str
    text: str
    start: int
    end: int
    line: int
    end_line: int


class Scanner:
    """Splits Go source into the handful of token kinds the header uses."""

    def __init__(self, path: str, source: str):
        self.path = path
        self.source = source
        self.offset = 1 if source.startswith("\ufeff") else 0
        self.line = 1

    def error(self, message: str, offset: int) -> ParseFailure:
        line = self.source.count("\n", 0, offset) + 1
        column = offset - (self.source.rfind("\n", 0, offset) + 1) + 1
        return ParseFailure(self.path, f"{line}:{column}: {message}", offset)

    def scan(self) -> Token:
        src = self.source
        while self.offset < len(src) and src[self.offset] in _BLANK:
            if src[self.offset] == "\n":
                self.line += 1
            self.offset += 1

        start = self.offset
        line = self.line
        if start >= len(src):
            return Token(EOF, "", start, start, line, line)

        char = src[start]
        if src.startswith("//", start):
            kind = COMMENT
            end = src.find("\n", start)
            if end < 0:
                end = len(src)
        elif src.startswith("/*", start):
            kind = COMMENT
            end = src.find("*/", start + 2)
            if end < 0:
                raise self.error("comment not terminated", start)
            end += 2
        elif char == '"':
            kind = STRING
            end = self._scan_string(start)
        elif char == "`":
            kind = STRING
            end = src.find("`", start + 1)
            if end < 0:
                raise self.error("raw string literal not terminated", start)
            end += 1
        elif char.isalpha() or char == "_":
            kind = IDENT
            end = start + 1
            while end < len(src) and (src[end].isalnum() or src[end] == "_"):
                end += 1
        else:
            kind = PUNCT
            end = start + 1

        self.line += src.count("\n", start, end)
        self.offset = end
        text = src[start:end]
        if kind == COMMENT:
            text = text.rstrip("\r")
        return Token(kind, text, start, end, line, self.line)

    def _scan_string(self, start: int) -> int:
        src = self.source
        i = start + 1
        while True:
            if i >= len(src) or src[i] == "\n":
                raise self.error("string literal not terminated", start)
            if src[i] == "\\":
                i += 2
                continue
            if src[i] == '"':
                return i + 1
            i += 1


class _Parser:

    def __init__(self, path: str, source: str):
        self.path = path
        self.source = source
        self.scanner = Scanner(path, source)
        self.tok = self.scanner.scan()
        self.last_end = 0

    def next(self) -> None:
        self.last_end = self.tok.end
        self.tok = self.scanner.scan()

    def error(self, message: str, tok: Optional[Token] = None) -> ParseFailure:
        tok = tok or self.tok
        return self.scanner.error(message, tok.start)

    def found(self) -> str:
        if self.tok.kind == EOF:
            return "EOF"
        return repr(self.tok.text)

    def blank_line_before(self) -> bool:
        """True if an empty line separates the current token from the previous one."""
        return self.source.count("\n", self.last_end, self.tok.start) >= 2

    def at_punct(self, char: str) -> bool:
        return self.tok.kind == PUNCT and self.tok.text == char

    def at_keyword(self, word: str) -> bool:
        return self.tok.kind == IDENT and self.tok.text == word

    def skip_comments(self) -> None:
        while self.tok.kind == COMMENT or self.at_punct(";"):
            self.next()

    def parse(self) -> SourceFile:
        self.skip_comments()
        if not self.at_keyword("package"):
            raise self.error(f"expected 'package', found {self.found()}")
        self.next()
        while self.tok.kind == COMMENT:
            self.next()
        if self.tok.kind != IDENT:
            raise self.error(f"expected package name, found {self.found()}")
        source_file = SourceFile(self.path, self.source, self.tok.text)
        self.next()

        while True:
            self.skip_comments()
            if not self.at_keyword("import"):
                break
            source_file.decls.append(self.parse_import_decl())
        LOG.debug("[%s] found %d import declarations", self.path, len(source_file.decls))
        return source_file

    def parse_import_decl(self) -> ImportDecl:
        start = self.tok.start
        self.next()
        if self.tok.kind == COMMENT:
            raise self.error("comment after 'import' keyword is not supported")

        if not self.at_punct("("):
            spec, line = self.parse_spec()
            decl = ImportDecl(start, self.last_end, False, [spec])
            decl.end, _ = self.parse_line_comments(spec, line, decl.end)
            return decl

        lparen = self.tok
        self.next()
        decl = ImportDecl(start, lparen.end, True)
        while self.tok.kind == COMMENT and self.tok.line == lparen.end_line:
            decl.lparen_comment.append(self.tok.text)
            self.next()

        pending: List[str] = []
        last_line = None
        while True:
            if self.tok.kind == COMMENT:
                if self.blank_line_before():
                    pending.append(BLANK)
                pending.append(self.tok.text)
                self.next()
            elif self.at_punct(";"):
                last_line = None
                self.next()
            elif self.at_punct(")"):
                decl.trailing = pending
                decl.end = self.tok.end
                self.next()
                return decl
            elif self.tok.kind == EOF:
                raise self.error("import declaration not terminated, missing ')'")
            else:
                if last_line is not None and self.tok.line == last_line:
                    raise self.error(f"expected ';' or newline, found {self.found()}")
                if pending and self.blank_line_before():
                    pending.append(BLANK)
                spec, line = self.parse_spec()
                spec.doc = pending
                pending = []
                decl.specs.append(spec)
                _, terminated = self.parse_line_comments(spec, line, 0)
                last_line = None if terminated else line

    def parse_spec(self):
        name = None
        if self.tok.kind == IDENT:
            name = Ident(self.tok.text, Position(self.tok.start))
            self.next()
        elif self.at_punct("."):
            name = Ident(".", Position(self.tok.start))
            self.next()

        if self.tok.kind == COMMENT:
            raise self.error("comment inside import spec is not supported")
        if self.tok.kind != STRING:
            raise self.error(f"expected import path, found {self.found()}")
        if len(self.tok.text) <= 2:
            raise self.error("invalid import path: empty string")
        path = BasicLit(self.tok.text, Position(self.tok.start))
        line = self.tok.end_line
        self.next()
        return ImportSpec(path, name), line

    def parse_line_comments(self, spec: ImportSpec, line: int, end: int) -> Tuple[int, bool]:
        """Attach comments that follow the spec on its own line.

        Returns the end offset of the last attached comment (or ``end`` if
        there is none) and whether a ';' terminated the spec.
        """
        terminated = False
        while self.tok.line == line and (self.tok.kind == COMMENT or self.at_punct(";")):
            if self.tok.kind == COMMENT:
                spec.comment.append(self.tok.text)
                end = self.tok.end
            else:
                terminated = True
            self.next()
        return end, terminated


def parse_source(path: str, source: str) -> SourceFile:
    """Parse Go source text and return its import section.

    Raises:
        ParseFailure: If the package clause or an import declaration is
            malformed.
    """
    return _Parser(str(path), source).parse()


def parse_file(file_path) -> SourceFile:
    """Read and parse a Go source file.

    Raises:
        ReadFailure: If the file cannot be read.
        ParseFailure: If the file is not valid UTF-8 or its header is
            malformed.
    """
    try:
        data = Path(file_path).read_bytes()
    except OSError as exc:
        raise ReadFailure(file_path, f"could not read file: {exc}") from exc
    try:
        source = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseFailure(file_path, f"invalid UTF-8 encoding: {exc}") from exc
    return parse_source(str(file_path), source)
