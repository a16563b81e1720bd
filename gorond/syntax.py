"""Syntax tree types for the import section of a Go source file.

Only the parts of a file that gorond rewrites are modelled: the import
declarations and the specs they hold. Everything else stays in the source
text and is copied through untouched by the printer.
"""
from __future__ import annotations
from dataclasses import dataclass
from dataclasses import field
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union


NO_POS = -1

# stands for an empty line among the comments of an import block
BLANK = ""


@dataclass
class Position:
    """Offset of a token in the original source, or unset."""

    offset: int = NO_POS

    @classmethod
    def unset(cls) -> "Position":
        return cls(NO_POS)

    @property
    def is_valid(self) -> bool:
        return self.offset >= 0


@dataclass
class Ident:
    name: str
    pos: Position = field(default_factory=Position)


@dataclass
class BasicLit:
    """A string literal exactly as written, delimiters included."""

    value: str
    pos: Position = field(default_factory=Position)


@dataclass
class ImportSpec:
    """A single import: path literal, optional alias and attached comments.

    ``doc`` holds the comments written on their own lines directly above the
    spec, with ``BLANK`` entries where an empty line sat next to them.
    ``comment`` holds the ones following it on the same line.
    """

    path: BasicLit
    name: Optional[Ident] = None
    doc: List[str] = field(default_factory=list)
    comment: List[str] = field(default_factory=list)

    @property
    def import_path(self) -> str:
        return self.path.value.strip('"`')

    @property
    def alias(self) -> Optional[str]:
        return self.name.name if self.name is not None else None

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        return self.import_path, self.alias

    def clear_positions(self) -> None:
        self.path.pos = Position.unset()
        if self.name is not None:
            self.name.pos = Position.unset()

    @property
    def has_positions(self) -> bool:
        if not self.path.pos.is_valid:
            return False
        return self.name is None or self.name.pos.is_valid


class GroupSeparator:
    """Marker placed between two import groups; renders as an empty line."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "SEPARATOR"


SEPARATOR = GroupSeparator()

SpecEntry = Union[ImportSpec, GroupSeparator]


@dataclass
class ImportDecl:
    """One ``import`` declaration, spanning ``source[start:end]``."""

    start: int
    end: int
    parenthesized: bool
    specs: List[SpecEntry] = field(default_factory=list)
    lparen_comment: List[str] = field(default_factory=list)
    trailing: List[str] = field(default_factory=list)

    @property
    def import_specs(self) -> List[ImportSpec]:
        return [spec for spec in self.specs if isinstance(spec, ImportSpec)]

    @property
    def needs_layout(self) -> bool:
        """True once any spec lost its original position."""
        return any(not spec.has_positions for spec in self.import_specs)


@dataclass
class SourceFile:
    path: str
    source: str
    package: str
    decls: List[ImportDecl] = field(default_factory=list)

    def import_keys(self) -> List[List[Tuple[str, Optional[str]]]]:
        """Return the (path, alias) pairs of every declaration, in order."""
        return [[spec.key for spec in decl.import_specs] for decl in self.decls]
