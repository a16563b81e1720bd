"""Top-level package for gorond.

This package exposes the core API for grouping and sorting the imports of Go
source files.
"""

from gorond.config import load_context
from gorond.core import ModuleContext
from gorond.core import build_import_list
from gorond.core import classify_import
from gorond.core import group_imports
from gorond.core import join_import_groups
from gorond.core import process_file
from gorond.core import rewrite_declarations
from gorond.core import run
from gorond.files import iter_go_files
from gorond.parser import parse_file
from gorond.parser import parse_source
from gorond.printer import render


__version__ = "0.1.0"

__all__ = [
    "ModuleContext",
    "classify_import",
    "group_imports",
    "join_import_groups",
    "build_import_list",
    "rewrite_declarations",
    "render",
    "process_file",
    "run",
    "parse_file",
    "parse_source",
    "iter_go_files",
    "load_context",
]
