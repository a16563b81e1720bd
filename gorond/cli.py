#!/usr/bin/env python3
"""Command-line interface for gorond using Click."""

from importlib import metadata
import logging
from pathlib import Path
import sys
from typing import Optional
from typing import Tuple

import click
from gorond import config
from gorond import core
from gorond import files
from gorond.errors import GorondError


try:
    VERSION = f"gorond {metadata.version('gorond')}"
except metadata.PackageNotFoundError:
    VERSION = "gorond"


def _handle_files(patterns: Tuple[str, ...], module: Optional[str], std: Tuple[str, ...],
                  exclude: Tuple[str, ...], no_tests: bool, apply_changes: bool) -> int:
    """Regroup imports in the Go files selected by the package patterns.

    Args:
        patterns: Package patterns (``./...``, directories or files).
        module: Module path overriding the one declared in go.mod.
        std: Extra import paths to treat as standard library.
        exclude: Glob patterns of files to skip.
        no_tests: If True, leave ``_test.go`` files alone.
        apply_changes: If True, rewrite files in place.
    Returns:
        0 if nothing failed (and, in check mode, nothing would change),
        1 if files would be modified, 2 if an error occurred.
    """
    cwd = Path.cwd()
    try:
        go_mod = config.find_go_mod(cwd)
        settings = config.read_config(go_mod.parent if go_mod else cwd)
        context = config.load_context(
            cwd,
            module=module or settings.module,
            extra_std=settings.std + list(std),
        )
        paths = list(files.iter_go_files(
            patterns,
            include_tests=settings.tests and not no_tests,
            exclude=settings.exclude + list(exclude),
        ))
    except GorondError as exc:
        logging.error("ERROR: %s", exc)
        return 2

    logging.debug("Processing %d files in module %s", len(paths), context.root)
    result = core.run(paths, context, apply=apply_changes)
    if not result.ok:
        return 2
    if result.changed and not apply_changes:
        return 1
    return 0


def _common_options(func):
    func = click.option("--no-tests", is_flag=True, help="Skip _test.go files.")(func)
    func = click.option("--exclude", multiple=True, help="Glob pattern of files to skip (repeatable).")(func)
    func = click.option("--std", multiple=True, help="Extra import path treated as standard library (repeatable).")(func)
    func = click.option("--module", default=None, help="Module path; defaults to the one declared in go.mod.")(func)
    func = click.argument("patterns", nargs=-1)(func)
    return func


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Increase verbosity.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output.")
@click.version_option(version=VERSION, prog_name="gorond")
def cli(verbose: bool, quiet: bool) -> None:
    """Group and sort the imports of Go source files."""
    # Configure logging only once
    if not logging.getLogger().handlers:
        if quiet:
            logging.basicConfig(level=logging.ERROR, format="%(message)s")
        else:
            logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")


@cli.command(help="Report files whose imports are not grouped, without modifying them.")
@_common_options
def check(patterns, module, std, exclude, no_tests) -> None:
    exit_code = _handle_files(patterns, module, std, exclude, no_tests, apply_changes=False)
    sys.exit(exit_code)


@cli.command(help="Regroup imports in place.")
@_common_options
def fix(patterns, module, std, exclude, no_tests) -> None:
    exit_code = _handle_files(patterns, module, std, exclude, no_tests, apply_changes=True)
    sys.exit(exit_code)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    cli()
