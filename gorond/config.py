"""Resolve the module context and read the gorond configuration.

The module path comes from the nearest ``go.mod``; the standard library set
comes from ``go list std``. An optional ``gorond.toml`` in the module root
can override the module path, add standard library paths, exclude files
and leave out test files.
"""
from __future__ import annotations
from dataclasses import dataclass
from dataclasses import field
import logging
from pathlib import Path
import subprocess
from typing import FrozenSet
from typing import Iterable
from typing import List
from typing import Optional
import tomllib

from gorond.core import ModuleContext
from gorond.errors import ConfigError
from gorond.errors import ModuleResolutionFailure

LOG = logging.getLogger(__name__)

CONFIG_FILES = ("gorond.toml", ".gorond.toml")


@dataclass
class Config:
    module: Optional[str] = None
    std: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    tests: bool = True


def _string_list(data: dict, key: str, path: Path) -> List[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{path}: '{key}' must be a list of strings")
    return value


def read_config(root) -> Config:
    """Read ``gorond.toml`` (or ``.gorond.toml``) from ``root`` if present."""
    root = Path(root)
    for name in CONFIG_FILES:
        path = root / name
        if not path.is_file():
            continue
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"{path}: {exc}") from exc

        module = data.get("module")
        if module is not None and not isinstance(module, str):
            raise ConfigError(f"{path}: 'module' must be a string")
        tests = data.get("tests", True)
        if not isinstance(tests, bool):
            raise ConfigError(f"{path}: 'tests' must be true or false")
        LOG.debug("Loaded configuration from %s", path)
        return Config(
            module=module,
            std=_string_list(data, "std", path),
            exclude=_string_list(data, "exclude", path),
            tests=tests,
        )
    return Config()


def find_go_mod(start) -> Optional[Path]:
    """Return the nearest go.mod at or above ``start``."""
    start = Path(start).resolve()
    for directory in (start, *start.parents):
        candidate = directory / "go.mod"
        if candidate.is_file():
            return candidate
    return None


def read_module_path(go_mod) -> str:
    """Return the path declared by the ``module`` directive of a go.mod."""
    try:
        text = Path(go_mod).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ModuleResolutionFailure(f"could not read {go_mod}: {exc}") from exc

    for line in text.splitlines():
        line = line.split("//", 1)[0].strip()
        fields = line.split(None, 1)
        if len(fields) == 2 and fields[0] == "module":
            value = fields[1].strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in '"`':
                value = value[1:-1]
            if value:
                return value
    raise ModuleResolutionFailure(f"{go_mod}: no module directive found")


def get_std_packages(go: str = "go") -> FrozenSet[str]:
    """Return the import paths of the standard library as listed by the go tool."""
    try:
        proc = subprocess.run([go, "list", "std"], capture_output=True, text=True, check=False)
    except OSError as exc:
        raise ModuleResolutionFailure(f"could not run '{go} list std': {exc}") from exc
    if proc.returncode != 0:
        raise ModuleResolutionFailure(f"'{go} list std' failed: {proc.stderr.strip()}")
    packages = frozenset(line.strip() for line in proc.stdout.splitlines() if line.strip())
    if not packages:
        raise ModuleResolutionFailure(f"'{go} list std' returned no packages")
    LOG.debug("Loaded %d standard library packages", len(packages))
    return packages


def load_context(start, module: Optional[str] = None, extra_std: Iterable[str] = ()) -> ModuleContext:
    """Build the ModuleContext for a run started in ``start``.

    Raises:
        ModuleResolutionFailure: If no module path can be found or the
            standard library cannot be listed.
    """
    if module is None:
        go_mod = find_go_mod(start)
        if go_mod is None:
            raise ModuleResolutionFailure(f"go.mod not found in {Path(start).resolve()} or any parent directory")
        module = read_module_path(go_mod)
    std = get_std_packages() | frozenset(extra_std)
    LOG.debug("Module %s", module)
    return ModuleContext(module, std)
