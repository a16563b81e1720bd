from collections import Counter
import os
import stat

import pytest

import gorond
from gorond import core
from gorond.errors import ParseFailure
from gorond.errors import RenameFailure
from gorond.errors import WriteFailure
from gorond.parser import parse_file
from gorond.parser import parse_source
from gorond.syntax import SEPARATOR
from gorond.syntax import BasicLit
from gorond.syntax import Ident
from gorond.syntax import ImportSpec


STD = frozenset({"crypto/aes", "embed", "fmt", "io", "net/http", "os", "strings"})
CONTEXT = gorond.ModuleContext("example.com/mymod", STD)


def _spec(path, alias=None):
    spec = ImportSpec(BasicLit(f'"{path}"'))
    if alias is not None:
        spec.name = Ident(alias)
    return spec


def _write(tmp_path, content, name="main.go"):
    path = tmp_path / name
    path.write_text(content)
    return path


@pytest.mark.parametrize("path, expected", [
    ("fmt", "std"),
    ("crypto/aes", "std"),
    ("crypto", "third_party"),
    ("crypto-extra", "third_party"),
    ("github.com/foo/bar", "third_party"),
    ("example.com/mymod", "local"),
    ("example.com/mymod/sub", "local"),
    ("example.com/mymod2", "third_party"),
    ("example.com/mymod2/sub", "third_party"),
])
def test_classify_import(path, expected):
    assert core.classify_import(path, "example.com/mymod", STD) == expected


def test_group_imports_preserves_input_order():
    specs = [_spec("github.com/b"), _spec("os"), _spec("github.com/a"), _spec("example.com/mymod/x")]
    groups = core.group_imports(specs, CONTEXT)
    assert [s.import_path for s in groups.std] == ["os"]
    assert [s.import_path for s in groups.third_party] == ["github.com/b", "github.com/a"]
    assert [s.import_path for s in groups.local] == ["example.com/mymod/x"]


def test_join_import_groups_separators():
    a, b, c = _spec("os"), _spec("github.com/x"), _spec("example.com/mymod/y")
    assert core.join_import_groups([a], [b], [c]) == [a, SEPARATOR, b, SEPARATOR, c]
    assert core.join_import_groups([a], [], [c]) == [a, SEPARATOR, c]
    assert core.join_import_groups([], [b], []) == [b]
    assert core.join_import_groups([], [], []) == []


def test_build_import_list_sorts_each_group():
    specs = [
        _spec("example.com/mymod/z"),
        _spec("strings"),
        _spec("github.com/z/z"),
        _spec("fmt"),
        _spec("example.com/mymod/a"),
        _spec("github.com/a/a"),
    ]
    result = core.build_import_list(specs, CONTEXT)
    paths = [s.import_path if s is not SEPARATOR else None for s in result]
    assert paths == [
        "fmt", "strings", None,
        "github.com/a/a", "github.com/z/z", None,
        "example.com/mymod/a", "example.com/mymod/z",
    ]
    assert len(result) == len(specs) + 2


def test_build_import_list_is_stable_for_equal_paths():
    first, second = _spec("github.com/x", "b"), _spec("github.com/x", "a")
    assert core.build_import_list([first, second], CONTEXT) == [first, second]


def test_rewrite_declarations_clears_positions():
    source = 'package main\n\nimport (\n\tx "os"\n\t"fmt"\n)\n\nimport ()\n'
    tree = parse_source("main.go", source)
    assert core.rewrite_declarations(tree, CONTEXT) == 1
    specs = tree.decls[0].import_specs
    assert [s.import_path for s in specs] == ["fmt", "os"]
    assert all(not s.path.pos.is_valid for s in specs)
    assert not specs[1].name.pos.is_valid
    assert tree.decls[0].needs_layout
    assert tree.decls[1].specs == []


def test_process_file_groups_imports(tmp_path):
    path = _write(tmp_path, (
        "package main\n"
        "\n"
        "import (\n"
        '\t"example.com/mymod/sub"\n'
        '\t"github.com/foo/bar"\n'
        '\t"fmt"\n'
        ")\n"
        "\n"
        "func main() {\n"
        "\tfmt.Println(bar.X, sub.Y)\n"
        "}\n"
    ))
    assert core.process_file(path, CONTEXT)
    assert path.read_text() == (
        "package main\n"
        "\n"
        "import (\n"
        '\t"fmt"\n'
        "\n"
        '\t"github.com/foo/bar"\n'
        "\n"
        '\t"example.com/mymod/sub"\n'
        ")\n"
        "\n"
        "func main() {\n"
        "\tfmt.Println(bar.X, sub.Y)\n"
        "}\n"
    )


def test_canonical_file_is_not_written(tmp_path, monkeypatch):
    path = _write(tmp_path, (
        "package main\n"
        "\n"
        "import ( // deps\n"
        '\t"fmt"\n'
        '\t"os"\n'
        "\n"
        '\t"github.com/foo/bar"\n'
        "\t// end of imports\n"
        ")\n"
    ))
    os.utime(path, ns=(1_000_000_000, 1_000_000_000))

    def fail(*args, **kwargs):
        raise AssertionError("write_atomic must not be called")

    monkeypatch.setattr(core, "write_atomic", fail)
    assert not core.process_file(path, CONTEXT)
    assert path.stat().st_mtime_ns == 1_000_000_000


def test_process_file_is_idempotent(tmp_path):
    path = _write(tmp_path, (
        "package main\n"
        "\n"
        'import "os"\n'
        "\n"
        "import (\n"
        "\t// logging\n"
        '\tlog "github.com/sirupsen/logrus" // structured\n'
        '\t. "strings"\n'
        '\t"example.com/mymod/util"\n'
        '\t"fmt" // printing\n'
        '\t_ "embed"\n'
        ")\n"
    ))
    assert core.process_file(path, CONTEXT)
    first = path.read_text()
    assert not core.process_file(path, CONTEXT)
    assert path.read_text() == first
    assert first == (
        "package main\n"
        "\n"
        'import "os"\n'
        "\n"
        "import (\n"
        '\t_ "embed"\n'
        '\t"fmt" // printing\n'
        '\t. "strings"\n'
        "\n"
        "\t// logging\n"
        '\tlog "github.com/sirupsen/logrus" // structured\n'
        "\n"
        '\t"example.com/mymod/util"\n'
        ")\n"
    )


def test_trailing_comments_are_aligned(tmp_path):
    path = _write(tmp_path, 'package main\n\nimport (\n\t"os" // a\n\t"fmt" // b\n)\n')
    assert core.process_file(path, CONTEXT)
    assert path.read_text() == 'package main\n\nimport (\n\t"fmt" // b\n\t"os"  // a\n)\n'


def test_declarations_are_regrouped_independently(tmp_path):
    path = _write(tmp_path, (
        "package main\n"
        "\n"
        "import (\n"
        '\t"github.com/foo/bar"\n'
        '\t"os"\n'
        ")\n"
        "\n"
        "import (\n"
        '\t"example.com/mymod/x"\n'
        '\t"fmt"\n'
        ")\n"
    ))
    before = parse_file(path).import_keys()
    assert core.process_file(path, CONTEXT)
    assert path.read_text() == (
        "package main\n"
        "\n"
        "import (\n"
        '\t"os"\n'
        "\n"
        '\t"github.com/foo/bar"\n'
        ")\n"
        "\n"
        "import (\n"
        '\t"fmt"\n'
        "\n"
        '\t"example.com/mymod/x"\n'
        ")\n"
    )
    after = parse_file(path).import_keys()
    assert [Counter(keys) for keys in after] == [Counter(keys) for keys in before]


def test_grouping_properties(tmp_path):
    path = _write(tmp_path, (
        "package main\n"
        "\n"
        "import (\n"
        '\t"net/http"\n'
        '\tz "example.com/mymod/z"\n'
        '\t"github.com/b/b"\n'
        '\t"io"\n'
        '\t"example.com/mymod"\n'
        '\t"github.com/a/a"\n'
        '\tx "github.com/a/a"\n'
        '\t"crypto/aes"\n'
        ")\n"
    ))
    before = Counter(k for keys in parse_file(path).import_keys() for k in keys)
    core.process_file(path, CONTEXT)
    tree = parse_file(path)
    after = Counter(k for keys in tree.import_keys() for k in keys)
    assert after == before

    block = path.read_text().split("import (\n", 1)[1].split(")", 1)[0]
    groups = [g.split("\n") for g in block.strip("\n").split("\n\n")]
    assert len(groups) == 3
    order = {"std": 0, "third_party": 1, "local": 2}
    ranks = []
    for group in groups:
        paths = [line.split('"')[1] for line in group]
        assert paths == sorted(paths)
        ranks.extend(order[core.classify_import(p, CONTEXT.root, STD)] for p in paths)
    assert ranks == sorted(ranks)


def test_check_mode_does_not_write(tmp_path):
    content = 'package main\n\nimport (\n\t"os"\n\t"fmt"\n)\n'
    path = _write(tmp_path, content)
    assert core.process_file(path, CONTEXT, apply=False)
    assert path.read_text() == content


def test_permissions_are_preserved(tmp_path):
    path = _write(tmp_path, 'package main\n\nimport (\n\t"os"\n\t"fmt"\n)\n')
    path.chmod(0o640)
    assert core.process_file(path, CONTEXT)
    assert stat.S_IMODE(path.stat().st_mode) == 0o640
    assert sorted(p.name for p in tmp_path.iterdir()) == ["main.go"]


def test_write_failure_leaves_original(tmp_path, monkeypatch):
    content = 'package main\n\nimport (\n\t"os"\n\t"fmt"\n)\n'
    path = _write(tmp_path, content)

    def broken_fsync(fd):
        raise OSError("disk full")

    monkeypatch.setattr(os, "fsync", broken_fsync)
    with pytest.raises(WriteFailure) as excinfo:
        core.process_file(path, CONTEXT)
    assert excinfo.value.path == str(path)
    assert path.read_text() == content
    assert sorted(p.name for p in tmp_path.iterdir()) == ["main.go"]


def test_rename_failure_leaves_original(tmp_path, monkeypatch):
    content = 'package main\n\nimport (\n\t"os"\n\t"fmt"\n)\n'
    path = _write(tmp_path, content)

    def broken_replace(src, dst):
        raise OSError("cross-device link")

    monkeypatch.setattr(os, "replace", broken_replace)
    with pytest.raises(RenameFailure):
        core.process_file(path, CONTEXT)
    assert path.read_text() == content


def test_run_isolates_failures(tmp_path):
    bad = _write(tmp_path, 'package main\n\nimport (\n\t"os"\n', name="a.go")
    good = _write(tmp_path, 'package main\n\nimport (\n\t"os"\n\t"fmt"\n)\n', name="b.go")
    clean = _write(tmp_path, 'package main\n\nimport "fmt"\n', name="c.go")

    result = core.run([bad, good, clean], CONTEXT)
    assert not result.ok
    assert len(result.failed) == 1
    assert isinstance(result.failed[0], ParseFailure)
    assert result.failed[0].path == str(bad)
    assert result.changed == [str(good)]
    assert good.read_text() == 'package main\n\nimport (\n\t"fmt"\n\t"os"\n)\n'
    assert bad.read_text() == 'package main\n\nimport (\n\t"os"\n'


@pytest.mark.parametrize("content", [
    'package main\n\nimport (\n\t"fmt"\n\t"os"\n\n\t// "log"\n)\n',
    'package main\n\nimport (\n\t// "log"\n\n\t"fmt"\n)\n',
    'package main\n\nimport (\n\t"fmt"\n\n\t// networking\n\t"net/http"\n\n\t"github.com/foo/bar"\n)\n',
])
def test_blank_lines_around_comments_are_kept(tmp_path, content):
    path = _write(tmp_path, content)
    assert not core.process_file(path, CONTEXT)
    assert path.read_text() == content


def test_blank_lines_collapse_at_group_boundaries(tmp_path):
    path = _write(tmp_path, (
        "package main\n"
        "\n"
        "import (\n"
        '\t"os"\n'
        "\n"
        "\t// bar does things\n"
        '\t"github.com/foo/bar"\n'
        '\t"fmt"\n'
        "\n"
        "\t// nothing else\n"
        "\n"
        ")\n"
    ))
    assert core.process_file(path, CONTEXT)
    assert path.read_text() == (
        "package main\n"
        "\n"
        "import (\n"
        '\t"fmt"\n'
        '\t"os"\n'
        "\n"
        "\t// bar does things\n"
        '\t"github.com/foo/bar"\n'
        "\n"
        "\t// nothing else\n"
        ")\n"
    )
    assert not core.process_file(path, CONTEXT)


def test_crlf_line_endings_are_kept(tmp_path):
    path = tmp_path / "main.go"
    path.write_bytes(b'package main\r\n\r\nimport (\r\n\t"os"\r\n\t"fmt"\r\n)\r\n\r\nfunc main() {}\r\n')
    assert core.process_file(path, CONTEXT)
    assert path.read_bytes() == (
        b'package main\r\n\r\nimport (\r\n\t"fmt"\r\n\t"os"\r\n)\r\n\r\nfunc main() {}\r\n'
    )
    assert not core.process_file(path, CONTEXT)


def test_classify_import_accepts_any_set():
    assert core.classify_import("fmt", "example.com/mymod", {"fmt"}) == "std"
