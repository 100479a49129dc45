# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for the SSR CLI harness."""

import io
import json
from collections.abc import Callable
from pathlib import Path

from cli.ssr_harness import run

WriteFile = Callable[[Path, str], Path]


def _make_site(root: Path, write_file: WriteFile) -> None:
    components = root / "src" / "components"
    write_file(
        components / "hero.py",
        "import os\n\n"
        "def default(props):\n"
        "    return f\"<h1>{props['title']} {os.environ.get('SSR_HARNESS_SITE', '')}</h1>\"\n",
    )
    write_file(
        components / "hero_args.py", "def default():\n    return {'title': 'Welcome'}\n"
    )
    write_file(root / ".env", "SSR_HARNESS_SITE=demo\n")
    write_file(
        root / "dist" / "index.html",
        '<body><SSR src="src/components/hero.py" args="src/components/hero_args.py"'
        ' wrapperTag="header" wrapperClass="hero" /></body>',
    )
    write_file(root / "dist" / "static" / "plain.html", "<p>static</p>")


def test_cli_001_requires_a_command() -> None:
    assert run([], stdout=io.StringIO(), stderr=io.StringIO()) == 2


def test_cli_002_render_fails_when_dist_is_missing(tmp_path: Path) -> None:
    stderr = io.StringIO()

    exit_code = run(
        ["render", "--dist", str(tmp_path / "missing")],
        stdout=io.StringIO(),
        stderr=stderr,
    )

    assert exit_code == 2
    assert "Dist path does not exist" in stderr.getvalue()


def test_cli_003_render_rejects_invalid_pattern(tmp_path: Path) -> None:
    stderr = io.StringIO()

    exit_code = run(
        ["render", "--dist", str(tmp_path), "--pattern", "<SSR ("],
        stdout=io.StringIO(),
        stderr=stderr,
    )

    assert exit_code == 2
    assert "Invalid placeholder pattern" in stderr.getvalue()


def test_cli_004_render_rewrites_html_assets(tmp_path: Path, write_file: WriteFile) -> None:
    site = tmp_path / "site"
    _make_site(site, write_file)
    stdout = io.StringIO()

    exit_code = run(
        [
            "render",
            "--dist",
            str(site / "dist"),
            "--base-dir",
            str(site),
            "--search-root",
            str(site / "src" / "components"),
            "--format",
            "json",
        ],
        stdout=stdout,
        stderr=io.StringIO(),
    )

    assert exit_code == 0
    assert (site / "dist" / "index.html").read_text(encoding="utf-8") == (
        '<body><header class="hero"><h1>Welcome demo</h1></header></body>'
    )
    assert (site / "dist" / "static" / "plain.html").read_text(encoding="utf-8") == (
        "<p>static</p>"
    )
    payload = json.loads(stdout.getvalue())
    assert payload["assets"] == [
        {"asset": "index.html", "placeholders": 1, "rewritten": True},
        {"asset": "static/plain.html", "placeholders": 0, "rewritten": False},
    ]


def test_cli_005_dependents_lists_transitive_modules(
    tmp_path: Path, write_file: WriteFile
) -> None:
    root = tmp_path / "components"
    write_file(root / "util.py", "")
    write_file(root / "card.py", "import util\n")
    write_file(root / "page.py", "import card\n")
    write_file(root / "other.py", "")
    stdout = io.StringIO()

    exit_code = run(
        [
            "dependents",
            "--search-root",
            str(root),
            "--changed",
            str(root / "util.py"),
            "--format",
            "json",
        ],
        stdout=stdout,
        stderr=io.StringIO(),
    )

    assert exit_code == 0
    assert json.loads(stdout.getvalue()) == {
        "dependents": ["card.py", "page.py", "util.py"]
    }


def test_cli_006_dependents_table_output(tmp_path: Path, write_file: WriteFile) -> None:
    root = tmp_path / "components"
    write_file(root / "util.py", "")
    stdout = io.StringIO()

    exit_code = run(
        ["dependents", "--search-root", str(root), "--changed", str(root / "util.py")],
        stdout=stdout,
        stderr=io.StringIO(),
    )

    assert exit_code == 0
    assert "util.py" in stdout.getvalue()
