# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Module dependency graph over Python sources."""

import ast
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import pathspec

from ssrinject.paths import relative_to_root

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS: tuple[str, ...] = (".py",)
DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = ("__pycache__/", ".*/")


@dataclass(frozen=True)
class GraphError:
    """Represent a source file that could not be analyzed."""

    file_path: str
    message: str


@dataclass(frozen=True)
class ModuleGraph:
    """Represent a module dependency graph.

    Attributes:
        dependencies: Module path to the module paths it imports. Paths are
            posix and relative to the graph root.
        errors: Recoverable per-file analysis errors.
    """

    dependencies: dict[str, frozenset[str]]
    errors: list[GraphError] = field(default_factory=list)

    def depends(self, module: str) -> list[str]:
        """List modules that import ``module`` directly.

        Args:
            module: Root-relative posix module path.

        Returns:
            Sorted dependent module paths.
        """
        return sorted(
            name for name, deps in self.dependencies.items() if module in deps
        )


class IgnoreMatcher:
    """Match root-relative paths against gitignore-style patterns."""

    def __init__(self, spec: pathspec.GitIgnoreSpec) -> None:
        self._spec = spec

    @classmethod
    def from_root(
        cls, root: Path, extra_patterns: tuple[str, ...] = DEFAULT_IGNORE_PATTERNS
    ) -> "IgnoreMatcher":
        """Build matcher from default patterns and nested .gitignore files.

        Args:
            root: Graph root directory.
            extra_patterns: Patterns applied before any .gitignore content.

        Returns:
            Configured ignore matcher.

        Raises:
            OSError: If .gitignore files cannot be read.
            UnicodeDecodeError: If .gitignore files contain invalid UTF-8.
        """
        patterns: list[str] = list(extra_patterns)
        for ignore_path in sorted(root.rglob(".gitignore")):
            base = ignore_path.parent.relative_to(root).as_posix()
            for line in ignore_path.read_text(encoding="utf-8").splitlines():
                patterns.append(_rebase_pattern(line=line, base=base))
        return cls(spec=pathspec.GitIgnoreSpec.from_lines(patterns))

    def matches(self, relative_path: str) -> bool:
        """Check whether a root-relative file path is ignored."""
        normalized = relative_path.replace(os.sep, "/").strip("/")
        if not normalized:
            return False
        return bool(self._spec.match_file(normalized))


class _ImportCollector(ast.NodeVisitor):
    """Collect candidate module names imported by one source file."""

    def __init__(self, package_parts: list[str]) -> None:
        self._package_parts = package_parts
        self.candidates: list[list[str]] = []

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.candidates.append(alias.name.split("."))
        self.generic_visit(node)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if node.level:
            keep = len(self._package_parts) - (node.level - 1)
            if keep < 0:
                return
            base = self._package_parts[:keep]
        else:
            base = []
        if node.module:
            base = base + node.module.split(".")
        for alias in node.names:
            if alias.name == "*":
                self.candidates.append(base)
            else:
                self.candidates.append(base + [alias.name])
        self.generic_visit(node)


def build_module_graph(
    root: Path, extensions: tuple[str, ...] = SOURCE_EXTENSIONS
) -> ModuleGraph:
    """Build the dependency graph for every source file beneath ``root``.

    Args:
        root: Search root directory. Node names are relative to it.
        extensions: Source file suffixes to include.

    Returns:
        A graph with one node per analyzed source file.
    """
    matcher = IgnoreMatcher.from_root(root)
    files = sorted(
        path
        for path in root.rglob("*")
        if path.is_file()
        and path.suffix in extensions
        and not matcher.matches(path.relative_to(root).as_posix())
    )
    known = {path.relative_to(root).as_posix() for path in files}

    dependencies: dict[str, frozenset[str]] = {}
    errors: list[GraphError] = []
    for file_path in files:
        module = file_path.relative_to(root).as_posix()
        try:
            source = file_path.read_text(encoding="utf-8")
            tree = ast.parse(source, filename=str(file_path))
        except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as exc:
            logger.warning(
                f"Skipping module due to parse/read failure (file_path={module} error={exc})"
            )
            errors.append(GraphError(file_path=module, message=str(exc)))
            dependencies[module] = frozenset()
            continue

        collector = _ImportCollector(package_parts=module.split("/")[:-1])
        collector.visit(tree)
        resolved: set[str] = set()
        for parts in collector.candidates:
            target = _resolve_module(parts=parts, module=module, known=known)
            if target is not None and target != module:
                resolved.add(target)
        dependencies[module] = frozenset(resolved)

    logger.debug(
        f"Module graph built (root={root} modules={len(dependencies)} errors={len(errors)})"
    )
    return ModuleGraph(dependencies=dependencies, errors=errors)


def compute_dependents(search_root: Path, changed_module: str | Path | None) -> set[str]:
    """Compute every module affected by a change to ``changed_module``.

    Args:
        search_root: Root directory of the module graph.
        changed_module: Changed source file, absolute or working-directory relative.

    Returns:
        Root-relative posix paths of the changed module and all of its
        transitive dependents; empty when no module changed.
    """
    if changed_module is None:
        return set()
    graph = build_module_graph(search_root)
    return collect_dependents(graph, relative_to_root(changed_module, search_root))


def collect_dependents(graph: ModuleGraph, module: str) -> set[str]:
    """Walk dependents of ``module`` depth-first.

    Args:
        graph: Module dependency graph.
        module: Root-relative posix path of the changed module.

    Returns:
        ``module`` plus every module that transitively imports it.
    """
    result: set[str] = {module}
    stack = list(reversed(graph.depends(module)))
    while stack:
        current = stack.pop()
        if current in result:
            continue
        result.add(current)
        stack.extend(reversed(graph.depends(current)))
    return result


def _resolve_module(parts: list[str], module: str, known: set[str]) -> str | None:
    """Resolve dotted import parts to a known root-relative source path.

    Names are tried against the graph root and then against the importing
    file's directory. The longest existing module prefix wins.
    """
    if not parts:
        return None
    module_dir = module.split("/")[:-1]
    for base in ([], module_dir):
        for size in range(len(parts), 0, -1):
            stem = "/".join(base + parts[:size])
            for candidate in (f"{stem}.py", f"{stem}/__init__.py"):
                if candidate in known:
                    return candidate
    return None


def _rebase_pattern(line: str, base: str) -> str:
    """Translate one nested .gitignore line to a root-relative pattern."""
    if base in ("", ".") or not line or line.lstrip().startswith("#"):
        return line
    is_negation = line.startswith("!")
    pattern = line[1:] if is_negation else line
    anchored = pattern.startswith("/")
    pattern = pattern[1:] if anchored else pattern
    prefixed = f"{base}/{pattern}" if pattern else base
    if anchored:
        prefixed = f"/{prefixed}"
    return f"!{prefixed}" if is_negation else prefixed
