# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Uncached loading and invocation of built artifacts."""

import importlib.util
import inspect
import itertools
import logging
import os
import sys
from collections import Counter
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from importlib.machinery import SourceFileLoader, SourcelessFileLoader
from pathlib import Path
from types import ModuleType
from typing import Any

from ssrinject.model import DEFAULT_EXPORT, InvocationStyle, ResolutionError

logger = logging.getLogger(__name__)

_MODULE_COUNTER = itertools.count()
_INSTALLED_PACKAGE_DIRS = frozenset({"site-packages", "dist-packages"})

# sys.path entries added by open import scopes, with the number of scopes using each.
_PATH_REFS: Counter[str] = Counter()
_bytecode_state = {"depth": 0, "saved": False}


class LoadError(ResolutionError):
    """Represent an artifact that cannot be loaded or has no usable callable."""


class ExecutionError(ResolutionError):
    """Represent a failure raised by an invoked server function."""


class DynamicLoader:
    """Load modules fresh on every call and invoke their exported callable."""

    def __init__(
        self,
        import_roots: Sequence[Path] = (),
        default_export: str = DEFAULT_EXPORT,
    ) -> None:
        """Initialize loader.

        Args:
            import_roots: Source roots placed on ``sys.path`` while a module
                executes, next to the module's own directory. Modules imported
                from these directories during a load are discarded when it ends,
                so changed dependencies are observed.
            default_export: Module attribute treated as the default export.
        """
        self._import_roots = [Path(root).resolve() for root in import_roots]
        self._default_export = default_export
        self._loaded_modules: dict[str, str] = {}

    def load_module(self, path: Path) -> ModuleType:
        """Execute ``path`` as a new module object.

        The module is not left in ``sys.modules``; a second call re-reads the file.

        Args:
            path: Python source (``.py``) or bytecode (``.pyc``) file.

        Returns:
            Executed module.

        Raises:
            LoadError: If the file is missing or fails during execution.
        """
        if not path.is_file():
            raise LoadError(f"Module file does not exist: {path}")
        with self._import_scope(path):
            return self._exec_module(path)

    def resolve_callable(
        self, module: ModuleType, style: InvocationStyle
    ) -> Callable[..., Any]:
        """Select the callable described by ``style``.

        Raises:
            LoadError: If the default export or the named member is not callable.
        """
        default = getattr(module, self._default_export, None)
        if default is None:
            raise LoadError(
                f"Module {module.__file__} has no '{self._default_export}' export"
            )
        target = default
        if style.export_name is not None:
            if isinstance(default, Mapping):
                target = default.get(style.export_name)
            else:
                target = getattr(default, style.export_name, None)
        if not callable(target):
            label = style.export_name or self._default_export
            raise LoadError(f"Export '{label}' of {module.__file__} is not callable")
        return target

    async def call(
        self,
        func: Callable[..., Any],
        call_args: Mapping[str, Any],
        style: InvocationStyle,
    ) -> Any:
        """Invoke ``func`` and await its result when it is awaitable.

        Raises:
            ExecutionError: If the function raises or its awaitable fails.
        """
        try:
            if style.spread:
                result = func(*call_args.values())
            else:
                result = func(call_args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            raise ExecutionError(f"{exc.__class__.__name__}: {exc}") from exc
        return result

    async def load_and_invoke(
        self,
        artifact_path: Path,
        style: InvocationStyle,
        call_args: Mapping[str, Any],
    ) -> Any:
        """Load ``artifact_path`` fresh and invoke its exported callable.

        Imports performed by the callable itself resolve against the same
        directories as the module body and are discarded once it returns.

        Args:
            artifact_path: Built artifact.
            style: Export selection and calling convention.
            call_args: Arguments for the server function.

        Returns:
            The render result, or ``None`` when the function failed.

        Raises:
            LoadError: If the artifact cannot be loaded or has no callable.
        """
        if not artifact_path.is_file():
            raise LoadError(f"Module file does not exist: {artifact_path}")
        with self._import_scope(artifact_path):
            module = self._exec_module(artifact_path)
            func = self.resolve_callable(module, style)
            try:
                return await self.call(func, call_args, style)
            except ExecutionError as exc:
                logger.error(
                    f"Server function failed (artifact={artifact_path} "
                    f"export={style.export_name or self._default_export} error={exc})",
                    exc_info=exc.__cause__,
                )
                return None

    def _exec_module(self, path: Path) -> ModuleType:
        name = f"_ssrinject_{path.name.split('.')[0]}_{next(_MODULE_COUNTER)}"
        if path.suffix == ".pyc":
            file_loader: SourceFileLoader | SourcelessFileLoader = SourcelessFileLoader(
                name, str(path)
            )
        else:
            file_loader = _UncachedSourceLoader(name, str(path))
        spec = importlib.util.spec_from_file_location(name, path, loader=file_loader)
        if spec is None or spec.loader is None:
            raise LoadError(f"Cannot create module spec: {path}")
        module = importlib.util.module_from_spec(spec)

        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            raise LoadError(f"Failed to load {path}: {exc}") from exc
        finally:
            sys.modules.pop(name, None)
        logger.debug(f"Loaded module fresh (path={path} module={name})")
        return module

    @contextmanager
    def _import_scope(self, path: Path) -> Iterator[None]:
        """Expose the module's directory and the import roots while loading.

        Modules first imported from those directories inside the scope are
        removed from ``sys.modules`` on exit and remembered, so a copy that
        reappears is dropped before the next load.
        """
        self._discard_loaded_modules()
        directories = list(dict.fromkeys([path.parent.resolve(), *self._import_roots]))
        prefixes = tuple(f"{directory}{os.sep}" for directory in directories)

        importlib.invalidate_caches()
        known_modules = set(sys.modules)
        with _prepended_sys_path(directories), _bytecode_writes_disabled():
            try:
                yield
            finally:
                for name in set(sys.modules) - known_modules:
                    file_name = _module_file(sys.modules.get(name))
                    if file_name is None or not file_name.startswith(prefixes):
                        continue
                    if _INSTALLED_PACKAGE_DIRS.intersection(Path(file_name).parts):
                        continue
                    del sys.modules[name]
                    self._loaded_modules[name] = file_name

    def _discard_loaded_modules(self) -> None:
        """Drop modules this loader imported before that are cached again."""
        for name, file_name in list(self._loaded_modules.items()):
            if _module_file(sys.modules.get(name)) == file_name:
                del sys.modules[name]
                logger.debug(f"Discarded cached module (module={name} file={file_name})")
            del self._loaded_modules[name]


class _UncachedSourceLoader(SourceFileLoader):
    """Source loader that neither reads nor writes ``__pycache__`` entries."""

    def get_code(self, fullname: str) -> Any:
        source = self.get_data(self.path)
        return self.source_to_code(source, self.path)


def _module_file(module: ModuleType | None) -> str | None:
    file_name = getattr(module, "__file__", None)
    if not file_name:
        return None
    return os.path.realpath(file_name)


@contextmanager
def _prepended_sys_path(paths: Sequence[Path]) -> Iterator[None]:
    """Put ``paths`` first on ``sys.path``, shared safely by overlapping scopes.

    Entries already present before any scope opened are left untouched.
    """
    claimed: list[str] = []
    for path in reversed(paths):
        entry = str(path)
        if _PATH_REFS[entry] == 0:
            if entry in sys.path:
                continue
            sys.path.insert(0, entry)
        _PATH_REFS[entry] += 1
        claimed.append(entry)
    try:
        yield
    finally:
        for entry in claimed:
            _PATH_REFS[entry] -= 1
            if _PATH_REFS[entry] == 0:
                del _PATH_REFS[entry]
                if entry in sys.path:
                    sys.path.remove(entry)


@contextmanager
def _bytecode_writes_disabled() -> Iterator[None]:
    """Keep imported dependencies from writing ``__pycache__`` files.

    A rewritten file with the same size and timestamp would otherwise be
    served from its stale cached bytecode.
    """
    if _bytecode_state["depth"] == 0:
        _bytecode_state["saved"] = sys.dont_write_bytecode
        sys.dont_write_bytecode = True
    _bytecode_state["depth"] += 1
    try:
        yield
    finally:
        _bytecode_state["depth"] -= 1
        if _bytecode_state["depth"] == 0:
            sys.dont_write_bytecode = _bytecode_state["saved"]
