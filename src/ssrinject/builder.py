# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Artifact building for SSR entry files."""

import asyncio
import logging
import py_compile
from pathlib import Path
from typing import Protocol

from ssrinject.model import BuildArtifact, ResolutionError

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".bundle.pyc"


class BuildError(ResolutionError):
    """Represent a bundling failure for one entry file."""


class Bundler(Protocol):
    """Define the build primitive producing one server-runnable artifact."""

    async def bundle(self, entry_path: Path, artifact_path: Path) -> None:
        """Build ``entry_path`` as the sole root into ``artifact_path``.

        Raises:
            BuildError: If the artifact cannot be produced.
        """


class BytecodeBundler:
    """Compile an entry into one optimized bytecode file."""

    def __init__(self, optimize: int = 2) -> None:
        """Initialize bundler.

        Args:
            optimize: Compiler optimization level; ``2`` strips asserts and docstrings.
        """
        self._optimize = optimize

    async def bundle(self, entry_path: Path, artifact_path: Path) -> None:
        """Compile ``entry_path`` in a worker thread.

        Raises:
            BuildError: If the source is invalid or the artifact cannot be written.
        """
        try:
            await asyncio.to_thread(
                py_compile.compile,
                str(entry_path),
                cfile=str(artifact_path),
                doraise=True,
                optimize=self._optimize,
            )
        except (py_compile.PyCompileError, OSError) as exc:
            raise BuildError(f"Failed to build {entry_path}: {exc}") from exc


def artifact_path_for(entry_path: Path) -> Path:
    """Derive the artifact path for an entry, beside the entry file.

    ``card.py`` becomes ``card.bundle.pyc``.
    """
    return entry_path.with_name(f"{entry_path.stem}{ARTIFACT_SUFFIX}")


class ModuleBuilder:
    """Build entry artifacts on demand."""

    def __init__(self, bundler: Bundler | None = None) -> None:
        self._bundler: Bundler = bundler or BytecodeBundler()
        self._in_flight: dict[Path, asyncio.Task[None]] = {}

    async def build(self, entry_path: Path, required: bool) -> BuildArtifact:
        """Return the artifact for ``entry_path``, building it when required.

        Concurrent requests for the same entry share one build.

        Args:
            entry_path: Entry source file.
            required: Whether the artifact is stale.

        Returns:
            Entry and artifact paths.

        Raises:
            BuildError: If the bundler fails.
        """
        artifact_path = artifact_path_for(entry_path)
        artifact = BuildArtifact(entry_path=entry_path, artifact_path=artifact_path)
        if not required:
            logger.info(
                f"Rebuild not required (entry={entry_path} artifact={artifact_path})"
            )
            return artifact

        task = self._in_flight.get(artifact_path)
        if task is None:
            task = asyncio.ensure_future(self._bundler.bundle(entry_path, artifact_path))
            self._in_flight[artifact_path] = task
        try:
            await task
        finally:
            if self._in_flight.get(artifact_path) is task and task.done():
                del self._in_flight[artifact_path]
        logger.info(f"Rebuilt entry (entry={entry_path} artifact={artifact_path})")
        return artifact
