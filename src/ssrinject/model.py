# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Domain models and configuration for SSR injection."""

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TAG_PATTERN: re.Pattern[str] = re.compile(r'<SSR\b(?:[^>"]|"[^"]*")*?/>')
DEFAULT_SEARCH_ROOT = Path("src/components")
DEFAULT_EXPORT = "default"


class ResolutionError(RuntimeError):
    """Represent a failure resolving one placeholder tag."""


@dataclass(frozen=True)
class SSRConfig:
    """Configuration consumed by the injector.

    Attributes:
        tag_pattern: Pattern matching one whole placeholder tag.
        create_data_props: Emit ``data-props`` on wrappers unless a tag overrides it.
        env_file: Env file name handed to args factories.
        search_root: Root directory of the module dependency graph.
        base_dir: Directory asset-relative ``src``/``args`` paths are resolved from.
        default_export: Module attribute treated as the default export.
    """

    tag_pattern: re.Pattern[str] = DEFAULT_TAG_PATTERN
    create_data_props: bool = False
    env_file: str = ".env"
    search_root: Path = DEFAULT_SEARCH_ROOT
    base_dir: Path = field(default_factory=Path.cwd)
    default_export: str = DEFAULT_EXPORT


@dataclass(frozen=True)
class BuildRunState:
    """Represent incremental build state threaded through build cycles.

    Attributes:
        last_modified_module: Source file that triggered the current cycle.
        dirty_modules: Root-relative posix paths affected by the change.
        is_initial_run: True until the first build cycle completes.
    """

    last_modified_module: Path | None = None
    dirty_modules: frozenset[str] = frozenset()
    is_initial_run: bool = True

    def with_change(
        self, changed_module: Path | None, dirty_modules: set[str]
    ) -> "BuildRunState":
        """Return state for a new cycle triggered by ``changed_module``."""
        return replace(
            self,
            last_modified_module=changed_module,
            dirty_modules=frozenset(dirty_modules),
        )

    def completed(self) -> "BuildRunState":
        """Return state after a finished cycle."""
        if not self.is_initial_run:
            return self
        return replace(self, is_initial_run=False)


@dataclass(frozen=True)
class PlaceholderMatch:
    """Represent one placeholder occurrence inside a text buffer."""

    raw_text: str
    start_offset: int
    end_offset: int


@dataclass(frozen=True)
class BuildArtifact:
    """Represent a built (or reused) artifact for one entry file."""

    entry_path: Path
    artifact_path: Path


@dataclass(frozen=True)
class InvocationStyle:
    """Describe how a loaded artifact is invoked.

    Attributes:
        export_name: Named attribute of the default export; ``None`` calls the
            default export itself.
        spread: Pass argument mapping values positionally instead of the mapping.
    """

    export_name: str | None = None
    spread: bool = False
