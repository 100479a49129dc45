# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Build-cycle orchestration of SSR placeholder injection."""

import inspect
import logging
import posixpath
from collections.abc import Mapping, MutableMapping
from dataclasses import fields
from pathlib import Path
from typing import Any

from ssrinject.builder import ModuleBuilder
from ssrinject.depgraph import compute_dependents
from ssrinject.directive import TagDirective
from ssrinject.loader import DynamicLoader, LoadError
from ssrinject.model import BuildRunState, SSRConfig
from ssrinject.paths import to_posix
from ssrinject.scan_replace import find_placeholders, scan_replace
from ssrinject.staleness import is_rebuild_required
from ssrinject.wrapper import wrap_output

logger = logging.getLogger(__name__)

HTML_SUFFIX = ".html"


class SSRInjector:
    """Resolve placeholder tags in HTML assets for one build pipeline."""

    def __init__(
        self,
        config: SSRConfig | None = None,
        builder: ModuleBuilder | None = None,
        loader: DynamicLoader | None = None,
    ) -> None:
        """Initialize injector.

        Args:
            config: Injection configuration; defaults apply when omitted.
            builder: Artifact builder.
            loader: Module loader. Defaults to one rooted at ``config.search_root``.
        """
        self._config = config or SSRConfig()
        self._builder = builder or ModuleBuilder()
        self._loader = loader or DynamicLoader(
            import_roots=[self._config.search_root],
            default_export=self._config.default_export,
        )
        for option in fields(self._config):
            value = getattr(self._config, option.name)
            if option.name == "tag_pattern":
                value = value.pattern
            logger.info(f"SSR injector option (name={option.name} value={value})")

    @property
    def config(self) -> SSRConfig:
        return self._config

    def start_cycle(
        self, state: BuildRunState, changed_module: Path | None
    ) -> BuildRunState:
        """Record a source change and recompute the dirty module set.

        Args:
            state: State carried over from the previous cycle.
            changed_module: Source file that triggered this cycle, if known.

        Returns:
            State for the new cycle.
        """
        if changed_module is not None:
            logger.info(f"Source module changed (path={to_posix(changed_module)})")
        dirty = compute_dependents(self._config.search_root, changed_module)
        logger.debug(f"Dirty modules computed (count={len(dirty)} modules={sorted(dirty)})")
        return state.with_change(changed_module, dirty)

    def finish_cycle(self, state: BuildRunState) -> BuildRunState:
        """Mark the current build cycle as complete."""
        if state.is_initial_run:
            logger.info("Initial compilation run finished")
        return state.completed()

    async def process_assets(
        self, assets: MutableMapping[str, str], state: BuildRunState
    ) -> dict[str, int]:
        """Replace placeholders in every HTML asset, one asset at a time.

        Args:
            assets: Output file name to text content; HTML entries are rewritten.
            state: Current build run state.

        Returns:
            Placeholder count per processed HTML asset.
        """
        counts: dict[str, int] = {}
        for asset_name in list(assets):
            if not asset_name.endswith(HTML_SUFFIX):
                continue
            source = assets[asset_name]
            counts[asset_name] = len(find_placeholders(source, self._config.tag_pattern))
            if counts[asset_name] == 0:
                continue
            assets[asset_name] = await self.render_asset(asset_name, source, state)
        return counts

    async def render_asset(self, asset_name: str, source: str, state: BuildRunState) -> str:
        """Resolve every placeholder in one asset's text."""
        asset_dir = self._config.base_dir / posixpath.dirname(to_posix(asset_name) or "")

        async def resolve(tag_text: str) -> str:
            return await self._resolve_tag(tag_text, asset_name, asset_dir, state)

        return await scan_replace(source, self._config.tag_pattern, resolve)

    async def _resolve_tag(
        self, tag_text: str, asset_name: str, asset_dir: Path, state: BuildRunState
    ) -> str:
        directive = TagDirective.parse(tag_text)
        logger.debug(
            f"Placeholder attributes (asset={asset_name} attributes={dict(directive.attributes)})"
        )

        entry_path = (asset_dir / directive.src).resolve()
        call_args = self._build_call_args(
            (asset_dir / directive.args).resolve(), asset_name
        )
        logger.debug(f"Placeholder arguments (asset={asset_name} args={call_args})")

        required = is_rebuild_required(
            state.dirty_modules, entry_path, state.is_initial_run
        )
        artifact = await self._builder.build(entry_path, required)
        result = await self._loader.load_and_invoke(
            artifact.artifact_path, directive.invocation, call_args
        )

        emit_props = self._config.create_data_props
        if directive.print_data_props is not None:
            emit_props = directive.print_data_props
        return wrap_output(
            directive.wrapper_tag,
            directive.wrapper_class,
            result,
            call_args if emit_props else None,
        )

    def _build_call_args(self, args_path: Path, asset_name: str) -> dict[str, Any]:
        """Load the args factory module fresh and produce call arguments.

        Raises:
            LoadError: If the factory cannot be called or returns a non-mapping.
        """
        module = self._loader.load_module(args_path)
        factory = getattr(module, self._config.default_export, None)
        if not callable(factory):
            raise LoadError(
                f"Args module {args_path} has no callable '{self._config.default_export}'"
            )
        try:
            if _accepts_positional(factory):
                produced = factory(self._config.env_file)
            else:
                produced = factory()
        except Exception as exc:
            raise LoadError(f"Args factory in {args_path} failed: {exc}") from exc
        if not isinstance(produced, Mapping):
            raise LoadError(
                f"Args factory in {args_path} returned {type(produced).__name__}, expected a mapping"
            )
        call_args = dict(produced)
        call_args["_"] = {"fileName": asset_name}
        return call_args


def _accepts_positional(func: Any) -> bool:
    try:
        inspect.signature(func).bind(None)
    except TypeError:
        return False
    except ValueError:
        return True
    return True
