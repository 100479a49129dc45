# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Incremental server-side rendering injection for static-site builds."""

from ssrinject.builder import BuildError, BytecodeBundler, ModuleBuilder
from ssrinject.depgraph import ModuleGraph, build_module_graph, compute_dependents
from ssrinject.directive import DirectiveParseError, TagDirective, parse_directive
from ssrinject.injector import SSRInjector
from ssrinject.loader import DynamicLoader, ExecutionError, LoadError
from ssrinject.model import (
    BuildArtifact,
    BuildRunState,
    InvocationStyle,
    PlaceholderMatch,
    ResolutionError,
    SSRConfig,
)
from ssrinject.scan_replace import find_placeholders, scan_replace
from ssrinject.staleness import is_rebuild_required
from ssrinject.wrapper import wrap_output

__all__ = [
    "BuildArtifact",
    "BuildError",
    "BuildRunState",
    "BytecodeBundler",
    "DirectiveParseError",
    "DynamicLoader",
    "ExecutionError",
    "InvocationStyle",
    "LoadError",
    "ModuleBuilder",
    "ModuleGraph",
    "PlaceholderMatch",
    "ResolutionError",
    "SSRConfig",
    "SSRInjector",
    "TagDirective",
    "build_module_graph",
    "compute_dependents",
    "find_placeholders",
    "is_rebuild_required",
    "parse_directive",
    "scan_replace",
    "wrap_output",
]
