# semexplore/context.py
"""
Thread-safe context for semexplore configuration.

Each thread gets its own context via threading.local(). Functions that take
an explicit ``config`` argument use it; otherwise they read the current
thread's context.
"""

import threading
from dataclasses import replace
from typing import Any, Optional

from .core import ExplorerConfig

# Thread-local storage for context
_thread_local = threading.local()


class ExplorerContext:
    """
    Per-thread context for semexplore state.

    Holds the active ExplorerConfig. The core never reads bundles, joins or
    schemas from here; those are always passed in explicitly.
    """

    def __init__(self, config: Optional[ExplorerConfig] = None):
        self.config = config or ExplorerConfig()


def get_context() -> ExplorerContext:
    """Get the current thread's context."""
    if not hasattr(_thread_local, "context"):
        _thread_local.context = ExplorerContext()
    return _thread_local.context


def set_context(ctx: ExplorerContext) -> None:
    """Set context for current thread (used in testing)."""
    _thread_local.context = ctx


def reset_context() -> None:
    """Reset context for current thread."""
    if hasattr(_thread_local, "context"):
        del _thread_local.context


def get_config() -> ExplorerConfig:
    return get_context().config


def resolve_config(config: Optional[ExplorerConfig]) -> ExplorerConfig:
    """Explicit config wins over the thread's context."""
    return config if config is not None else get_context().config


def configure(config: Optional[ExplorerConfig] = None, **overrides: Any) -> ExplorerConfig:
    """
    Replace the current thread's configuration.

    Args:
        config: Base configuration (default: the current one)
        **overrides: Individual ExplorerConfig fields to change

    Returns:
        The configuration now in effect.

    Examples:
        semexplore.configure(type_dominance_threshold=0.9)
        semexplore.configure(ExplorerConfig(top_values_limit=50))
    """
    ctx = get_context()
    base = config or ctx.config
    ctx.config = replace(base, **overrides) if overrides else base
    return ctx.config
