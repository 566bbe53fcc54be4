from __future__ import annotations

import logging
import os
from dataclasses import replace
from typing import Optional

from .eval.common import DEFAULT_OPTIONS, Options

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}

ENV_MAX_DEPTH = "EXACTSHAPE_MAX_DEPTH"
ENV_NO_RECURSION = "EXACTSHAPE_NO_RECURSION"
ENV_NO_MEMO = "EXACTSHAPE_NO_MEMO"
ENV_DEBUG_PY_TRACE = "EXACTSHAPE_DEBUG_PY_TRACE"
ENV_LOG_LEVEL = "EXACTSHAPE_LOG_LEVEL"


def env_flag(name: str, default: bool = False) -> bool:
    """Read a yes/no env var. Unrecognised values fall back to *default*."""
    raw = os.getenv(name)
    if raw is None:
        return default

    raw = raw.strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default

    try:
        return max(1, int(raw.strip()))
    except ValueError:
        return default


def debug_py_trace_enabled() -> bool:
    return env_flag(ENV_DEBUG_PY_TRACE)


def set_debug_py_trace(enabled: bool) -> None:
    if enabled:
        os.environ[ENV_DEBUG_PY_TRACE] = "1"
    else:
        os.environ.pop(ENV_DEBUG_PY_TRACE, None)


def options_from_env(base: Optional[Options] = None) -> Options:
    """Matcher options with any EXACTSHAPE_* overrides applied on top of *base*."""
    base = base or DEFAULT_OPTIONS

    return replace(
        base,
        max_depth=env_int(ENV_MAX_DEPTH, base.max_depth),
        allow_recursion=not env_flag(ENV_NO_RECURSION, not base.allow_recursion),
        memoize=not env_flag(ENV_NO_MEMO, not base.memoize),
    )


def parse_log_level(raw: str) -> int:
    raw = raw.strip()
    if raw.isdigit():
        return int(raw)

    level = logging.getLevelName(raw.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {raw}")
    return level


def log_level_from_env(default: int = logging.WARNING) -> int:
    raw = os.getenv(ENV_LOG_LEVEL)
    if raw is None:
        return default

    try:
        return parse_log_level(raw)
    except ValueError:
        return default
