"""Optional MLflow tracing for the generation workflow.

A traced ``animation_generate`` call produces one tree: the ``TOOL`` span,
a ``run_workflow`` ``CHAIN`` span beneath it, and the Gemini calls captured
by ``mlflow.gemini.autolog()``. As the workflow moves through its stages it
tags the active span with ``manimbot.stage``, ``manimbot.attempt`` and
friends, so a failed run shows where it stopped and on which attempt.

mlflow-tracing is an optional extra; every entry point is a no-op without it.

Env vars (all optional):
    MLFLOW_TRACKING_URI: Where to store traces. Empty = tracing disabled.
    MLFLOW_EXPERIMENT_NAME: Experiment name (default ``manimbot-mcp``).
    GEMINI_TRACING_ENABLED: Set to ``"false"`` to force-disable even with a URI.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

try:
    import mlflow
    import mlflow.gemini

    _HAS_MLFLOW = True
except ImportError:
    _HAS_MLFLOW = False

ATTRIBUTE_PREFIX = "manimbot."


def is_enabled() -> bool:
    if not _HAS_MLFLOW:
        return False
    from .config import get_config

    return get_config().tracing_enabled


def trace(
    func: Callable | None = None,
    *,
    name: str | None = None,
    span_type: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Callable:
    """``@mlflow.trace`` when tracing is on, the identity otherwise.

    Decided once, when the decorated module is imported.
    """
    if not is_enabled():
        return func if func is not None else (lambda f: f)
    return mlflow.trace(func, name=name, span_type=span_type, attributes=attributes)


def record_stage(stage: str, **attributes: Any) -> None:
    """Tag the active span with the workflow *stage* just entered.

    Extra keyword attributes (``attempt``, ``tier``, ``duration_seconds``)
    are namespaced under ``manimbot.`` as well. Nothing happens outside a
    span or with tracing off.
    """
    if not is_enabled():
        return
    span = mlflow.get_current_active_span()
    if span is None:
        return
    values = {"stage": stage, **attributes}
    span.set_attributes({ATTRIBUTE_PREFIX + key: value for key, value in values.items()})


def setup() -> None:
    """Point MLflow at the configured server and turn on Gemini autologging.

    A tracking server that is down must not keep the MCP server from
    starting, so failures are logged and dropped.
    """
    if not is_enabled():
        return

    from .config import get_config

    cfg = get_config()
    try:
        mlflow.set_tracking_uri(cfg.mlflow_tracking_uri)
        mlflow.set_experiment(cfg.mlflow_experiment_name)
        mlflow.gemini.autolog()
    except Exception:
        logger.warning("MLflow tracing setup failed: continuing without tracing", exc_info=True)
        return
    logger.info("Tracing workflows to %s (%s)", cfg.mlflow_tracking_uri, cfg.mlflow_experiment_name)


def shutdown() -> None:
    """Flush traces still queued for async export."""
    if not is_enabled():
        return
    try:
        mlflow.flush_trace_async_logging()
    except Exception:
        logger.warning("MLflow trace flush failed", exc_info=True)
