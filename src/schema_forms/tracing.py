"""
Tracing configuration for schema-forms.

Compile and validate operations are timed and reported through the
``schema_forms`` logger. Nothing is emitted until a handler is attached,
either by the host application or through :func:`setup_tracing`.
"""

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from schema_forms.config import SchemaFormsConfig, get_config

PACKAGE_LOGGER = "schema_forms"
TRACE_LOGGER = "schema_forms.trace"

logger = logging.getLogger(TRACE_LOGGER)


class ConsoleTraceFormatter(logging.Formatter):
    """
    Human-readable trace lines for the console.

    Useful for development and debugging.
    """

    def __init__(self, verbose: bool = False):
        super().__init__()
        self.verbose = verbose

    def format(self, record: logging.LogRecord) -> str:
        line = f"[{record.levelname}] {record.name}: {record.getMessage()}"
        metadata = getattr(record, "trace", None)
        if self.verbose and metadata:
            details = " ".join(f"{k}={v}" for k, v in metadata.items())
            line = f"{line}  ({details})"
        return line


class JsonLinesFormatter(logging.Formatter):
    """
    One JSON object per record.

    Useful for persistent logging and later analysis.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": record.created,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        metadata = getattr(record, "trace", None)
        if metadata:
            entry["trace"] = metadata
        return json.dumps(entry, default=str)


_handlers: list[logging.Handler] = []


def setup_tracing(
    enabled: bool = True,
    console: bool = False,
    verbose: bool = False,
    file_path: str | None = None,
) -> None:
    """
    Configure tracing for schema-forms.

    Replaces any handlers installed by a previous call.

    Args:
        enabled: Whether operation timings are emitted.
        console: Whether to print records to the console.
        verbose: Whether to print debug records and trace metadata.
        file_path: Optional file path to write records to (JSON Lines).

    Example:
        >>> from schema_forms.tracing import setup_tracing
        >>> setup_tracing(console=True, verbose=True)
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in _handlers:
        package_logger.removeHandler(handler)
        handler.close()
    _handlers.clear()

    if not enabled:
        disable_tracing()
        return
    enable_tracing()

    level = logging.DEBUG if verbose else logging.INFO

    if console:
        stream = logging.StreamHandler()
        stream.setFormatter(ConsoleTraceFormatter(verbose=verbose))
        stream.setLevel(level)
        _handlers.append(stream)

    if file_path:
        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setFormatter(JsonLinesFormatter())
        file_handler.setLevel(logging.DEBUG)
        _handlers.append(file_handler)

    for handler in _handlers:
        package_logger.addHandler(handler)
    if _handlers:
        package_logger.setLevel(logging.DEBUG if verbose or file_path else logging.INFO)


def setup_tracing_from_config(settings: SchemaFormsConfig | None = None) -> bool:
    """
    Apply the tracing settings of the configuration.

    Only acts when ``enable_tracing`` is set; handlers attached by the host
    application are left alone otherwise.

    Returns:
        True if tracing was set up.
    """
    settings = settings or get_config()
    if not settings.enable_tracing:
        return False
    setup_tracing(
        enabled=True,
        console=settings.verbose_output or not settings.trace_file,
        verbose=settings.verbose_output,
        file_path=settings.trace_file,
    )
    return True


def disable_tracing() -> None:
    """Stop emitting operation timings."""
    logger.disabled = True


def enable_tracing() -> None:
    """Emit operation timings again."""
    logger.disabled = False


@dataclass
class OperationStats:
    count: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0

    @property
    def average_ms(self) -> float:
        return self.total_ms / self.count if self.count else 0.0


@dataclass
class OperationMetrics:
    """Timing statistics per operation name."""

    operations: dict[str, OperationStats] = field(default_factory=dict)

    def record(self, name: str, elapsed_ms: float) -> None:
        stats = self.operations.setdefault(name, OperationStats())
        stats.count += 1
        stats.total_ms += elapsed_ms
        stats.max_ms = max(stats.max_ms, elapsed_ms)

    def snapshot(self) -> dict[str, dict[str, float]]:
        return {
            name: {
                "count": stats.count,
                "total_ms": round(stats.total_ms, 3),
                "max_ms": round(stats.max_ms, 3),
                "average_ms": round(stats.average_ms, 3),
            }
            for name, stats in self.operations.items()
        }

    def reset(self) -> None:
        self.operations.clear()


@contextmanager
def traced_operation(
    name: str,
    metrics: OperationMetrics | None = None,
    **metadata,
) -> Iterator[dict]:
    """
    Context manager for timing a specific operation.

    The yielded dict can be filled with extra metadata while the
    operation runs; it is attached to the emitted record.

    Args:
        name: Name of the operation to trace.
        metrics: Optional collector receiving the elapsed time.
        **metadata: Metadata to attach to the record.

    Example:
        >>> with traced_operation("compile", fields=4):
        ...     schema = compiler.compile(metadata)
    """
    start = time.perf_counter()
    try:
        yield metadata
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if metrics is not None:
            metrics.record(name, elapsed_ms)
        logger.debug(
            f"{name} took {elapsed_ms:.3f} ms",
            extra={"trace": {"operation": name, "elapsed_ms": round(elapsed_ms, 3), **metadata}},
        )
