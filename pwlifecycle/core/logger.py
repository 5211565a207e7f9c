# pwlifecycle/core/logger.py
"""
Structured Logging for the Lifecycle Manager

This module provides structured logging with:
- JSON or console rendering through structlog
- Correlation and test IDs bound per test execution
- Worker (thread) name on every entry
- Performance timing for session creation
- Rotating file output under build/logs
"""

import logging
import logging.handlers
import sys
import threading
import time
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

import structlog

# Context variables for correlation tracking
correlation_id_var: ContextVar[str] = ContextVar('correlation_id', default='')
test_id_var: ContextVar[str] = ContextVar('test_id', default='')

DEFAULT_LOG_FILE = Path("build/logs/automation.log")


class PerformanceTimer:
    """
    Context manager for measuring operation performance.

    Example:
        >>> with PerformanceTimer("create_session") as timer:
        ...     session = registry.acquire()
        ...     timer.add_metric("browser_type", "chromium")
    """

    def __init__(self, operation_name: str, logger: Optional[structlog.BoundLogger] = None):
        """
        Initialize performance timer.

        Args:
            operation_name: Name of the operation being timed
            logger: Logger instance to use (defaults to framework logger)
        """
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.metrics: Dict[str, Any] = {}

    def __enter__(self) -> "PerformanceTimer":
        self.start_time = time.perf_counter()
        self.logger.debug(
            "Operation started",
            operation=self.operation_name,
            event_type="performance_start"
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.end_time = time.perf_counter()
        duration = self.end_time - self.start_time if self.start_time else 0

        log_data = {
            "operation": self.operation_name,
            "duration_seconds": round(duration, 3),
            "event_type": "performance_end",
            **self.metrics
        }

        if exc_type is None:
            self.logger.info("Operation completed successfully", **log_data)
        else:
            log_data["exception_type"] = exc_type.__name__
            log_data["exception_message"] = str(exc_val) if exc_val else None
            self.logger.error("Operation failed", **log_data)

    def add_metric(self, key: str, value: Any) -> None:
        """Add a custom metric to be logged with performance data."""
        self.metrics[key] = value

    @property
    def duration(self) -> Optional[float]:
        """Get the current or final duration of the operation."""
        if self.start_time is None:
            return None
        end_time = self.end_time or time.perf_counter()
        return end_time - self.start_time


def add_lifecycle_context(logger, method_name, event_dict):
    """structlog processor adding the worker and the running test's IDs."""
    event_dict.setdefault("worker", threading.current_thread().name)

    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id

    test_id = test_id_var.get()
    if test_id:
        event_dict["test_id"] = test_id
    return event_dict


def resolve_log_level(name: str) -> int:
    """Numeric level for ``name``; INFO for unknown names."""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


class LoggingManager:
    """
    Owns the process-wide structlog configuration.

    Entries go to stdout and, unless disabled, to a rotating file under
    ``build/logs``. Bound loggers are cached per name.
    """

    def __init__(self):
        self._configured = False
        self._loggers: Dict[str, structlog.BoundLogger] = {}

    def configure_logging(
            self,
            log_level: str = "INFO",
            log_file_path: Optional[Path] = DEFAULT_LOG_FILE,
            enable_json_format: bool = True,
            max_file_bytes: int = 10 * 1024 * 1024,
            backup_count: int = 3
    ) -> None:
        """
        Route structlog through stdlib logging. Only the first call has an effect.

        Args:
            log_level: Level name such as ``DEBUG``; unknown names mean INFO
            log_file_path: Rotating log file, or None for stdout only
            enable_json_format: JSON lines instead of the console renderer
            max_file_bytes: Size at which the log file rotates
            backup_count: Rotated files kept next to the active one
        """
        if self._configured:
            return

        level = resolve_log_level(log_level)
        if enable_json_format:
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(colors=False)

        structlog.configure(
            processors=[
                add_lifecycle_context,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.PositionalArgumentsFormatter(),
                renderer,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(level)
        for handler in self._build_handlers(log_file_path, max_file_bytes, backup_count):
            root_logger.addHandler(handler)

        self._configured = True
        self.get_logger("logging_manager").info(
            "Logging configured",
            log_level=logging.getLevelName(level),
            log_file=str(log_file_path) if log_file_path else None,
            json_format=enable_json_format
        )

    @staticmethod
    def _build_handlers(
            log_file_path: Optional[Path],
            max_file_bytes: int,
            backup_count: int
    ) -> List[logging.Handler]:
        handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
        if log_file_path is not None:
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.handlers.RotatingFileHandler(
                log_file_path,
                maxBytes=max_file_bytes,
                backupCount=backup_count,
                encoding="utf-8"
            ))
        return handlers

    def get_logger(self, name: str = "lifecycle") -> structlog.BoundLogger:
        """
        Get a configured logger instance.

        Args:
            name: Logger name for identification

        Returns:
            structlog.BoundLogger: Configured logger instance
        """
        if not self._configured:
            self.configure_logging()

        if name not in self._loggers:
            self._loggers[name] = structlog.get_logger(name)

        return self._loggers[name]

    def set_correlation_id(self, correlation_id: str) -> None:
        correlation_id_var.set(correlation_id)

    def set_test_id(self, test_id: str) -> None:
        test_id_var.set(test_id)

    def clear_context(self) -> None:
        """Clear all context variables."""
        correlation_id_var.set('')
        test_id_var.set('')


# Global logging manager instance
_logging_manager = LoggingManager()


def setup_logging(
        log_level: str = "INFO",
        log_file_path: Optional[Path] = DEFAULT_LOG_FILE,
        enable_json_format: bool = True
) -> None:
    """
    Set up logging for the lifecycle manager.

    Should be called once at startup; the pytest plugin does this from
    ``pytest_configure``. Later calls are ignored.

    Example:
        >>> setup_logging(log_level="DEBUG", enable_json_format=False)
    """
    _logging_manager.configure_logging(
        log_level=log_level,
        log_file_path=log_file_path,
        enable_json_format=enable_json_format
    )


def get_logger(name: str = "lifecycle") -> structlog.BoundLogger:
    """
    Get a configured logger instance.

    Example:
        >>> logger = get_logger("session_registry")
        >>> logger.info("Session created", browser_type="chromium")
    """
    return _logging_manager.get_logger(name)


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Set correlation ID for tracking related operations.

    Args:
        correlation_id: Explicit correlation ID, or None to generate new one

    Returns:
        str: The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid4())
    _logging_manager.set_correlation_id(correlation_id)
    return correlation_id


def set_test_id(test_id: str) -> None:
    """Set test ID for the current test execution."""
    _logging_manager.set_test_id(test_id)


def clear_logging_context() -> None:
    """Clear all logging context variables."""
    _logging_manager.clear_context()


def get_performance_timer(operation_name: str) -> PerformanceTimer:
    """
    Create a performance timer for measuring operation duration.

    Example:
        >>> with get_performance_timer("destroy_session") as timer:
        ...     registry.destroy()
    """
    return PerformanceTimer(operation_name)


def log_test_step(step_name: str, step_index: int, **kwargs) -> None:
    """
    Log entry into a tracked step.

    Example:
        >>> log_test_step("Navigate to page: https://example.com/", 1)
    """
    logger = get_logger("test_steps")
    logger.info(
        f"Test step: {step_name}",
        step_name=step_name,
        step_index=step_index,
        event_type="test_step",
        **kwargs
    )
