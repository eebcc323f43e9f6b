"""
Secret-safe logging module.
CRITICAL: Never log prompts, image URLs (they may be signed), or provider credentials.
Only log: request_id, model, status, latency_ms, error_code and similar job metadata.
"""
import logging
import sys
from typing import Any, Optional

from app.core.config import get_settings


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()

    # Determine log level based on environment
    log_level = logging.DEBUG if settings.service_env == "dev" else logging.INFO

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


class SafeLogger:
    """
    Secret-safe logger wrapper.
    Drops any context field that is not explicitly allowed.
    """

    SAFE_FIELDS = frozenset({
        "request_id",
        "model",
        "status",
        "status_code",
        "queue_position",
        "num_images",
        "image_count",
        "output_format",
        "latency_ms",
        "elapsed_ms",
        "attempts",
        "error_code",
        "method",
        "path",
        "exception_class",
        "shape",
    })

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _format_safe_context(self, context: dict[str, Any]) -> str:
        """Format only safe fields from context."""
        safe_items = []
        for key, value in context.items():
            if key in self.SAFE_FIELDS:
                safe_items.append(f"{key}={value}")
        return " | ".join(safe_items) if safe_items else ""

    def _emit(self, level: int, message: str, context: dict[str, Any]) -> None:
        ctx = self._format_safe_context(context)
        self._logger.log(level, f"{message} | {ctx}" if ctx else message)

    def info(self, message: str, **context: Any) -> None:
        self._emit(logging.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._emit(logging.WARNING, message, context)

    def error(
        self,
        message: str,
        error_code: Optional[str] = None,
        **context: Any
    ) -> None:
        """
        Log error with safe context only.
        Provider messages may echo the prompt, so exception text is never logged.
        """
        if error_code:
            context["error_code"] = error_code
        self._emit(logging.ERROR, message, context)

    def debug(self, message: str, **context: Any) -> None:
        self._emit(logging.DEBUG, message, context)


def get_safe_logger(name: str) -> SafeLogger:
    """Get a secret-safe logger instance."""
    return SafeLogger(name)
