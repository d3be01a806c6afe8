"""
ecocorr/utils/context_logger.py
Logging with analysis context (operation name, entity list) on every record.
"""

import contextvars
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Sequence

_CONTEXT: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "ecocorr_log_context", default={}
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(operation)s %(entities)s] %(message)s"


class ContextFilter(logging.Filter):
    """Stamp records with the context of the task that emitted them."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _CONTEXT.get()
        record.operation = context.get("operation", "-")
        record.entities = context.get("entities", "-")
        for key, value in context.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ContextAwareLogger:
    """Context-aware logger factory"""

    _initialized = False
    _context_filter = ContextFilter()

    @classmethod
    def initialize(cls, level: Optional[str] = None) -> None:
        if cls._initialized:
            return

        root_logger = logging.getLogger()
        if not root_logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root_logger.addHandler(handler)
        if level:
            root_logger.setLevel(logging.getLevelName(level.upper()))

        for handler in root_logger.handlers:
            handler.addFilter(cls._context_filter)

        cls._initialized = True
        logging.getLogger(__name__).info("Context-aware logging initialized")

    @classmethod
    def get_logger(cls, name: Optional[str] = None) -> logging.Logger:
        if not cls._initialized:
            cls.initialize()

        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if not any(isinstance(f, ContextFilter) for f in handler.filters):
                handler.addFilter(cls._context_filter)
        return logger

    @classmethod
    def add_context(cls, key: str, value: Any) -> None:
        context = dict(_CONTEXT.get())
        context[key] = value
        _CONTEXT.set(context)

    @classmethod
    def remove_context(cls, key: str) -> None:
        context = dict(_CONTEXT.get())
        context.pop(key, None)
        _CONTEXT.set(context)

    @classmethod
    def current_context(cls) -> Dict[str, Any]:
        return dict(_CONTEXT.get())


@contextmanager
def operation_context(operation: str, entities: Sequence[str] = ()) -> Iterator[None]:
    """Attach ``operation`` and ``entities`` to log records emitted inside the block."""
    context = dict(_CONTEXT.get())
    context["operation"] = operation
    context["entities"] = ",".join(entities)
    token = _CONTEXT.set(context)
    try:
        yield
    finally:
        _CONTEXT.reset(token)


def setup_context_logging(level: Optional[str] = None) -> None:
    """One-time setup for context-aware logging"""
    ContextAwareLogger.initialize(level)


def get_context_logger(name: Optional[str] = None) -> logging.Logger:
    return ContextAwareLogger.get_logger(name)
