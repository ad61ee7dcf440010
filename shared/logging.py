"""
Shared logging configuration for the CenterPoint Connect resilience layer.
"""

import sys
import structlog
import logging
import uuid
import time
from typing import Any, Dict, Optional
from contextvars import ContextVar

from opentelemetry import trace

from shared.security import mask_sensitive_data, mask_token

# Context variables for correlation IDs
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
tool_name_var: ContextVar[Optional[str]] = ContextVar('tool_name', default=None)

SENSITIVE_FIELDS = ("authorization", "token")

_AUTH_MESSAGES = {
    "success": "Authentication successful",
    "failure": "Authentication failed",
    "rate_limited": "Authentication rate limited",
}


def configure_logging(
    service_name: str,
    log_level: str = "info",
    log_format: str = "json",
    enable_token_masking: bool = True,
) -> None:
    """Configure structured logging for a service."""

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context,
        add_trace_context,
        add_correlation_context,
        add_timestamp,
    ]
    if enable_token_masking:
        processors.append(mask_sensitive_fields)

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add service context to log events."""
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict["service"] = logger_name.split(".")[0]

    return event_dict


def add_trace_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add trace context to log events."""
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        span_context = current_span.get_span_context()
        if span_context.trace_id != 0:
            event_dict["trace_id"] = f"{span_context.trace_id:032x}"
        if span_context.span_id != 0:
            event_dict["span_id"] = f"{span_context.span_id:016x}"

    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add correlation context to log events."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id

    tool_name = tool_name_var.get()
    if tool_name:
        event_dict["tool_name"] = tool_name

    return event_dict


def add_timestamp(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add high-precision timestamp to log events."""
    event_dict["timestamp"] = time.time()
    return event_dict


def mask_sensitive_fields(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask bearer values and token-shaped strings before rendering."""
    for key, value in list(event_dict.items()):
        if key in SENSITIVE_FIELDS and value:
            event_dict[key] = mask_token(str(value))
        elif isinstance(value, str):
            event_dict[key] = mask_sensitive_data(value)

    return event_dict


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set request ID in context."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def set_tool_context(tool_name: Optional[str] = None):
    """Set the tool invocation context in logging; ``None`` clears it."""
    tool_name_var.set(tool_name)


def clear_context():
    """Clear all context variables."""
    request_id_var.set(None)
    tool_name_var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_request(
    logger: structlog.BoundLogger,
    method: str,
    url: str,
    duration_ms: float,
    status_code: Optional[int] = None,
    error: Optional[BaseException] = None,
) -> None:
    """Log an upstream API request with timing."""
    if error is not None:
        logger.error(
            f"{method} {url} failed after {duration_ms:.0f}ms",
            duration_ms=duration_ms,
            status_code=status_code,
            error=str(error),
        )
    else:
        logger.info(
            f"{method} {url} completed in {duration_ms:.0f}ms",
            duration_ms=duration_ms,
            status_code=status_code,
        )


def log_auth(logger: structlog.BoundLogger, outcome: str, **context: Any) -> None:
    """Log an authentication event."""
    message = _AUTH_MESSAGES[outcome]
    if outcome == "success":
        logger.info(message, **context)
    else:
        logger.warning(message, **context)
