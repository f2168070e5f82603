"""Logging utilities for accessgraph.

This module provides:
- Logging configuration from ResolverConfig
- Safe preview utilities for remote payloads and error messages
- Secret redaction (bearer tokens leak into transport error text)
- Structured logging with resource_scope / scan_id context
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import LogLevel, ResolverConfig


# Patterns for detecting secrets (common patterns to redact)
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|client[_-]?secret|api[_-]?key)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9\-_.+/=]+)',
    r'eyJ[a-zA-Z0-9_-]{10,}\.[a-zA-Z0-9_-]{10,}\.[a-zA-Z0-9_-]*',  # JWT access tokens
    r'(?i)(?:x-api-key|x-auth-token|x-access-token)\s*[:=]\s*["\']?([^"\'\s]+)',
]

# Record attributes that are part of the stdlib LogRecord, not extra context
_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
    "resource_scope", "scan_id",
}


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded preview of a value for logging.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A single-line, truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    # Normalize whitespace
    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns from text.

    Removes bearer/basic credentials, JWT access tokens, client secrets
    and API key assignments.

    Args:
        text: The text to redact
        replacement: String to replace secrets with (default: "[REDACTED]")

    Returns:
        Text with secrets redacted
    """
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Preview plus optional redaction; use for anything that came off the wire."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class ResolutionFormatter(logging.Formatter):
    """Formatter that adds resolution context and optional JSON output.

    - Extracts resource_scope and scan_id from log records (if available)
    - Formats logs as JSON or plain text
    - Redacts secrets automatically
    """

    def __init__(
        self,
        include_context: bool = True,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.include_context = include_context
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record."""
        resource_scope = getattr(record, "resource_scope", None)
        scan_id = getattr(record, "scan_id", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            if scan_id:
                log_data["scan_id"] = str(scan_id)
            if resource_scope:
                log_data["resource_scope"] = str(resource_scope)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])
            if "exception" in log_data:
                log_data["exception"] = redact_secrets(log_data["exception"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if self.include_context and scan_id:
            parts.append(f"scan_id={log_data['scan_id']}")
        if self.include_context and resource_scope:
            parts.append(f"resource={log_data['resource_scope']}")
        component = log_data.get("component")
        if component:
            parts.append(f"[{component}]")
        parts.append(f": {log_data['message']}")
        if "exception" in log_data:
            parts.append("\n" + log_data["exception"])
        return " ".join(parts)


class ResolutionLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that attaches resource_scope and scan_id to records.

    Usage:
        logger = get_resolution_logger(__name__, scan_id="nightly-42")
        logger.info("Expanding group", resource_scope=site_url)
    """

    def __init__(
        self,
        logger: logging.Logger,
        resource_scope: Optional[str] = None,
        scan_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.resource_scope = resource_scope
        self.scan_id = scan_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Move resolution context from kwargs into ``extra``."""
        resource_scope = kwargs.pop("resource_scope", self.resource_scope)
        scan_id = kwargs.pop("scan_id", self.scan_id)

        extra = kwargs.get("extra", {})
        if resource_scope:
            extra["resource_scope"] = resource_scope
        if scan_id:
            extra["scan_id"] = scan_id
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[ResolverConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure root logging for a resolution job.

    Args:
        config: ResolverConfig instance (if None, loads from environment)
        json_format: Override config.log_json
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_resolver_config_from_env
        config = load_resolver_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(LogLevel(config.log_level), logging.INFO)
    if json_format is None:
        json_format = config.log_json

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        ResolutionFormatter(
            include_context=True,
            json_format=json_format,
            redact_secrets=redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)


def get_resolution_logger(
    name: str,
    resource_scope: Optional[str] = None,
    scan_id: Optional[str] = None,
) -> ResolutionLoggerAdapter:
    """Get a logger adapter carrying resolution context.

    Args:
        name: Logger name (typically __name__)
        resource_scope: Optional resource (site URL) to include in all logs
        scan_id: Optional scan identifier to include in all logs

    Returns:
        ResolutionLoggerAdapter instance
    """
    logger = logging.getLogger(name)
    return ResolutionLoggerAdapter(logger, resource_scope=resource_scope, scan_id=scan_id)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "ResolutionFormatter",
    "ResolutionLoggerAdapter",
    "setup_logging",
    "get_resolution_logger",
]
