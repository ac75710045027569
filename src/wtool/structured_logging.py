"""
Structured logging configuration for wtool.

Emits one JSON object per event on stderr so that stdout stays free for the
command's own output.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from .error_handling import StderrHandler, sanitize_message

# LogRecord attributes that are not event fields
_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
    "message",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, mask_sensitive_data: bool = True):
        super().__init__()
        self.mask_sensitive_data = mask_sensitive_data

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        output = json.dumps(log_entry, default=str)
        if self.mask_sensitive_data:
            output = sanitize_message(output)
        return output


class EventLogger:
    """Structured logger for wtool events."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"wtool.{name}")
        self.logger.propagate = False
        if not self.logger.handlers:
            handler = StderrHandler()
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        self.logger.log(level, "", extra={"event_type": event_type, **kwargs})

    def info(self, event_type: str, **kwargs) -> None:
        self._log(logging.INFO, event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        self._log(logging.WARNING, event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        self._log(logging.ERROR, event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        self._log(logging.DEBUG, event_type, **kwargs)


# Global logger instances
_resolver_logger = EventLogger("resolver")
_vcs_logger = EventLogger("vcs")
_workspace_logger = EventLogger("workspace")

_ALL_LOGGERS = [_resolver_logger, _vcs_logger, _workspace_logger]


def get_resolver_logger() -> EventLogger:
    """Get name resolution logger."""
    return _resolver_logger


def get_vcs_logger() -> EventLogger:
    """Get repository lookup logger."""
    return _vcs_logger


def get_workspace_logger() -> EventLogger:
    """Get WORKSPACE file logger."""
    return _workspace_logger


def log_dependency_resolved(identifier: str, name: str, importpath: str, asis: bool) -> None:
    """Log the mapping of a command line identifier to a Go import path."""
    get_resolver_logger().info(
        "dependency_resolved",
        identifier=identifier,
        declaration_name=name,
        importpath=importpath,
        asis=asis,
    )


def log_repo_root_resolved(importpath: str, vcs: str, repo: str, root: str) -> None:
    get_vcs_logger().info("repo_root_resolved", importpath=importpath, vcs=vcs, repo=repo, root=root)


def log_commit_resolved(repo: str, ref: str, commit: str) -> None:
    get_vcs_logger().info("commit_resolved", repo=repo, ref=ref, commit=commit)


def log_declaration_appended(path: str, name: str, importpath: str, commit: str) -> None:
    get_workspace_logger().debug(
        "declaration_appended",
        file_path=path,
        declaration_name=name,
        importpath=importpath,
        commit=commit,
    )


def log_workspace_written(path: str, declarations: int, size_bytes: Optional[int] = None) -> None:
    """Log a completed WORKSPACE write."""
    log_data = {"file_path": path, "declarations_added": declarations}
    if size_bytes is not None:
        log_data["size_bytes"] = size_bytes
    get_workspace_logger().info("workspace_written", **log_data)


def configure_logging(log_level: str = "WARNING", mask_sensitive_data: bool = True) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    for event_logger in _ALL_LOGGERS:
        event_logger.logger.setLevel(level)
        for handler in event_logger.logger.handlers:
            if isinstance(handler.formatter, StructuredFormatter):
                handler.formatter.mask_sensitive_data = mask_sensitive_data
