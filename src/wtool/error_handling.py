"""
Error handling for wtool.

Defines the exception taxonomy raised while updating a WORKSPACE file and a
centralized handler that records and logs failures with credentials masked.
"""

import logging
import re
import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorLevel(Enum):
    """Error severity levels."""

    WARNING = "WARNING"
    ERROR = "ERROR"


class ErrorCategory(Enum):
    """Error categories for better classification."""

    WORKSPACE = "WORKSPACE"
    FILESYSTEM = "FILESYSTEM"
    PARSING = "PARSING"
    VALIDATION = "VALIDATION"
    NETWORK = "NETWORK"
    VCS = "VCS"
    PROCESS = "PROCESS"
    CONFIGURATION = "CONFIGURATION"


class WtoolError(Exception):
    """Base class for every failure that aborts a wtool run."""

    category = ErrorCategory.VALIDATION


class WorkspaceNotFoundError(WtoolError):
    """No ancestor of the start directory holds a WORKSPACE file."""

    category = ErrorCategory.WORKSPACE


class FileReadError(WtoolError):
    category = ErrorCategory.FILESYSTEM


class FileWriteError(WtoolError):
    category = ErrorCategory.FILESYSTEM


class ParseError(WtoolError):
    """The workspace file is not well-formed."""

    category = ErrorCategory.PARSING


class MalformedIdentifierError(WtoolError):
    """A repository identifier cannot be mapped to an import path."""

    category = ErrorCategory.VALIDATION


class VCSResolutionError(WtoolError):
    """An import path cannot be mapped to a repository root."""

    category = ErrorCategory.NETWORK


class UnsupportedVCSError(WtoolError):
    category = ErrorCategory.VCS


class NoRemoteOutputError(WtoolError):
    """git ls-remote returned nothing usable."""

    category = ErrorCategory.VCS


class ProcessSpawnError(WtoolError):
    category = ErrorCategory.PROCESS


@dataclass
class ErrorContext:
    """Structured error context information."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    traceback_info: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)


# Patterns for credentials that show up in repository URLs and git output
SENSITIVE_PATTERNS = [
    (re.compile(r"(https?://[^@\s/]+:)[^@\s]+@", re.IGNORECASE), r"\1[REDACTED]@"),
    (re.compile(r"(https?://)[^:@\s/]+@", re.IGNORECASE), r"\1[REDACTED]@"),
    (
        re.compile(r'token["\s]*[:=]["\s]*([a-zA-Z0-9_\-+=/.]{8,})', re.IGNORECASE),
        'token="[REDACTED]"',
    ),
    (re.compile(r'password["\s]*[:=]["\s]*([^\s"\']+)', re.IGNORECASE), 'password="[REDACTED]"'),
]


def sanitize_message(message: str) -> str:
    """Remove credentials from a message before it is logged or displayed."""
    sanitized = message
    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


class StderrHandler(logging.StreamHandler):
    """StreamHandler that always writes to the current ``sys.stderr``."""

    def __init__(self):
        super().__init__(sys.stderr)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


class SecureLogger:
    """Logger that sanitizes sensitive information."""

    def __init__(self, name: str, level: int = logging.WARNING, mask: bool = True):
        """
        Initialize secure logger.

        Args:
            name: Logger name
            level: Logging level
            mask: Whether to redact credentials from messages
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.mask = mask

        if not self.logger.handlers:
            handler = StderrHandler()
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(handler)

    def _sanitize(self, value: Any) -> Any:
        if not self.mask:
            return value
        if isinstance(value, str):
            return sanitize_message(value)
        if isinstance(value, dict):
            return {key: self._sanitize(item) for key, item in value.items()}
        return value

    def log_error_context(self, context: ErrorContext) -> None:
        """
        Log error context with appropriate level.

        Args:
            context: Error context to log
        """
        log_data = {
            "category": context.category.value,
            "module": context.module,
            "function": context.function,
            "details": self._sanitize(context.details),
        }

        if context.exception:
            log_data["exception"] = type(context.exception).__name__

        if context.suggestions:
            log_data["suggestions"] = context.suggestions

        log_message = f"{self._sanitize(context.message)} | {log_data}"
        level = getattr(logging, context.level.value)
        self.logger.log(level, log_message)


class ErrorHandler:
    """
    Centralized error handler.

    Every failure surfaced to the command line goes through here so it is
    logged once, with credentials masked, and counted per category.
    """

    def __init__(
        self,
        logger_name: str = "wtool",
        log_level: int = logging.WARNING,
        mask_sensitive_data: bool = True,
    ):
        self.logger = SecureLogger(logger_name, log_level, mask_sensitive_data)
        self.error_stats: Dict[str, int] = {}

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        """
        Handle an error with structured logging.

        Args:
            level: Error severity level
            category: Error category
            message: Error message
            module: Module where error occurred
            function: Function where error occurred
            exception: Optional exception object
            details: Additional error details
            suggestions: Suggested fixes

        Returns:
            ErrorContext: The created error context
        """
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            traceback_info=(
                "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
                if exception
                else None
            ),
            suggestions=suggestions or [],
        )

        stat_key = f"{category.value}_{level.value}"
        self.error_stats[stat_key] = self.error_stats.get(stat_key, 0) + 1

        self.logger.log_error_context(context)
        return context

    def error(
        self, category: ErrorCategory, message: str, module: str, function: str, **kwargs
    ) -> ErrorContext:
        """Handle error level error."""
        return self.handle_error(ErrorLevel.ERROR, category, message, module, function, **kwargs)

    def report_exception(self, exc: WtoolError, module: str, function: str) -> ErrorContext:
        """Record a fatal wtool error, with suggestions for its category."""
        return self.error(
            exc.category,
            str(exc),
            module,
            function,
            exception=exc,
            suggestions=SUGGESTIONS.get(exc.category, []),
        )

    def get_error_stats(self) -> Dict[str, int]:
        """Get error statistics."""
        return self.error_stats.copy()


SUGGESTIONS: Dict[ErrorCategory, List[str]] = {
    ErrorCategory.WORKSPACE: ["Run wtool from inside a Bazel workspace"],
    ErrorCategory.PARSING: ["Fix the syntax error in the WORKSPACE file and retry"],
    ErrorCategory.VALIDATION: [
        "Use a bazel repository name with at least 4 parts, like com_github_golang_glog",
        "Pass --asis with a Go import path if the name cannot be converted",
    ],
    ErrorCategory.NETWORK: ["Check network connectivity and that the import path exists"],
    ErrorCategory.VCS: ["Only git repositories can be added"],
    ErrorCategory.PROCESS: ["Make sure git is installed and on PATH"],
}


# Global error handler instance
_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(
    log_level: int = logging.WARNING,
    mask_sensitive_data: bool = True,
    logger_name: str = "wtool",
) -> ErrorHandler:
    """
    Setup global error handling configuration.

    Args:
        log_level: Logging level
        mask_sensitive_data: Whether to redact credentials in log output
        logger_name: Logger name

    Returns:
        ErrorHandler: Configured error handler
    """
    global _global_error_handler
    _global_error_handler = ErrorHandler(logger_name, log_level, mask_sensitive_data)
    return _global_error_handler
