"""Log sanitization filter to keep journal content and PII out of logs.

The engine itself logs only counts and labels, but exceptions and third
party messages can still carry raw journal text. This filter redacts:
- Email addresses
- Phone numbers
- Card-like digit runs
- Quoted values of text=/source=/notes= fields

Usage:
    from energytune.utils.log_sanitizer import configure_logging

    configure_logging("INFO")
"""

import logging
import re
from typing import Any, List, Optional, Tuple


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class LogSanitizationFilter(logging.Filter):
    """Logging filter that redacts personal data from log messages."""

    # Order matters - card numbers before phone numbers
    PATTERNS: List[Tuple[re.Pattern, str]] = [
        # Free-text journal fields, quoted or up to the next separator
        (re.compile(r'\b((?:text|source|sources|notes)["\']?\s*[:=]\s*)(["\']).*?\2', re.IGNORECASE),
         r'\1\2[REDACTED]\2'),
        (re.compile(r'\b((?:text|source|sources|notes)\s*=\s*)[^"\'\s,;&][^,;&\n]*', re.IGNORECASE),
         r'\1[REDACTED]'),

        # Email addresses
        (re.compile(r'\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b'), '[REDACTED_EMAIL]'),

        # Credit card numbers (13-19 digits, possibly with spaces/dashes)
        (re.compile(r'\b(?:\d[ -]*?){13,19}\b'), '[REDACTED_CARD]'),

        # Phone numbers (optional country code, then 3-3-3/4 digit groups)
        (re.compile(r'(?<![\w-])(?:\+\d{1,3}[ .-]?)?\(?\d{3}\)?[ .-]?\d{3}[ .-]?\d{3,4}(?![\w-])'),
         '[REDACTED_PHONE]'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Sanitize the record in place; always lets it through."""
        if record.msg:
            record.msg = self._sanitize(str(record.msg))

        if record.args:
            record.args = self._sanitize_args(record.args)

        return True

    def _sanitize(self, text: str) -> str:
        for pattern, replacement in self.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def _sanitize_args(self, args: Any) -> Any:
        """Recursively sanitize log arguments."""
        if isinstance(args, str):
            return self._sanitize(args)
        elif isinstance(args, tuple):
            return tuple(self._sanitize_args(arg) for arg in args)
        elif isinstance(args, list):
            return [self._sanitize_args(arg) for arg in args]
        elif isinstance(args, dict):
            return {k: self._sanitize_args(v) for k, v in args.items()}
        else:
            # Numbers and other primitives keep their type unless redacted
            str_val = str(args)
            sanitized = self._sanitize(str_val)
            return sanitized if sanitized != str_val else args


def install_log_sanitizer(logger_name: Optional[str] = None) -> LogSanitizationFilter:
    """Install the sanitization filter.

    Args:
        logger_name: If provided, install only on the named logger.
                    If None, install on the root logger and its handlers.

    Returns:
        The installed filter
    """
    sanitizer = LogSanitizationFilter()

    if logger_name:
        logging.getLogger(logger_name).addFilter(sanitizer)
    else:
        root_logger = logging.getLogger()
        root_logger.addFilter(sanitizer)
        for handler in root_logger.handlers:
            handler.addFilter(sanitizer)
    return sanitizer


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging with the sanitizer installed.

    Args:
        level: Log level name; defaults to the configured ``log_level``
    """
    if level is None:
        from ..config import get_settings
        level = get_settings().log_level

    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    install_log_sanitizer()


def sanitize_string(text: str) -> str:
    """Sanitize a string without going through the logging system."""
    return LogSanitizationFilter()._sanitize(text)
