"""Protocol logging for the login callback.

Provides HTTP-level logging of token and user-info exchanges made by the
authentication engine, with sensitive data redaction.

Log levels:
- ERROR: Only log errors
- INFO: Log callback milestones and exchanges (method, URL, status)
- DEBUG: Log HTTP details (headers, timing)
- TRACE: Log full request/response bodies including sensitive data (requires explicit enable)
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import IntEnum
from itertools import count
from typing import Any

import httpx

# Custom log level for TRACE (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Module logger
logger = logging.getLogger("oauth2login.protocol")


class LogLevel(IntEnum):
    """Protocol logging levels."""

    ERROR = logging.ERROR  # 40
    INFO = logging.INFO  # 20
    DEBUG = logging.DEBUG  # 10
    TRACE = TRACE  # 5


# Patterns for sensitive data redaction
SENSITIVE_PATTERNS = [
    # OAuth2 query/form parameters
    (re.compile(r"(client_secret=)[^&\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(\bcode=)[^&\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(\bstate=)[^&\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(access_token=)[^&\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(refresh_token=)[^&\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(id_token=)[^&\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    # HTTP headers (with or without "Authorization:" prefix for header dict values)
    (re.compile(r"(Authorization:\s*Bearer\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(Authorization:\s*Basic\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"^(Bearer\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"^(Basic\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    # Cookies
    (re.compile(r"(Cookie:\s*)[^\r\n]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(Set-Cookie:\s*)[^\r\n]+", re.IGNORECASE), r"\1[REDACTED]"),
    # JSON fields
    (re.compile(r'"(client_secret)"\s*:\s*"[^"]+"', re.IGNORECASE), r'"\1": "[REDACTED]"'),
    (re.compile(r'"(access_token)"\s*:\s*"[^"]+"', re.IGNORECASE), r'"\1": "[REDACTED]"'),
    (re.compile(r'"(refresh_token)"\s*:\s*"[^"]+"', re.IGNORECASE), r'"\1": "[REDACTED]"'),
    (re.compile(r'"(id_token)"\s*:\s*"[^"]+"', re.IGNORECASE), r'"\1": "[REDACTED]"'),
]


def redact_sensitive(text: str) -> str:
    """Redact sensitive information from text.

    Args:
        text: Text that may contain sensitive data.

    Returns:
        Text with sensitive data redacted.
    """
    result = text
    for pattern, replacement in SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


@dataclass
class HTTPExchange:
    """A single HTTP request/response exchange made by the engine."""

    id: str
    timestamp: datetime
    method: str
    url: str
    request_headers: dict[str, str]
    request_body: str | None = None
    response_status: int | None = None
    response_headers: dict[str, str] = field(default_factory=dict)
    response_body: str | None = None
    duration_ms: float | None = None
    error: str | None = None

    def to_dict(self, include_sensitive: bool = False) -> dict[str, Any]:
        """Convert to dictionary for serialization.

        Args:
            include_sensitive: If True, include raw sensitive data.
                               If False, redact sensitive information.
        """

        def process(value: str | None) -> str | None:
            if value is None:
                return None
            return value if include_sensitive else redact_sensitive(value)

        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "method": self.method,
            "url": process(self.url),
            "request_headers": {k: process(v) for k, v in self.request_headers.items()},
            "request_body": process(self.request_body),
            "response_status": self.response_status,
            "response_headers": {k: process(v) for k, v in self.response_headers.items()},
            "response_body": process(self.response_body),
            "duration_ms": self.duration_ms,
            "error": self.error,
        }

    def redacted(self) -> HTTPExchange:
        """Return a copy with sensitive data redacted."""
        data = self.to_dict()
        return replace(
            self,
            url=data["url"],
            request_headers=data["request_headers"],
            request_body=data["request_body"],
            response_headers=data["response_headers"],
            response_body=data["response_body"],
        )

    def format_log(self, level: LogLevel, include_sensitive: bool = False) -> str:
        """Format the exchange for logging.

        Args:
            level: Log level determines how much detail to include.
            include_sensitive: If True, include raw sensitive data.

        Returns:
            Formatted log string.
        """
        data = self.to_dict(include_sensitive)
        status = self.response_status or "ERROR"
        lines = [f"HTTP {self.method} {data['url']} -> {status}"]

        if self.duration_ms is not None:
            lines.append(f"  Duration: {self.duration_ms:.1f}ms")
        if self.error:
            lines.append(f"  Error: {self.error}")

        if level <= LogLevel.DEBUG:
            lines.append("  Request Headers:")
            lines.extend(f"    {name}: {value}" for name, value in data["request_headers"].items())
            if self.response_headers:
                lines.append("  Response Headers:")
                lines.extend(f"    {name}: {value}" for name, value in data["response_headers"].items())

        if level <= LogLevel.TRACE:
            for label, body in (("Request Body", data["request_body"]), ("Response Body", data["response_body"])):
                if body:
                    lines.append(f"  {label}:")
                    lines.append(f"    {body[:2000]}{'...' if len(body) > 2000 else ''}")

        return "\n".join(lines)


class ProtocolLogger:
    """Configurable protocol logger.

    Decides how much of each HTTP exchange reaches the Python logger and
    keeps the most recent exchanges for inspection. Kept exchanges are
    redacted unless TRACE logging of sensitive data is enabled.
    """

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        trace_enabled: bool = False,
        history_size: int = 50,
    ) -> None:
        """Initialize the protocol logger.

        Args:
            level: Minimum log level.
            trace_enabled: Whether TRACE level is enabled (for sensitive data).
            history_size: Number of recent exchanges to keep. Zero or less
                keeps none.
        """
        self.level = level
        self.trace_enabled = trace_enabled
        self._history_size = max(history_size, 0)
        self._exchanges: list[HTTPExchange] = []
        self._lock = threading.Lock()

    @property
    def effective_level(self) -> LogLevel:
        """Get effective log level (TRACE only if explicitly enabled)."""
        if self.level == LogLevel.TRACE and not self.trace_enabled:
            return LogLevel.DEBUG
        return self.level

    @property
    def exchanges(self) -> list[HTTPExchange]:
        """Recently logged exchanges, oldest first."""
        with self._lock:
            return list(self._exchanges)

    def log_exchange(self, exchange: HTTPExchange) -> None:
        """Log an HTTP exchange.

        Args:
            exchange: The HTTP exchange to log.
        """
        effective = self.effective_level
        include_sensitive = self.trace_enabled and self.level <= LogLevel.TRACE

        if self._history_size:
            kept = exchange if include_sensitive else exchange.redacted()
            with self._lock:
                self._exchanges.append(kept)
                del self._exchanges[: -self._history_size]

        if effective <= LogLevel.DEBUG:
            logger.debug(exchange.format_log(effective, include_sensitive))
        elif effective <= LogLevel.INFO:
            logger.info(exchange.format_log(effective, include_sensitive))

        if exchange.error:
            logger.error(f"HTTP error: {exchange.method} {redact_sensitive(exchange.url)}: {exchange.error}")

    def create_transport(self, transport: httpx.BaseTransport | None = None) -> LoggingTransport:
        """Create an httpx transport that logs requests/responses.

        Args:
            transport: Transport to wrap. Defaults to httpx.HTTPTransport.
        """
        return LoggingTransport(self, transport)


class LoggingTransport(httpx.BaseTransport):
    """HTTPX transport that logs all HTTP exchanges."""

    def __init__(
        self,
        protocol_logger: ProtocolLogger,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._logger = protocol_logger
        self._transport = transport or httpx.HTTPTransport()
        self._counter = count(1)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Handle an HTTP request with logging."""
        exchange = HTTPExchange(
            id=f"http_{next(self._counter):04d}",
            timestamp=datetime.now(UTC),
            method=request.method,
            url=str(request.url),
            request_headers=dict(request.headers),
            request_body=_decode_body(request.content) if request.content else None,
        )
        start_time = time.perf_counter()

        try:
            response = self._transport.handle_request(request)
        except Exception as e:
            exchange.duration_ms = (time.perf_counter() - start_time) * 1000
            exchange.error = str(e) or type(e).__name__
            self._logger.log_exchange(exchange)
            raise

        response.read()
        exchange.duration_ms = (time.perf_counter() - start_time) * 1000
        exchange.response_status = response.status_code
        exchange.response_headers = dict(response.headers)
        exchange.response_body = _decode_body(response.content)
        self._logger.log_exchange(exchange)
        return response

    def close(self) -> None:
        """Close the underlying transport."""
        self._transport.close()


def _decode_body(content: bytes) -> str:
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return "<binary content>"


# Global protocol logger instance
_global_logger: ProtocolLogger | None = None


def get_protocol_logger() -> ProtocolLogger:
    """Get the global protocol logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = ProtocolLogger()
    return _global_logger


def set_protocol_logger(logger_instance: ProtocolLogger) -> None:
    """Set the global protocol logger instance."""
    global _global_logger
    _global_logger = logger_instance


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    trace_enabled: bool = False,
    log_file: str | None = None,
) -> ProtocolLogger:
    """Configure logging for the ``oauth2login`` loggers.

    Args:
        level: Log level (ERROR, INFO, DEBUG, TRACE) or string name.
        trace_enabled: Whether to enable TRACE level (includes sensitive data).
        log_file: Optional file path to write logs to.

    Returns:
        Configured ProtocolLogger.
    """
    if isinstance(level, str):
        level = LogLevel.__members__.get(level.upper(), LogLevel.INFO)

    package_logger = logging.getLogger("oauth2login")
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    protocol_logger = ProtocolLogger(level=level, trace_enabled=trace_enabled)
    set_protocol_logger(protocol_logger)

    if trace_enabled:
        logger.warning("TRACE logging enabled - sensitive data (tokens, secrets) will be logged!")

    return protocol_logger
