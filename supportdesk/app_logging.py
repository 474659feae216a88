"""Application and access logging setup.

Two loggers are configured with daily rotating files under ``LOG_DIR``:

- ``supportdesk`` (``app.log``) for service events such as routing decisions,
  tool failures and provider errors.
- ``uvicorn.access`` (``access.log``) for one structured line per HTTP request.

The access middleware tags every request with an ``X-Request-Id`` (reusing the
caller's header when present), records the routed agent for chat requests and
scrubs credentials from headers and optional request bodies.

Environment variables: LOG_DIR, LOG_LEVEL, LOG_JSON, LOG_REQUEST_BODIES,
LOG_RETENTION_DAYS, LOG_ROTATE_UTC.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from logging.handlers import TimedRotatingFileHandler
from typing import Any, cast
from uuid import uuid4

from fastapi import FastAPI, Request

APP_LOGGER_NAME = "supportdesk"
ACCESS_LOGGER_NAME = "uvicorn.access"

SKIP_PATHS = frozenset({"/api/health", "/api/metrics"})

SENSITIVE_FIELDS = {
    "authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "api_key",
    "password",
    "token",
}


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter used when LOG_JSON=true."""

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - simple
        payload = {
            "level": record.levelname,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


@dataclass(frozen=True)
class LoggingOptions:
    log_dir: str
    level: int
    json: bool
    request_bodies: bool
    retention_days: int
    rotate_utc: bool

    @classmethod
    def from_env(cls) -> "LoggingOptions":
        level_name = os.getenv("LOG_LEVEL", "INFO").upper()
        return cls(
            log_dir=os.getenv("LOG_DIR", "logs"),
            level=getattr(logging, level_name, logging.INFO),
            json=os.getenv("LOG_JSON", "false").lower() == "true",
            request_bodies=os.getenv("LOG_REQUEST_BODIES", "false").lower() == "true",
            retention_days=int(os.getenv("LOG_RETENTION_DAYS", "7")),
            rotate_utc=os.getenv("LOG_ROTATE_UTC", "false").lower() == "true",
        )


def _get_formatter(log_json: bool) -> logging.Formatter:
    if log_json:
        return JsonFormatter()
    return logging.Formatter("[%(asctime)s] %(levelname)s in %(name)s: %(message)s")


def _rotating_handler(options: LoggingOptions, filename: str) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        os.path.join(options.log_dir, filename),
        when="midnight",
        backupCount=options.retention_days,
        utc=options.rotate_utc,
    )
    handler.setFormatter(_get_formatter(options.json))
    return handler


def _scrub(data: object) -> object:
    """Recursively mask sensitive keys in dictionaries and lists."""

    if isinstance(data, dict):
        return {
            k: ("***" if str(k).lower() in SENSITIVE_FIELDS else _scrub(v))
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [_scrub(v) for v in data]
    return data


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return None


async def _capture_body(request: Request) -> object | None:
    """Read the body for logging and replay it to the downstream handler."""

    body_bytes = await request.body()

    async def receive() -> dict:  # pragma: no cover - internal
        return {"type": "http.request", "body": body_bytes, "more_body": False}

    request._receive = receive  # type: ignore[attr-defined]

    if not body_bytes:
        return None
    try:
        return _scrub(json.loads(body_bytes))
    except ValueError:
        return body_bytes.decode("utf-8", errors="replace")


def _install_access_logging(app: FastAPI, log_request_bodies: bool | None = None) -> None:
    """Install the request/response access logging middleware."""

    if log_request_bodies is None:
        log_request_bodies = os.getenv("LOG_REQUEST_BODIES", "false").lower() == "true"
    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        if request.url.path in SKIP_PATHS:
            return await call_next(request)

        request_id = request.headers.get("X-Request-Id") or uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        body = await _capture_body(request) if log_request_bodies else None

        response = await call_next(request)

        entry: dict[str, Any] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            "client_ip": _client_ip(request),
            "headers": _scrub(dict(request.headers)),
        }
        agent_type = response.headers.get("X-Agent-Type")
        if agent_type:
            entry["agent_type"] = agent_type
        if body is not None:
            entry["body"] = body

        response.headers["X-Request-Id"] = request_id
        access_logger.info(json.dumps(entry, default=str))
        return response


def init_logging(app: FastAPI | None = None) -> None:
    """Initialise application and access loggers (and middleware if ``app``)."""

    options = LoggingOptions.from_env()
    os.makedirs(options.log_dir, exist_ok=True)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    if not app_logger.handlers:
        app_logger.addHandler(_rotating_handler(options, "app.log"))
    app_logger.setLevel(options.level)

    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)
    access_logger.handlers.clear()
    access_logger.addHandler(_rotating_handler(options, "access.log"))
    access_logger.setLevel(options.level)

    if app is not None:
        cast(Any, app).logger = app_logger
        _install_access_logging(app, options.request_bodies)
