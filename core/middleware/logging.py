"""
Structured logging: JSON formatter, request logging middleware and the
masking helpers shared with the audit recorder.
"""

import json
import logging
import re
import time
import traceback
import uuid
from typing import Any, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


# Field names whose values never reach logs or audit payloads
SENSITIVE_FIELD_PATTERNS = [
    re.compile(r'password', re.IGNORECASE),
    re.compile(r'passwd', re.IGNORECASE),
    re.compile(r'token', re.IGNORECASE),
    re.compile(r'api[_-]?key', re.IGNORECASE),
    re.compile(r'secret', re.IGNORECASE),
    re.compile(r'authorization', re.IGNORECASE),
    re.compile(r'cookie', re.IGNORECASE),
    re.compile(r'session', re.IGNORECASE),
    re.compile(r'csrf', re.IGNORECASE),
    re.compile(r'private[_-]?key', re.IGNORECASE),
]

# PII found inside free-text values
PII_PATTERNS = [
    (re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'), '[EMAIL]'),
    (re.compile(r'\b\d{3}[-.]?\d{3}[-.]?\d{4}\b'), '[PHONE]'),
    (re.compile(r'\b\d{3}-\d{2}-\d{4}\b'), '[SSN]'),
    (re.compile(r'\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b'), '[CARD]'),
]

# Paths not worth a log line per request
SKIP_PATHS = ['/health', '/ready', '/metrics']


def is_sensitive_field(field_name: str) -> bool:
    """True when a field name indicates a credential or secret."""
    return any(pattern.search(field_name) for pattern in SENSITIVE_FIELD_PATTERNS)


def mask_sensitive_data(data: Any, depth: int = 0, max_depth: int = 10) -> Any:
    """
    Recursively mask sensitive keys and PII in request data before logging.

    Args:
        data: Data structure to mask
        depth: Current recursion depth
        max_depth: Maximum recursion depth

    Returns:
        Masked copy of the data
    """
    if depth > max_depth:
        return "[MAX_DEPTH_EXCEEDED]"

    if isinstance(data, dict):
        return {
            key: "[REDACTED]"
            if is_sensitive_field(str(key))
            else mask_sensitive_data(value, depth + 1, max_depth)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [mask_sensitive_data(item, depth + 1, max_depth) for item in data]
    if isinstance(data, str):
        masked = data
        for pattern, replacement in PII_PATTERNS:
            masked = pattern.sub(replacement, masked)
        return masked
    return data


def mask_headers(headers: dict) -> dict:
    """Mask sensitive headers; Authorization keeps its scheme."""
    masked = {}
    for key, value in headers.items():
        if not is_sensitive_field(key):
            masked[key] = value
            continue
        parts = value.split(' ', 1) if isinstance(value, str) else []
        if key.lower() == 'authorization' and len(parts) == 2:
            masked[key] = f"{parts[0]} [REDACTED]"
        else:
            masked[key] = "[REDACTED]"
    return masked


def should_log_request(path: str) -> bool:
    return not any(path.startswith(skip) for skip in SKIP_PATHS)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs ``request_started`` / ``request_completed`` events as JSON lines,
    tagged with a request id (taken from ``x-request-id`` or generated) and
    the authenticated user id. The request id is echoed on the response.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_request_body: bool = False,
        max_body_size: int = 1024,
    ):
        super().__init__(app)
        self.log_request_body = log_request_body
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get('x-request-id', str(uuid.uuid4()))
        request.state.request_id = request_id

        if not should_log_request(request.url.path):
            response = await call_next(request)
            response.headers['x-request-id'] = request_id
            return response

        start_time = time.time()
        request_log = {
            'event': 'request_started',
            'request_id': request_id,
            'method': request.method,
            'path': request.url.path,
            'query_params': mask_sensitive_data(dict(request.query_params)),
            'headers': mask_headers(dict(request.headers)),
        }

        if self.log_request_body and request.method in ['POST', 'PUT', 'PATCH']:
            body = await self._get_request_body(request)
            if body is not None:
                request_log['body'] = mask_sensitive_data(body)

        logger.info(json.dumps(request_log, default=str))

        response = None
        try:
            response = await call_next(request)
        finally:
            duration = time.time() - start_time
            status_code = response.status_code if response else 500
            response_log = {
                'event': 'request_completed',
                'request_id': request_id,
                'user_id': str(request.scope.get('user_id')) if request.scope.get('user_id') else None,
                'method': request.method,
                'path': request.url.path,
                'duration_ms': round(duration * 1000, 2),
                'status_code': status_code,
            }

            if status_code >= 500:
                logger.error(json.dumps(response_log))
            elif status_code >= 400:
                logger.warning(json.dumps(response_log))
            else:
                logger.info(json.dumps(response_log))

            if response:
                response.headers['x-request-id'] = request_id

        return response

    async def _get_request_body(self, request: Request) -> Any:
        """Parsed JSON body, a truncation marker, or None."""
        if 'application/json' not in request.headers.get('content-type', ''):
            return None
        body_bytes = await request.body()
        if len(body_bytes) > self.max_body_size:
            return {'_truncated': True, '_size': len(body_bytes)}
        try:
            return json.loads(body_bytes.decode('utf-8'))
        except ValueError as e:
            logger.debug(f"Could not parse request body: {e}")
            return None


class StructuredFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        for extra in ('request_id', 'user_id', 'job_id'):
            if hasattr(record, extra):
                log_data[extra] = str(getattr(record, extra))

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data)


def setup_logging(log_level: str = "INFO", json_logs: bool = True):
    """
    Configure the root logger with a single console handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Whether to format logs as JSON
    """
    level = getattr(logging, log_level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    if json_logs:
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(
            logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        )
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
