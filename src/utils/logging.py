"""
Logging setup shared by the API layer.

Records are JSON lines from aws_lambda_powertools. Tracebacks are folded into
a single "exception" field so a failed request stays one CloudWatch entry.
"""
import json
import os
import sys
import traceback
from typing import Any, Dict, Optional

from aws_lambda_powertools import Logger

TRACEBACK_SEPARATOR = " | "

def flatten_traceback(exc_info: Any) -> Optional[str]:
    """
    Render exception info as one line.

    Args:
        exc_info: True for the exception being handled, or a
            (type, value, traceback) tuple

    Returns:
        Traceback text with line breaks replaced, or None without an exception
    """
    if exc_info is True:
        exc_info = sys.exc_info()
    if not isinstance(exc_info, tuple) or len(exc_info) != 3 or exc_info[0] is None:
        return None
    lines = traceback.format_exception(*exc_info)
    return TRACEBACK_SEPARATOR.join(
        part.strip() for line in lines for part in line.splitlines() if part.strip()
    )

class SingleLineLogger(Logger):
    """Powertools logger whose exception() output fits on one line."""

    def exception(self, message, *args, **kwargs):
        extra = dict(kwargs.pop('extra', None) or {})
        extra['exception'] = flatten_traceback(kwargs.pop('exc_info', True))
        super().error(message, *args, extra=extra, **kwargs)

    def bind_request(self, event: Dict[str, Any]) -> None:
        """Attach the request route to every following record."""
        self.append_keys(
            http_method=event.get('httpMethod'),
            resource=event.get('resource') or event.get('path')
        )

logger = SingleLineLogger(
    service=os.environ.get('POWERTOOLS_SERVICE_NAME', 'cycle_tracker'),
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    log_uncaught_exceptions=True,
    json_serializer=json.dumps,
    use_rfc3339=True
)

logger.append_keys(
    region=os.environ.get('AWS_REGION'),
    function=os.environ.get('AWS_LAMBDA_FUNCTION_NAME'),
    storage_backend=os.environ.get('STORAGE_BACKEND', 'dynamodb')
)

def log_exception(target_logger: Logger, message: str, exc_info: Any = None, **kwargs: Any) -> None:
    """Log the exception being handled at error level, traceback on one line."""
    extra = dict(kwargs.pop('extra', None) or {})
    extra['exception'] = flatten_traceback(exc_info or sys.exc_info())
    target_logger.error(message, extra=extra, **kwargs)
