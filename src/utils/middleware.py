"""
Middleware functions for API Gateway request processing.
"""
import json
from functools import wraps
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from src.services.exceptions import (
    AuthorizationError,
    CycleTrackerError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from src.services.utils import to_calendar_date
from src.utils.logging import logger, log_exception

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (StorageError, 500),
)

def json_response(status_code: int, body: Any) -> Dict[str, Any]:
    """
    Build an API Gateway proxy response with a JSON body.

    Args:
        status_code: HTTP status code
        body: JSON-serializable response body

    Returns:
        API Gateway Lambda proxy response
    """
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
        "isBase64Encoded": False
    }

def status_for(error: CycleTrackerError) -> int:
    """Map an engine exception to an HTTP status code."""
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 500

def api_endpoint(f: Callable) -> Callable:
    """
    Decorator turning engine exceptions into error responses.

    Validation problems become 400, missing grants 403, unknown resources
    404 and storage failures 500. Anything else is logged and returned as 500.

    Args:
        f: Handler function to wrap

    Returns:
        Wrapped handler function
    """
    @wraps(f)
    def wrapped(event: Dict[str, Any], *args: Any, **kwargs: Any) -> Dict[str, Any]:
        logger.bind_request(event)
        try:
            return f(event, *args, **kwargs)
        except PydanticValidationError as e:
            logger.warning("Invalid request payload", extra={"errors": e.errors(include_url=False)})
            return json_response(400, {"error": "Invalid request payload"})
        except CycleTrackerError as e:
            status_code = status_for(e)
            if status_code >= 500:
                log_exception(logger, "Storage error while handling request", extra={
                    "error_type": e.__class__.__name__
                })
            else:
                logger.info("Request rejected", extra={
                    "status_code": status_code,
                    "error_type": e.__class__.__name__,
                    "error": str(e)
                })
            return json_response(status_code, {"error": str(e)})
        except Exception:
            logger.exception("Unexpected error while handling request")
            return json_response(500, {"error": "Internal server error"})

    return wrapped

def get_actor_id(event: Dict[str, Any]) -> str:
    """
    Extract the authenticated user ID from an API Gateway event.

    The ID comes from the authorizer: Cognito claims ("sub") or a custom
    authorizer context ("user_id").

    Raises:
        AuthorizationError: If the request carries no identity
    """
    authorizer = (event.get("requestContext") or {}).get("authorizer") or {}
    claims = authorizer.get("claims") or {}
    actor_id = claims.get("sub") or authorizer.get("user_id")
    if not actor_id:
        raise AuthorizationError("Could not determine user ID")
    logger.append_keys(actor_id=str(actor_id))
    return str(actor_id)

def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decode the JSON body of an API Gateway event.

    Raises:
        ValidationError: If the body is not a JSON object
    """
    body = event.get("body") or {}
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except json.JSONDecodeError:
            raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body

def get_param(event: Dict[str, Any], name: str) -> Optional[str]:
    """Read a path or query string parameter."""
    for source in ("pathParameters", "queryStringParameters"):
        value = (event.get(source) or {}).get(name)
        if value:
            return value
    return None

def get_target_id(event: Dict[str, Any], body: Optional[Dict[str, Any]], actor_id: str) -> str:
    """The user whose data is addressed, defaulting to the actor."""
    target_id = (body or {}).get("target_id") or get_param(event, "target_id")
    return str(target_id) if target_id else actor_id

def parse_date(value: Any, field_name: str):
    """
    Convert a request value to a calendar date.

    Returns:
        datetime.date, or None when the value is missing

    Raises:
        ValidationError: If the value is not a valid date
    """
    if value is None or value == "":
        return None
    try:
        return to_calendar_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a valid date")
