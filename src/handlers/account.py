"""
Lambda handlers for account level operations: sharing and data removal.
"""
from typing import Dict

from aws_lambda_powertools import Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from src.services.cycle import clear_all_data
from src.services.exceptions import ValidationError
from src.utils.clients import get_auth, get_store
from src.utils.logging import logger
from src.utils.middleware import api_endpoint, get_actor_id, json_response, parse_body

tracer = Tracer()

@logger.inject_lambda_context
@tracer.capture_lambda_handler
@api_endpoint
def share_handler(event: Dict, context: LambdaContext) -> Dict:
    """
    Handle POST /partner: share the caller's data with another user.

    Body:
        email: Grantee email address (or user_id)
    """
    owner_id = get_actor_id(event)
    body = parse_body(event)
    grantee = body.get("email") or body.get("user_id")
    if not grantee:
        raise ValidationError("email is required")

    grantee_user = get_auth().set_share(owner_id, str(grantee))
    return json_response(200, {
        "message": f"Your data is now shared with {grantee_user.name or grantee_user.email or grantee_user.user_id}."
    })

@logger.inject_lambda_context
@tracer.capture_lambda_handler
@api_endpoint
def revoke_share_handler(event: Dict, context: LambdaContext) -> Dict:
    """Handle DELETE /partner: stop sharing the caller's data."""
    get_auth().clear_share(get_actor_id(event))
    return json_response(200, {"message": "Your data is no longer shared."})

@logger.inject_lambda_context
@tracer.capture_lambda_handler
@api_endpoint
def clear_data_handler(event: Dict, context: LambdaContext) -> Dict:
    """Handle DELETE /data: remove every cycle and reading of the caller."""
    owner_id = get_actor_id(event)
    deleted = clear_all_data(get_store(), owner_id)
    return json_response(200, {"message": "All data cleared successfully.", "cycles_deleted": deleted})
