"""
Lambda handlers for starting, listing and deleting cycles.
"""
from typing import Dict

from aws_lambda_powertools import Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from src.services.cycle import open_cycle, delete_cycle
from src.services.exceptions import ValidationError
from src.services.timeline import list_filled_cycles
from src.utils.clients import get_store
from src.utils.logging import logger
from src.utils.middleware import (
    api_endpoint,
    get_actor_id,
    get_param,
    get_target_id,
    json_response,
    parse_body,
    parse_date,
)

tracer = Tracer()

@logger.inject_lambda_context
@tracer.capture_lambda_handler
@api_endpoint
def create_handler(event: Dict, context: LambdaContext) -> Dict:
    """
    Handle POST /cycles: start a new cycle and close the open one.

    Body:
        start_date: First day of the new cycle (YYYY-MM-DD)
        target_id: Optional owner of the cycle, defaults to the caller
    """
    actor_id = get_actor_id(event)
    body = parse_body(event)
    start_date = parse_date(body.get("start_date"), "start_date")
    if start_date is None:
        raise ValidationError("start_date is required")

    cycle = open_cycle(get_store(), actor_id, get_target_id(event, body, actor_id), start_date)
    return json_response(201, {"id": cycle.id, "start_date": cycle.start_date.isoformat()})

@logger.inject_lambda_context
@tracer.capture_lambda_handler
@api_endpoint
def list_handler(event: Dict, context: LambdaContext) -> Dict:
    """
    Handle GET /cycles: every cycle of the target with its filled days,
    newest first.
    """
    actor_id = get_actor_id(event)
    cycles = list_filled_cycles(get_store(), actor_id, get_target_id(event, None, actor_id))
    logger.info("Cycles fetched", extra={"count": len(cycles)})
    return json_response(200, [cycle.model_dump(mode="json") for cycle in cycles])

@logger.inject_lambda_context
@tracer.capture_lambda_handler
@api_endpoint
def delete_handler(event: Dict, context: LambdaContext) -> Dict:
    """Handle DELETE /cycles/{id}: delete a cycle and its readings."""
    actor_id = get_actor_id(event)
    cycle_id = get_param(event, "id")
    if not cycle_id:
        raise ValidationError("Cycle id is required")

    delete_cycle(get_store(), actor_id, cycle_id)
    return json_response(200, {"message": "Cycle deleted successfully."})
