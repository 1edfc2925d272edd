"""
Lambda handlers for logging, editing and deleting daily readings.
"""
from typing import Any, Dict

from aws_lambda_powertools import Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from src.models.cycle import ReadingUpdate
from src.services.exceptions import ValidationError
from src.services.readings import delete_reading, log_reading, update_reading, upsert_range
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

READING_FIELDS = ("hormone_reading", "intercourse")

def reading_update_from(body: Dict[str, Any]) -> ReadingUpdate:
    """
    Build a partial update from a request body.

    Only keys present in the body count as provided, so an omitted field is
    never overwritten.
    """
    return ReadingUpdate(**{name: body[name] for name in READING_FIELDS if name in body})

@logger.inject_lambda_context
@tracer.capture_lambda_handler
@api_endpoint
def log_handler(event: Dict, context: LambdaContext) -> Dict:
    """
    Handle POST /cycles/days: add or update the reading of one date.

    Body:
        date: Date of the reading
        hormone_reading: Optional "Low", "High", "Peak", or "" to clear
        intercourse: Optional boolean
        target_id: Optional owner of the cycles, defaults to the caller
    """
    actor_id = get_actor_id(event)
    body = parse_body(event)
    day = parse_date(body.get("date"), "date")
    update = reading_update_from(body)

    reading = log_reading(get_store(), actor_id, get_target_id(event, body, actor_id), day, update)
    return json_response(200, reading.model_dump(mode="json"))

@logger.inject_lambda_context
@tracer.capture_lambda_handler
@api_endpoint
def range_handler(event: Dict, context: LambdaContext) -> Dict:
    """
    Handle POST /cycles/days/range: apply one update to a range of dates.

    Dates outside every cycle are skipped and reported back.
    """
    actor_id = get_actor_id(event)
    body = parse_body(event)
    start_date = parse_date(body.get("start_date"), "start_date")
    end_date = parse_date(body.get("end_date"), "end_date")

    result = upsert_range(
        get_store(),
        actor_id,
        get_target_id(event, body, actor_id),
        start_date,
        end_date,
        reading_update_from(body)
    )
    return json_response(200, result.model_dump(mode="json"))

@logger.inject_lambda_context
@tracer.capture_lambda_handler
@api_endpoint
def update_handler(event: Dict, context: LambdaContext) -> Dict:
    """Handle PUT /cycles/days/{id}: edit a reading by ID."""
    actor_id = get_actor_id(event)
    reading_id = get_param(event, "id")
    if not reading_id:
        raise ValidationError("Reading id is required")
    body = parse_body(event)

    reading = update_reading(
        get_store(),
        actor_id,
        reading_id,
        reading_update_from(body),
        new_date=parse_date(body.get("date"), "date")
    )
    return json_response(200, reading.model_dump(mode="json"))

@logger.inject_lambda_context
@tracer.capture_lambda_handler
@api_endpoint
def delete_handler(event: Dict, context: LambdaContext) -> Dict:
    """Handle DELETE /cycles/days/{id}: delete a reading."""
    actor_id = get_actor_id(event)
    reading_id = get_param(event, "id")
    if not reading_id:
        raise ValidationError("Reading id is required")

    delete_reading(get_store(), actor_id, reading_id)
    return json_response(200, {"message": "Daily reading deleted successfully."})
