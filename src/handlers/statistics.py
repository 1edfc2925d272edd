"""
Lambda handler for cycle analytics.
"""
from typing import Dict

from aws_lambda_powertools import Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from src.services.statistics import compute_analytics
from src.utils.clients import get_store
from src.utils.logging import logger
from src.utils.middleware import api_endpoint, get_actor_id, get_target_id, json_response

tracer = Tracer()

@logger.inject_lambda_context
@tracer.capture_lambda_handler
@api_endpoint
def handler(event: Dict, context: LambdaContext) -> Dict:
    """
    Handle GET /analytics.

    Args:
        event: API Gateway event, optional target_id query parameter
        context: Lambda context

    Returns:
        API Gateway response with averageCycleLength, averageDaysToPeak and
        the derived predictions
    """
    actor_id = get_actor_id(event)
    target_id = get_target_id(event, None, actor_id)
    analytics = compute_analytics(get_store(), actor_id, target_id)

    data = analytics.model_dump(mode="json")
    return json_response(200, {
        "averageCycleLength": data["average_cycle_length"],
        "averageDaysToPeak": data["average_days_to_peak"],
        "averageFertileWindow": data["average_fertile_window"],
        "estimatedNextPeriod": data["estimated_next_period"],
        "estimatedFertileWindowStart": data["estimated_fertile_window_start"],
        "estimatedFertileWindowEnd": data["estimated_fertile_window_end"]
    })
