"""
Tests for the API Gateway Lambda handlers.
"""
import json

import pytest
from src.handlers import (
    analytics_handler,
    clear_data_handler,
    create_handler,
    delete_cycle_handler,
    delete_reading_handler,
    list_handler,
    log_handler,
    range_handler,
    revoke_share_handler,
    share_handler,
    update_handler,
)
from src.utils.clients import set_store
from tests.conftest import OWNER_ID, PARTNER_ID, STRANGER_ID, api_event

@pytest.fixture(autouse=True)
def active_store(store):
    """Route every handler to the in-memory test store."""
    set_store(store)
    yield store
    set_store(None)

def body_of(response):
    return json.loads(response["body"])

def start_cycle(context, start_date, actor_id=OWNER_ID):
    response = create_handler(api_event(actor_id, body={"start_date": start_date}), context)
    assert response["statusCode"] == 201
    return body_of(response)["id"]

def test_create_cycle(lambda_context):
    response = create_handler(api_event(body={"start_date": "2025-01-01"}), lambda_context)

    assert response["statusCode"] == 201
    body = body_of(response)
    assert body["start_date"] == "2025-01-01"
    assert body["id"]

def test_create_cycle_missing_start_date(lambda_context):
    response = create_handler(api_event(body={}), lambda_context)
    assert response["statusCode"] == 400

def test_create_cycle_invalid_date(lambda_context):
    response = create_handler(api_event(body={"start_date": "next tuesday"}), lambda_context)
    assert response["statusCode"] == 400

def test_create_cycle_invalid_json(lambda_context):
    event = api_event()
    event["body"] = "{not json"
    assert create_handler(event, lambda_context)["statusCode"] == 400

def test_unauthenticated_request_is_forbidden(lambda_context):
    response = create_handler(api_event(actor_id=None, body={"start_date": "2025-01-01"}), lambda_context)
    assert response["statusCode"] == 403

def test_create_cycle_for_other_user_without_grant(lambda_context):
    response = create_handler(
        api_event(STRANGER_ID, body={"start_date": "2025-01-01", "target_id": OWNER_ID}),
        lambda_context
    )
    assert response["statusCode"] == 403

def test_list_cycles_returns_filled_days(lambda_context):
    start_cycle(lambda_context, "2025-01-01")
    start_cycle(lambda_context, "2025-01-29")
    log_handler(api_event(body={"date": "2025-01-02", "hormone_reading": "Low"}), lambda_context)

    response = list_handler(api_event(), lambda_context)

    assert response["statusCode"] == 200
    cycles = body_of(response)
    assert [c["start_date"] for c in cycles] == ["2025-01-29", "2025-01-01"]
    assert cycles[1]["end_date"] == "2025-01-28"
    assert len(cycles[1]["days"]) == 28
    assert cycles[1]["days"][1] == {
        "id": cycles[1]["days"][1]["id"],
        "date": "2025-01-02",
        "cycle_day": 2,
        "hormone_reading": "Low",
        "intercourse": False
    }
    assert cycles[1]["days"][2]["id"] is None

def test_partner_lists_shared_cycles(lambda_context, active_store):
    active_store.set_shares_with(OWNER_ID, PARTNER_ID)
    start_cycle(lambda_context, "2025-01-01")

    response = list_handler(api_event(PARTNER_ID, query={"target_id": OWNER_ID}), lambda_context)
    assert response["statusCode"] == 200
    assert len(body_of(response)) == 1

    response = list_handler(api_event(STRANGER_ID, query={"target_id": OWNER_ID}), lambda_context)
    assert response["statusCode"] == 403

def test_log_reading_does_not_clobber(lambda_context):
    start_cycle(lambda_context, "2025-01-01")
    log_handler(api_event(body={"date": "2025-01-02", "hormone_reading": "Low"}), lambda_context)

    response = log_handler(api_event(body={"date": "2025-01-02", "intercourse": True}), lambda_context)

    assert response["statusCode"] == 200
    body = body_of(response)
    assert (body["hormone_reading"], body["intercourse"]) == ("Low", True)

def test_log_reading_without_cycle(lambda_context):
    response = log_handler(api_event(body={"date": "2025-01-02", "intercourse": True}), lambda_context)
    assert response["statusCode"] == 404

def test_log_reading_invalid_value(lambda_context):
    start_cycle(lambda_context, "2025-01-01")
    response = log_handler(api_event(body={"date": "2025-01-02", "hormone_reading": "Medium"}), lambda_context)
    assert response["statusCode"] == 400

def test_log_reading_requires_field(lambda_context):
    start_cycle(lambda_context, "2025-01-01")
    response = log_handler(api_event(body={"date": "2025-01-02"}), lambda_context)
    assert response["statusCode"] == 400

def test_range_reports_skipped_dates(lambda_context):
    start_cycle(lambda_context, "2025-01-01")

    response = range_handler(api_event(body={
        "start_date": "2024-12-31",
        "end_date": "2025-01-03",
        "hormone_reading": "High"
    }), lambda_context)

    assert response["statusCode"] == 200
    assert body_of(response) == {"applied": 3, "skipped": 1, "skipped_dates": ["2024-12-31"]}

def test_range_reversed(lambda_context):
    start_cycle(lambda_context, "2025-01-01")
    response = range_handler(api_event(body={
        "start_date": "2025-01-05", "end_date": "2025-01-02", "intercourse": True
    }), lambda_context)
    assert response["statusCode"] == 400

def test_update_and_delete_reading(lambda_context):
    start_cycle(lambda_context, "2025-01-01")
    reading = body_of(log_handler(api_event(body={"date": "2025-01-03", "hormone_reading": "Peak"}), lambda_context))

    response = update_handler(
        api_event(body={"date": "2025-01-04", "intercourse": True}, path={"id": reading["id"]}),
        lambda_context
    )
    assert response["statusCode"] == 200
    updated = body_of(response)
    assert (updated["date"], updated["hormone_reading"], updated["intercourse"]) == ("2025-01-04", "Peak", True)

    response = delete_reading_handler(api_event(path={"id": reading["id"]}), lambda_context)
    assert response["statusCode"] == 200
    response = delete_reading_handler(api_event(path={"id": reading["id"]}), lambda_context)
    assert response["statusCode"] == 404

def test_update_reading_requires_id(lambda_context):
    response = update_handler(api_event(body={"intercourse": True}), lambda_context)
    assert response["statusCode"] == 400

def test_delete_cycle(lambda_context):
    cycle_id = start_cycle(lambda_context, "2025-01-01")

    assert delete_cycle_handler(api_event(STRANGER_ID, path={"id": cycle_id}), lambda_context)["statusCode"] == 403
    assert delete_cycle_handler(api_event(path={"id": cycle_id}), lambda_context)["statusCode"] == 200
    assert delete_cycle_handler(api_event(path={"id": cycle_id}), lambda_context)["statusCode"] == 404

def test_analytics_keys(lambda_context):
    start_cycle(lambda_context, "2025-01-01")
    start_cycle(lambda_context, "2025-01-29")
    start_cycle(lambda_context, "2025-02-28")
    log_handler(api_event(body={"date": "2025-01-14", "hormone_reading": "Peak"}), lambda_context)

    response = analytics_handler(api_event(), lambda_context)

    assert response["statusCode"] == 200
    body = body_of(response)
    assert body["averageCycleLength"] == 29
    assert body["averageDaysToPeak"] == 14
    assert body["estimatedNextPeriod"] == "2025-03-29"
    assert set(body) == {
        "averageCycleLength",
        "averageDaysToPeak",
        "averageFertileWindow",
        "estimatedNextPeriod",
        "estimatedFertileWindowStart",
        "estimatedFertileWindowEnd",
    }

def test_analytics_without_data(lambda_context):
    body = body_of(analytics_handler(api_event(), lambda_context))
    assert body["averageCycleLength"] == 0
    assert body["averageDaysToPeak"] == 0
    assert body["estimatedNextPeriod"] is None

def test_share_and_revoke(lambda_context):
    start_cycle(lambda_context, "2025-01-01")

    response = share_handler(api_event(body={"email": "partner@example.com"}), lambda_context)
    assert response["statusCode"] == 200
    assert list_handler(api_event(PARTNER_ID, query={"target_id": OWNER_ID}), lambda_context)["statusCode"] == 200

    assert revoke_share_handler(api_event(), lambda_context)["statusCode"] == 200
    assert list_handler(api_event(PARTNER_ID, query={"target_id": OWNER_ID}), lambda_context)["statusCode"] == 403

def test_share_with_unknown_user(lambda_context):
    response = share_handler(api_event(body={"email": "nobody@example.com"}), lambda_context)
    assert response["statusCode"] == 404

def test_clear_data(lambda_context, active_store):
    start_cycle(lambda_context, "2025-01-01")
    start_cycle(lambda_context, "2025-01-29")

    response = clear_data_handler(api_event(), lambda_context)

    assert response["statusCode"] == 200
    assert body_of(response)["cycles_deleted"] == 2
    assert active_store.list_cycles(OWNER_ID) == []
