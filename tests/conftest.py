"""
Pytest configuration and shared fixtures.
"""
import json
import os
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional

os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "1")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "cycle_tracker")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

import pytest

from src.models.user import User
from src.services.storage import MemoryCycleStore

OWNER_ID = "owner-1"
PARTNER_ID = "partner-1"
STRANGER_ID = "stranger-1"

@dataclass
class LambdaContext:
    """Minimal Lambda context accepted by Logger.inject_lambda_context."""
    function_name: str = "cycle-tracker-test"
    memory_limit_in_mb: int = 128
    invoked_function_arn: str = "arn:aws:lambda:us-east-1:123456789012:function:cycle-tracker-test"
    aws_request_id: str = "52fdfc07-2182-154f-163f-5f0f9a621d72"

@pytest.fixture
def store() -> MemoryCycleStore:
    """Create an empty in-memory store with three registered users."""
    memory_store = MemoryCycleStore()
    memory_store.put_user(User(user_id=OWNER_ID, email="owner@example.com", name="Owner"))
    memory_store.put_user(User(user_id=PARTNER_ID, email="partner@example.com", name="Partner"))
    memory_store.put_user(User(user_id=STRANGER_ID, email="stranger@example.com", name="Stranger"))
    return memory_store

@pytest.fixture
def shared_store(store) -> MemoryCycleStore:
    """Store where the owner shares their data with the partner."""
    store.set_shares_with(OWNER_ID, PARTNER_ID)
    return store

@pytest.fixture
def lambda_context() -> LambdaContext:
    """Create a Lambda context for handler tests."""
    return LambdaContext()

def api_event(
    actor_id: Optional[str] = OWNER_ID,
    body: Optional[Dict[str, Any]] = None,
    path: Optional[Dict[str, str]] = None,
    query: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """Build an API Gateway proxy event for a Cognito-authenticated user."""
    authorizer = {"claims": {"sub": actor_id}} if actor_id else {}
    return {
        "requestContext": {"authorizer": authorizer},
        "body": json.dumps(body) if body is not None else None,
        "pathParameters": path,
        "queryStringParameters": query
    }

def d(text: str) -> date:
    """Shorthand for date.fromisoformat."""
    return date.fromisoformat(text)
