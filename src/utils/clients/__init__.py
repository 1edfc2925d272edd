"""
Centralized client initialization module.

Handlers are the process entry points and own the storage client: it is
created lazily on first use and passed explicitly into every engine call.
"""
import os
from aws_lambda_powertools import Logger
from src.services.storage import CycleStore, MemoryCycleStore
from src.services.dynamo_store import DynamoCycleStore
from src.utils.dynamo import DynamoDBClient
from src.utils.auth import Authorization

logger = Logger()

# Initialize shared clients (lazy loading)
_store = None

def get_store() -> CycleStore:
    """
    Get or create the storage backend selected by STORAGE_BACKEND.

    Returns:
        CycleStore: DynamoDB backend by default, in-memory when
        STORAGE_BACKEND is "memory"

    Raises:
        EnvironmentError: If the DynamoDB backend is selected and
            TRACKER_TABLE_NAME is not set
    """
    global _store
    if _store is None:
        backend = os.environ.get('STORAGE_BACKEND', 'dynamodb').lower()
        if backend == 'memory':
            _store = MemoryCycleStore()
        else:
            try:
                table_name = os.environ['TRACKER_TABLE_NAME']
            except KeyError:
                raise EnvironmentError(
                    "TRACKER_TABLE_NAME environment variable not set. "
                    "This variable must be set to the DynamoDB table name."
                )
            _store = DynamoCycleStore(DynamoDBClient(table_name))
        logger.debug("Storage backend initialized", extra={"backend": backend})
    return _store

def set_store(store: CycleStore) -> None:
    """Replace the shared storage backend."""
    global _store
    _store = store

def get_auth() -> Authorization:
    """Create an Authorization instance over the shared store."""
    return Authorization(get_store())
