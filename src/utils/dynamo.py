"""
DynamoDB utility functions for data access.

All cycle tracking data lives in a single table keyed by PK/SK:

    USER#{user_id}      PROFILE               user profile and share edge
    USER#{grantee_id}   SHARED_BY#{owner_id}  reverse share edge
    USER#{owner_id}     CYCLE#{cycle_id}      cycle
    USER#{owner_id}     OPEN_CYCLE            pointer to the open cycle
    EMAIL#{email}       METADATA              email to user ID lookup
    CYCLE#{cycle_id}    METADATA              cycle ID to owner lookup
    CYCLE#{cycle_id}    DAY#{date}            day reading
    READING#{id}        METADATA              reading ID to cycle/date lookup
"""
from typing import Dict, List, Optional, Any
import boto3
from boto3.dynamodb.conditions import Key
from boto3.dynamodb.types import TypeSerializer

class DynamoDBClient:
    """Client for interacting with DynamoDB table."""

    def __init__(self, table_name: str):
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        self._serializer = TypeSerializer()

    def put_item(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """
        Put a single item into the table.

        Args:
            item: Dictionary containing item attributes

        Returns:
            Response from DynamoDB
        """
        return self.table.put_item(Item=item)

    def get_item(self, key: Dict[str, str]) -> Optional[Dict[str, Any]]:
        """
        Get a single item from the table.

        Args:
            key: Dictionary containing partition key and sort key

        Returns:
            Item if found, None otherwise
        """
        response = self.table.get_item(Key=key)
        return response.get('Item')

    def query_items(
        self,
        partition_key: str,
        partition_value: str,
        sort_key_condition: Optional[Key] = None
    ) -> List[Dict[str, Any]]:
        """
        Query items using partition key and optional sort key condition.

        Follows LastEvaluatedKey so large partitions are returned in full.

        Args:
            partition_key: Name of partition key
            partition_value: Value of partition key
            sort_key_condition: Optional sort key condition

        Returns:
            List of matching items
        """
        key_condition = Key(partition_key).eq(partition_value)
        if sort_key_condition:
            key_condition = key_condition & sort_key_condition

        kwargs = {"KeyConditionExpression": key_condition}
        items = []
        while True:
            response = self.table.query(**kwargs)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def update_item(
        self,
        key: Dict[str, str],
        update_expression: str,
        expression_values: Dict[str, Any],
        expression_names: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Update an item in the table.

        Args:
            key: Dictionary containing partition key and sort key
            update_expression: Update expression
            expression_values: Expression attribute values
            expression_names: Optional expression attribute names

        Returns:
            Response from DynamoDB
        """
        kwargs = {
            "Key": key,
            "UpdateExpression": update_expression,
            "ExpressionAttributeValues": expression_values,
            "ReturnValues": "ALL_NEW"
        }
        if expression_names:
            kwargs["ExpressionAttributeNames"] = expression_names
        return self.table.update_item(**kwargs)

    def batch_delete(self, keys: List[Dict[str, str]]) -> None:
        """
        Delete many items, batching requests in groups of 25.

        Args:
            keys: Keys of the items to delete
        """
        with self.table.batch_writer() as batch:
            for key in keys:
                batch.delete_item(Key=key)

    def transact_write(self, actions: List[Dict[str, Dict[str, Any]]]) -> Dict[str, Any]:
        """
        Execute several writes atomically.

        Each action is a single-key dict ("Put", "Update", "Delete" or
        "ConditionCheck") whose value uses plain Python values; items, keys
        and expression values are serialized to the low-level format here.

        Args:
            actions: Transaction actions against this table

        Returns:
            Response from DynamoDB

        Example:
            >>> client.transact_write([
            ...     {"Put": {"Item": {"PK": "A", "SK": "B"},
            ...              "ConditionExpression": "attribute_not_exists(PK)"}}
            ... ])
        """
        transact_items = []
        for action in actions:
            operation, params = next(iter(action.items()))
            serialized = {"TableName": self.table.name}
            for name, value in params.items():
                if name in ("Item", "Key", "ExpressionAttributeValues"):
                    value = {k: self._serializer.serialize(v) for k, v in value.items()}
                serialized[name] = value
            transact_items.append({operation: serialized})
        return self.dynamodb.meta.client.transact_write_items(TransactItems=transact_items)

def create_pk(user_id: str) -> str:
    """Create partition key from user ID."""
    return f"USER#{user_id}"

def create_email_pk(email: str) -> str:
    """Create partition key for the email lookup item."""
    return f"EMAIL#{email.strip().lower()}"

def create_cycle_pk(cycle_id: str) -> str:
    """Create partition key holding a cycle's metadata and day readings."""
    return f"CYCLE#{cycle_id}"

def create_reading_pk(reading_id: str) -> str:
    """Create partition key for the reading ID lookup item."""
    return f"READING#{reading_id}"

def create_cycle_sk(cycle_id: str) -> str:
    """Create sort key for cycles under their owner."""
    return f"CYCLE#{cycle_id}"

def create_day_sk(date_str: str) -> str:
    """Create sort key for day readings."""
    return f"DAY#{date_str}"

def create_shared_by_sk(owner_id: str) -> str:
    """
    Create sort key for the reverse share edge.

    Stored under the grantee's partition so that the owners sharing with a
    user can be found with a single query.

    Args:
        owner_id: ID of the user sharing their data

    Returns:
        Sort key in format "SHARED_BY#{owner_id}"
    """
    return f"SHARED_BY#{owner_id}"

PROFILE_SK = "PROFILE"
METADATA_SK = "METADATA"
OPEN_CYCLE_SK = "OPEN_CYCLE"
