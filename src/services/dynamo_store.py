"""
DynamoDB backend for the cycle storage port.

See src/utils/dynamo.py for the single-table key layout. Uniqueness of a day
reading per (cycle, date) falls out of the key design: a cycle's readings
share the CYCLE#{cycle_id} partition and are sorted by DAY#{date}.

Typical usage:
    store = DynamoCycleStore(DynamoDBClient(os.environ['TRACKER_TABLE_NAME']))
    cycle = store.find_open_cycle(user_id)
"""
from datetime import date
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

import botocore
from aws_lambda_powertools import Logger
from boto3.dynamodb.conditions import Key

from src.models.cycle import Cycle, DayReading
from src.models.user import User
from src.services.exceptions import StorageError, TransitionConflictError
from src.services.storage import CycleStore
from src.utils.dynamo import (
    DynamoDBClient,
    METADATA_SK,
    OPEN_CYCLE_SK,
    PROFILE_SK,
    create_cycle_pk,
    create_cycle_sk,
    create_day_sk,
    create_email_pk,
    create_pk,
    create_reading_pk,
    create_shared_by_sk,
)

logger = Logger()

def storage_operation(f: Callable) -> Callable:
    """
    Decorator translating botocore client errors into StorageError.

    Args:
        f: Store method to wrap

    Returns:
        Wrapped store method
    """
    @wraps(f)
    def wrapped(self, *args: Any, **kwargs: Any) -> Any:
        try:
            return f(self, *args, **kwargs)
        except botocore.exceptions.ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            error_msg = e.response.get('Error', {}).get('Message')
            logger.error("DynamoDB access error", extra={
                "operation": f.__name__,
                "error_code": error_code,
                "error_message": error_msg,
                "table": self.client.table.name
            })
            raise StorageError(f"DynamoDB error ({error_code}): {error_msg}") from e
    return wrapped

def _to_attribute(value: Any) -> Any:
    """Convert engine values to what DynamoDB stores."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value

def _cycle_from_item(item: Dict[str, Any]) -> Cycle:
    return Cycle(
        id=item["cycle_id"],
        owner_id=item["owner_id"],
        start_date=item["start_date"],
        end_date=item.get("end_date")
    )

def _reading_from_item(item: Dict[str, Any]) -> DayReading:
    return DayReading(
        id=item["reading_id"],
        cycle_id=item["cycle_id"],
        date=item["date"],
        hormone_reading=item.get("hormone_reading"),
        intercourse=bool(item.get("intercourse", False))
    )

def _day_item(reading: DayReading) -> Dict[str, Any]:
    return {
        "PK": create_cycle_pk(reading.cycle_id),
        "SK": create_day_sk(reading.date.isoformat()),
        "reading_id": reading.id,
        "cycle_id": reading.cycle_id,
        "date": reading.date.isoformat(),
        "hormone_reading": _to_attribute(reading.hormone_reading),
        "intercourse": reading.intercourse
    }

def _reading_pointer_item(reading: DayReading) -> Dict[str, Any]:
    return {
        "PK": create_reading_pk(reading.id),
        "SK": METADATA_SK,
        "reading_id": reading.id,
        "cycle_id": reading.cycle_id,
        "date": reading.date.isoformat()
    }

class DynamoCycleStore(CycleStore):
    """Cycle store backed by a single DynamoDB table."""

    def __init__(self, client: DynamoDBClient):
        self.client = client

    # Users

    @storage_operation
    def get_user(self, user_id: str) -> Optional[User]:
        item = self.client.get_item({"PK": create_pk(user_id), "SK": PROFILE_SK})
        if not item:
            return None
        return User(**{k: v for k, v in item.items() if k not in ("PK", "SK")})

    @storage_operation
    def find_user_by_email(self, email: str) -> Optional[User]:
        lookup = self.client.get_item({"PK": create_email_pk(email), "SK": METADATA_SK})
        if not lookup:
            return None
        return self.get_user(lookup["user_id"])

    @storage_operation
    def put_user(self, user: User) -> User:
        self.client.put_item({
            "PK": create_pk(user.user_id),
            "SK": PROFILE_SK,
            **user.model_dump()
        })
        if user.email:
            self.client.put_item({
                "PK": create_email_pk(user.email),
                "SK": METADATA_SK,
                "user_id": user.user_id
            })
        return user

    @storage_operation
    def set_shares_with(self, owner_id: str, grantee_id: Optional[str]) -> None:
        profile_key = {"PK": create_pk(owner_id), "SK": PROFILE_SK}
        current = self.client.get_item(profile_key) or {}
        previous = current.get("shares_with")

        if grantee_id is None:
            profile_update = {
                "Key": profile_key,
                "UpdateExpression": "SET user_id = :user_id REMOVE shares_with",
                "ExpressionAttributeValues": {":user_id": owner_id}
            }
        else:
            profile_update = {
                "Key": profile_key,
                "UpdateExpression": "SET user_id = :user_id, shares_with = :grantee",
                "ExpressionAttributeValues": {":user_id": owner_id, ":grantee": grantee_id}
            }
        actions = [{"Update": profile_update}]
        if previous and previous != grantee_id:
            actions.append({"Delete": {"Key": {
                "PK": create_pk(previous),
                "SK": create_shared_by_sk(owner_id)
            }}})
        if grantee_id is not None:
            actions.append({"Put": {"Item": {
                "PK": create_pk(grantee_id),
                "SK": create_shared_by_sk(owner_id),
                "owner_id": owner_id
            }}})
        self.client.transact_write(actions)

    @storage_operation
    def list_sharing_with(self, grantee_id: str) -> List[str]:
        items = self.client.query_items(
            partition_key="PK",
            partition_value=create_pk(grantee_id),
            sort_key_condition=Key("SK").begins_with("SHARED_BY#")
        )
        return [item["owner_id"] for item in items]

    # Cycles

    @storage_operation
    def get_cycle(self, cycle_id: str) -> Optional[Cycle]:
        lookup = self.client.get_item({"PK": create_cycle_pk(cycle_id), "SK": METADATA_SK})
        if not lookup:
            return None
        item = self.client.get_item({
            "PK": create_pk(lookup["owner_id"]),
            "SK": create_cycle_sk(cycle_id)
        })
        return _cycle_from_item(item) if item else None

    @storage_operation
    def list_cycles(self, owner_id: str) -> List[Cycle]:
        items = self.client.query_items(
            partition_key="PK",
            partition_value=create_pk(owner_id),
            sort_key_condition=Key("SK").begins_with("CYCLE#")
        )
        return [_cycle_from_item(item) for item in items]

    @storage_operation
    def find_open_cycle(self, owner_id: str) -> Optional[Cycle]:
        pointer = self.client.get_item({"PK": create_pk(owner_id), "SK": OPEN_CYCLE_SK})
        if not pointer:
            return None
        item = self.client.get_item({
            "PK": create_pk(owner_id),
            "SK": create_cycle_sk(pointer["cycle_id"])
        })
        return _cycle_from_item(item) if item else None

    def begin_cycle(self, new_cycle: Cycle, closing: Optional[Cycle] = None) -> Cycle:
        owner_pk = create_pk(new_cycle.owner_id)
        pointer = {"PK": owner_pk, "SK": OPEN_CYCLE_SK, "cycle_id": new_cycle.id}
        actions = []
        if closing is not None:
            actions.append({"Update": {
                "Key": {"PK": owner_pk, "SK": create_cycle_sk(closing.id)},
                "UpdateExpression": "SET end_date = :end_date",
                "ConditionExpression": "attribute_exists(PK) AND attribute_not_exists(end_date)",
                "ExpressionAttributeValues": {":end_date": closing.end_date.isoformat()}
            }})
            actions.append({"Put": {
                "Item": pointer,
                "ConditionExpression": "cycle_id = :previous",
                "ExpressionAttributeValues": {":previous": closing.id}
            }})
        else:
            actions.append({"Put": {
                "Item": pointer,
                "ConditionExpression": "attribute_not_exists(PK)"
            }})
        actions.append({"Put": {
            "Item": {
                "PK": owner_pk,
                "SK": create_cycle_sk(new_cycle.id),
                "cycle_id": new_cycle.id,
                "owner_id": new_cycle.owner_id,
                "start_date": new_cycle.start_date.isoformat()
            },
            "ConditionExpression": "attribute_not_exists(PK)"
        }})
        actions.append({"Put": {"Item": {
            "PK": create_cycle_pk(new_cycle.id),
            "SK": METADATA_SK,
            "cycle_id": new_cycle.id,
            "owner_id": new_cycle.owner_id
        }}})

        try:
            self.client.transact_write(actions)
        except botocore.exceptions.ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            logger.error("Cycle transition failed", extra={
                "owner_id": new_cycle.owner_id,
                "new_cycle_id": new_cycle.id,
                "closing_cycle_id": closing.id if closing else None,
                "error_code": error_code
            })
            if error_code == "TransactionCanceledException":
                raise TransitionConflictError(
                    f"Open cycle for owner {new_cycle.owner_id} changed during transition"
                ) from e
            raise StorageError(f"DynamoDB error ({error_code}) during cycle transition") from e
        return new_cycle

    @storage_operation
    def delete_cycle(self, cycle_id: str) -> bool:
        cycle = self.get_cycle(cycle_id)
        if cycle is None:
            return False

        owner_pk = create_pk(cycle.owner_id)
        keys = [{"PK": owner_pk, "SK": create_cycle_sk(cycle_id)}]
        for item in self.client.query_items("PK", create_cycle_pk(cycle_id)):
            keys.append({"PK": item["PK"], "SK": item["SK"]})
            if "reading_id" in item:
                keys.append({"PK": create_reading_pk(item["reading_id"]), "SK": METADATA_SK})

        pointer = self.client.get_item({"PK": owner_pk, "SK": OPEN_CYCLE_SK})
        if pointer and pointer.get("cycle_id") == cycle_id:
            keys.append({"PK": owner_pk, "SK": OPEN_CYCLE_SK})

        self.client.batch_delete(keys)
        logger.debug("Deleted cycle", extra={"cycle_id": cycle_id, "items_deleted": len(keys)})
        return True

    # Day readings

    @storage_operation
    def list_readings(self, cycle_id: str) -> List[DayReading]:
        items = self.client.query_items(
            partition_key="PK",
            partition_value=create_cycle_pk(cycle_id),
            sort_key_condition=Key("SK").begins_with("DAY#")
        )
        return [_reading_from_item(item) for item in items]

    @storage_operation
    def get_reading(self, cycle_id: str, day: date) -> Optional[DayReading]:
        item = self.client.get_item({
            "PK": create_cycle_pk(cycle_id),
            "SK": create_day_sk(day.isoformat())
        })
        return _reading_from_item(item) if item else None

    @storage_operation
    def get_reading_by_id(self, reading_id: str) -> Optional[DayReading]:
        pointer = self.client.get_item({"PK": create_reading_pk(reading_id), "SK": METADATA_SK})
        if not pointer:
            return None
        item = self.client.get_item({
            "PK": create_cycle_pk(pointer["cycle_id"]),
            "SK": create_day_sk(pointer["date"])
        })
        return _reading_from_item(item) if item else None

    @storage_operation
    def insert_reading(self, reading: DayReading) -> DayReading:
        self.client.transact_write([
            {"Put": {
                "Item": _day_item(reading),
                "ConditionExpression": "attribute_not_exists(PK)"
            }},
            {"Put": {"Item": _reading_pointer_item(reading)}}
        ])
        return reading

    @storage_operation
    def update_reading(self, reading_id: str, fields: Dict[str, Any]) -> Optional[DayReading]:
        current = self.get_reading_by_id(reading_id)
        if current is None:
            return None

        new_date = fields.get("date")
        if new_date is not None and new_date != current.date:
            moved = current.model_copy(update=fields)
            self.client.transact_write([
                {"Delete": {"Key": {
                    "PK": create_cycle_pk(current.cycle_id),
                    "SK": create_day_sk(current.date.isoformat())
                }}},
                {"Put": {
                    "Item": _day_item(moved),
                    "ConditionExpression": "attribute_not_exists(PK)"
                }},
                {"Put": {"Item": _reading_pointer_item(moved)}}
            ])
            return moved

        values = {k: v for k, v in fields.items() if k != "date"}
        if not values:
            return current
        names = {f"#{name}": name for name in values}
        response = self.client.update_item(
            key={
                "PK": create_cycle_pk(current.cycle_id),
                "SK": create_day_sk(current.date.isoformat())
            },
            update_expression="SET " + ", ".join(f"#{name} = :{name}" for name in values),
            expression_values={f":{name}": _to_attribute(value) for name, value in values.items()},
            expression_names=names
        )
        return _reading_from_item(response["Attributes"])

    @storage_operation
    def delete_reading(self, reading_id: str) -> bool:
        current = self.get_reading_by_id(reading_id)
        if current is None:
            return False
        self.client.batch_delete([
            {"PK": create_cycle_pk(current.cycle_id), "SK": create_day_sk(current.date.isoformat())},
            {"PK": create_reading_pk(reading_id), "SK": METADATA_SK}
        ])
        return True
