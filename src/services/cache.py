"""DynamoDB-backed cache with application-checked expiry.

The relational store stays authoritative. Every operation here is best
effort: DynamoDB failures are logged and reported as a miss (or ignored
for writes) so callers always fall back to the store.
"""

import json
import logging
import time
from collections.abc import Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any, TypeVar

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from src.config import get_settings
from src.schemas.cache import CacheStatistics

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

KEY_ATTRIBUTE = "CacheKey"


def _key(key: str) -> dict:
    return {KEY_ATTRIBUTE: {"S": key}}


def _string_attributes(item: dict) -> dict[str, str]:
    """Flatten a low-level DynamoDB item whose attributes are all strings."""
    return {name: value["S"] for name, value in item.items() if "S" in value}


def debt_key(debt_id: int) -> str:
    return f"debt_{debt_id}"


def user_stats_key(user_id: int) -> str:
    return f"user_debt_stats_{user_id}"


def user_by_id_key(user_id: int) -> str:
    return f"user_by_id_{user_id}"


def user_by_email_key(email: str) -> str:
    return f"user_by_email_{email.strip().lower()}"


def _error_code(err: Exception) -> str:
    if isinstance(err, ClientError):
        return err.response["Error"]["Code"]
    return type(err).__name__


class DynamoDBCacheService:
    """Key-value cache over a single DynamoDB table.

    Items look like ``{CacheKey, Data, CreatedAt, UpdatedAt, ExpiresAt?}``
    with ISO-8601 timestamps. ``ExpiresAt`` is checked on read; the table's
    native TTL feature is not used.

    Talks to DynamoDB through a low-level client, which can be shared by the
    request threads and the expiry worker.
    """

    def __init__(
        self,
        table_name: str | None = None,
        client: Any = None,
        clock: Callable[[], datetime] | None = None,
        executor: Executor | None = None,
        poll_interval: float | None = None,
        max_polls: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        settings = get_settings()
        self.table_name = table_name or settings.cache_table_name
        if client is None:
            client = boto3.client(
                "dynamodb",
                region_name=settings.aws_region,
                endpoint_url=settings.dynamodb_endpoint_url,
            )
        self.client = client
        self._clock = clock or (lambda: datetime.now(UTC))
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="cache-expiry"
        )
        self._poll_interval = (
            settings.cache_table_poll_interval_seconds if poll_interval is None else poll_interval
        )
        self._max_polls = settings.cache_table_max_polls if max_polls is None else max_polls
        self._sleep = sleep

    def _now(self) -> datetime:
        return self._clock()

    def get(self, key: str, model: type[ModelT] | None = None) -> Any:
        """Return the cached value for ``key`` or None on miss, expiry or error.

        With ``model`` the payload is validated into that pydantic model,
        otherwise the decoded JSON is returned.
        """
        try:
            response = self.client.get_item(TableName=self.table_name, Key=_key(key))
        except (BotoCoreError, ClientError) as err:
            logger.error(f"Cache get failed for {key} in {self.table_name}: {_error_code(err)}")
            return None

        item = _string_attributes(response.get("Item", {}))
        if not item:
            logger.debug(f"Cache miss: {key}")
            return None

        expires_at = item.get("ExpiresAt")
        if expires_at and self._is_expired(expires_at):
            logger.debug(f"Cache entry expired: {key}")
            self._delete_in_background(key)
            return None

        try:
            if model is not None:
                value = model.model_validate_json(item["Data"])
            else:
                value = json.loads(item["Data"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None

        logger.debug(f"Cache hit: {key}")
        return value

    def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        """Store ``value`` under ``key``, overwriting any previous entry."""
        if value is None:
            return

        try:
            if isinstance(value, BaseModel):
                payload = value.model_dump_json()
            else:
                payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"Could not serialize cache value for {key}: {e}")
            return

        now = self._now()
        item = {
            KEY_ATTRIBUTE: {"S": key},
            "Data": {"S": payload},
            "CreatedAt": {"S": now.isoformat()},
            "UpdatedAt": {"S": now.isoformat()},
        }
        if ttl is not None:
            item["ExpiresAt"] = {"S": (now + ttl).isoformat()}

        try:
            self.client.put_item(TableName=self.table_name, Item=item)
            logger.debug(f"Cached {key} (ttl={ttl})")
        except (BotoCoreError, ClientError) as err:
            logger.error(f"Cache set failed for {key} in {self.table_name}: {_error_code(err)}")

    def delete(self, key: str) -> None:
        try:
            self.client.delete_item(TableName=self.table_name, Key=_key(key))
            logger.debug(f"Cache invalidated: {key}")
        except (BotoCoreError, ClientError) as err:
            logger.error(f"Cache delete failed for {key} in {self.table_name}: {_error_code(err)}")

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def cleanup_expired(self) -> int:
        """Delete every entry whose ExpiresAt is in the past.

        Returns the number of entries deleted before the sweep finished or
        failed.
        """
        scan_kwargs: dict[str, Any] = {
            "TableName": self.table_name,
            "FilterExpression": "ExpiresAt < :now",
            "ExpressionAttributeValues": {":now": {"S": self._now().isoformat()}},
            "ProjectionExpression": KEY_ATTRIBUTE,
        }
        deleted = 0
        try:
            while True:
                response = self.client.scan(**scan_kwargs)
                for item in response.get("Items", []):
                    self.client.delete_item(
                        TableName=self.table_name, Key={KEY_ATTRIBUTE: item[KEY_ATTRIBUTE]}
                    )
                    deleted += 1
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as err:
            logger.error(f"Cache cleanup failed on {self.table_name}: {_error_code(err)}")
            return deleted

        logger.info(f"Removed {deleted} expired cache entries from {self.table_name}")
        return deleted

    def get_statistics(self) -> CacheStatistics:
        total = 0
        scan_kwargs: dict[str, Any] = {"TableName": self.table_name, "Select": "COUNT"}
        try:
            while True:
                response = self.client.scan(**scan_kwargs)
                total += response.get("Count", 0)
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as err:
            logger.error(f"Cache statistics failed on {self.table_name}: {_error_code(err)}")
            return CacheStatistics(
                total_entries=-1,
                table_name=self.table_name,
                last_updated=self._now(),
                error=str(err),
            )

        return CacheStatistics(
            total_entries=total, table_name=self.table_name, last_updated=self._now()
        )

    def ensure_initialized(self) -> bool:
        """Create the cache table if missing and wait until it is ACTIVE.

        Polling stops after ``max_polls`` attempts; False means the table is
        not usable yet.
        """
        try:
            table_status = self._table_status()
        except ClientError as err:
            if _error_code(err) != "ResourceNotFoundException":
                logger.error(
                    f"Could not describe cache table {self.table_name}: {_error_code(err)}"
                )
                return False
            table_status = self._create_table()
            if table_status is None:
                return False
        except BotoCoreError as err:
            logger.error(f"Could not reach DynamoDB for {self.table_name}: {_error_code(err)}")
            return False

        for _ in range(self._max_polls):
            if table_status == "ACTIVE":
                return True
            self._sleep(self._poll_interval)
            try:
                table_status = self._table_status()
            except (BotoCoreError, ClientError) as err:
                logger.error(f"Polling cache table {self.table_name} failed: {_error_code(err)}")
                return False

        if table_status == "ACTIVE":
            return True
        logger.warning(
            f"Cache table {self.table_name} not active after {self._max_polls} polls "
            f"(status {table_status})"
        )
        return False

    def _table_status(self) -> str:
        return self.client.describe_table(TableName=self.table_name)["Table"]["TableStatus"]

    def _create_table(self) -> str | None:
        logger.info(f"Creating cache table {self.table_name}")
        try:
            response = self.client.create_table(
                TableName=self.table_name,
                KeySchema=[{"AttributeName": KEY_ATTRIBUTE, "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": KEY_ATTRIBUTE, "AttributeType": "S"}],
                BillingMode="PAY_PER_REQUEST",
            )
        except ClientError as err:
            # Another process created it first
            if _error_code(err) == "ResourceInUseException":
                return "CREATING"
            logger.error(f"Could not create cache table {self.table_name}: {_error_code(err)}")
            return None
        except BotoCoreError as err:
            logger.error(f"Could not create cache table {self.table_name}: {_error_code(err)}")
            return None
        return response["TableDescription"]["TableStatus"]

    def _is_expired(self, expires_at: str) -> bool:
        try:
            expiry = datetime.fromisoformat(expires_at)
        except ValueError:
            logger.warning(f"Unparseable ExpiresAt {expires_at!r}; treating entry as expired")
            return True
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        return expiry < self._now()

    def _delete_in_background(self, key: str) -> None:
        try:
            self._executor.submit(self.delete, key)
        except RuntimeError as e:
            logger.warning(f"Could not schedule deletion of expired entry {key}: {e}")


@lru_cache
def get_cache_service() -> DynamoDBCacheService:
    """Get the shared cache client."""
    return DynamoDBCacheService()
