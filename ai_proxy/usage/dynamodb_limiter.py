"""DynamoDB-backed usage counters.

One item per counter, keyed by ``usage_key``:

    project#<project_id>#<kind>    consumed, usage_limit (optional)
    platform#<platform_id>#<kind>  consumed

Increments use ``ADD`` inside a single TransactWriteItems call, so the
project and platform counters move together. The request id is sent as the
ClientRequestToken, which makes a retried transaction a no-op.
"""

import asyncio

from ai_proxy.usage.limiter import UsageLimiter, UsageType


def project_key(project_id: str, kind: UsageType) -> str:
    return f"project#{project_id}#{kind.value}"


def platform_key(platform_id: str, kind: UsageType) -> str:
    return f"platform#{platform_id}#{kind.value}"


class DynamoDBUsageLimiter(UsageLimiter):

    def __init__(self, table_name: str, region: str = "us-east-1", default_limit: int | None = None):
        self._table_name = table_name
        self._region = region
        self._default_limit = default_limit
        self._table = None

    def _get_table(self):
        """Lazy-init boto3 Table resource."""
        if self._table is None:
            import boto3

            dynamodb = boto3.resource("dynamodb", region_name=self._region)
            self._table = dynamodb.Table(self._table_name)
        return self._table

    async def check_exceeded(self, project_id: str, kind: UsageType = UsageType.AI_TOKENS) -> bool:
        item = await asyncio.to_thread(self._get_counter, project_key(project_id, kind))

        limit = item.get("usage_limit", self._default_limit)
        if limit is None:
            return False
        return int(item.get("consumed", 0)) >= int(limit)

    async def increment(
        self,
        project_id: str,
        amount: int,
        kind: UsageType = UsageType.AI_TOKENS,
        platform_id: str | None = None,
        idempotency_key: str | None = None,
    ) -> None:
        keys = [project_key(project_id, kind)]
        if platform_id:
            keys.append(platform_key(platform_id, kind))
        await asyncio.to_thread(self._add, keys, amount, idempotency_key)

    def _get_counter(self, key: str) -> dict:
        resp = self._get_table().get_item(Key={"usage_key": key}, ConsistentRead=True)
        return resp.get("Item") or {}

    def _add(self, keys: list[str], amount: int, idempotency_key: str | None) -> None:
        client = self._get_table().meta.client
        kwargs = {
            "TransactItems": [
                {
                    "Update": {
                        "TableName": self._table_name,
                        "Key": {"usage_key": {"S": key}},
                        "UpdateExpression": "ADD consumed :amount",
                        "ExpressionAttributeValues": {":amount": {"N": str(amount)}},
                    }
                }
                for key in keys
            ],
        }
        if idempotency_key:
            kwargs["ClientRequestToken"] = idempotency_key
        client.transact_write_items(**kwargs)
