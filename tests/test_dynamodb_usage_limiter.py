"""Tests for ai_proxy/usage/dynamodb_limiter.py — DynamoDB usage counters."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from ai_proxy.usage.dynamodb_limiter import DynamoDBUsageLimiter, platform_key, project_key
from ai_proxy.usage.limiter import UsageType


@pytest.fixture
def mock_table():
    """Mock boto3 DynamoDB Table."""
    return MagicMock()


@pytest.fixture
def limiter(mock_table):
    """DynamoDBUsageLimiter with pre-injected mock table."""
    lim = DynamoDBUsageLimiter(table_name="usage-table", region="us-east-1", default_limit=100)
    lim._table = mock_table
    return lim


class TestKeys:

    def test_key_format(self):
        assert project_key("proj-1", UsageType.AI_TOKENS) == "project#proj-1#ai_tokens"
        assert platform_key("plat-1", UsageType.AI_TOKENS) == "platform#plat-1#ai_tokens"


class TestCheckExceeded:

    async def test_reads_project_counter(self, limiter, mock_table):
        mock_table.get_item.return_value = {"Item": {"usage_key": "project#proj-1#ai_tokens", "consumed": Decimal(5)}}

        assert await limiter.check_exceeded("proj-1") is False
        mock_table.get_item.assert_called_once_with(
            Key={"usage_key": "project#proj-1#ai_tokens"}, ConsistentRead=True,
        )

    async def test_item_limit_overrides_default(self, limiter, mock_table):
        mock_table.get_item.return_value = {"Item": {"consumed": Decimal(10), "usage_limit": Decimal(10)}}
        assert await limiter.check_exceeded("proj-1") is True

    async def test_default_limit_applies(self, limiter, mock_table):
        mock_table.get_item.return_value = {"Item": {"consumed": Decimal(100)}}
        assert await limiter.check_exceeded("proj-1") is True

    async def test_missing_item_is_zero(self, limiter, mock_table):
        mock_table.get_item.return_value = {}
        assert await limiter.check_exceeded("proj-1") is False

    async def test_no_limit_anywhere(self, mock_table):
        lim = DynamoDBUsageLimiter(table_name="t")
        lim._table = mock_table
        mock_table.get_item.return_value = {"Item": {"consumed": Decimal(10**9)}}
        assert await lim.check_exceeded("proj-1") is False

    async def test_store_error_propagates(self, limiter, mock_table):
        mock_table.get_item.side_effect = RuntimeError("throttled")
        with pytest.raises(RuntimeError):
            await limiter.check_exceeded("proj-1")


class TestIncrement:

    async def test_transaction_updates_project_and_platform(self, limiter, mock_table):
        client = mock_table.meta.client

        await limiter.increment("proj-1", 1, UsageType.AI_TOKENS, platform_id="plat-1", idempotency_key="abc123")

        client.transact_write_items.assert_called_once()
        kwargs = client.transact_write_items.call_args.kwargs
        assert kwargs["ClientRequestToken"] == "abc123"
        updates = [item["Update"] for item in kwargs["TransactItems"]]
        assert [u["Key"]["usage_key"]["S"] for u in updates] == [
            "project#proj-1#ai_tokens",
            "platform#plat-1#ai_tokens",
        ]
        for update in updates:
            assert update["TableName"] == "usage-table"
            assert update["UpdateExpression"] == "ADD consumed :amount"
            assert update["ExpressionAttributeValues"] == {":amount": {"N": "1"}}

    async def test_project_only_without_token(self, limiter, mock_table):
        client = mock_table.meta.client

        await limiter.increment("proj-1", 3)

        kwargs = client.transact_write_items.call_args.kwargs
        assert "ClientRequestToken" not in kwargs
        assert len(kwargs["TransactItems"]) == 1


class TestLazyInit:

    def test_table_is_none_initially(self):
        lim = DynamoDBUsageLimiter(table_name="t")
        assert lim._table is None

    @patch("boto3.resource")
    def test_table_created_on_first_use(self, mock_resource):
        mock_dynamodb = MagicMock()
        mock_resource.return_value = mock_dynamodb

        lim = DynamoDBUsageLimiter(table_name="usage", region="eu-west-1")
        lim._get_table()

        mock_resource.assert_called_once_with("dynamodb", region_name="eu-west-1")
        mock_dynamodb.Table.assert_called_once_with("usage")
