"""Tests for ControlAuditLogger using moto for in-memory DynamoDB."""

from decimal import Decimal

import boto3
import pytest
from moto import mock_aws
from boto3.dynamodb.conditions import Key

from thinqmap.logging import ControlAuditLogger

TABLE_NAME = "thinqmap-control-log"
REGION = "eu-central-1"
DEVICE_ID = "ac-test"


def _create_table(dynamodb):
    """Create the DynamoDB table used by the logger."""
    dynamodb.create_table(
        TableName=TABLE_NAME,
        KeySchema=[
            {"AttributeName": "device_id", "KeyType": "HASH"},
            {"AttributeName": "timestamp", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "device_id", "AttributeType": "S"},
            {"AttributeName": "timestamp", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


def _make_result(success=True, payload=None, message="Command accepted"):
    """Build a result dict matching ThinQDevice.request_action."""
    return {
        "success": success,
        "message": message,
        "payload": payload,
    }


@pytest.fixture
def aws_env(monkeypatch):
    """Set env vars so the logger finds the right table and region."""
    monkeypatch.setenv("DYNAMODB_TABLE_NAME", TABLE_NAME)
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)


@pytest.fixture
def dynamodb_table(aws_env):
    """Provide a moto-backed DynamoDB table and a patched logger."""
    with mock_aws():
        session = boto3.Session(region_name=REGION)
        dynamodb = session.resource("dynamodb")
        _create_table(dynamodb)
        table = dynamodb.Table(TABLE_NAME)

        logger = ControlAuditLogger()
        # Inject the moto-backed table directly so the logger doesn't
        # create its own boto3 session.
        logger._table = table

        yield logger, table


@pytest.mark.asyncio
async def test_log_control_writes_item(dynamodb_table):
    logger, table = dynamodb_table

    await logger.log_control(DEVICE_ID, "POWER", True, _make_result(payload={"operation": {"airConOperationMode": "POWER_ON"}}))

    resp = table.query(KeyConditionExpression=Key("device_id").eq(DEVICE_ID))
    assert resp["Count"] == 1


@pytest.mark.asyncio
async def test_log_control_contains_expected_fields(dynamodb_table):
    logger, table = dynamodb_table
    payload = {"temperature": {"targetTemperature": 21.5, "unit": "C"}}

    await logger.log_control(DEVICE_ID, "TARGET_TEMPERATURE", 21.5, _make_result(payload=payload))

    resp = table.query(KeyConditionExpression=Key("device_id").eq(DEVICE_ID))
    item = resp["Items"][0]

    assert item["device_id"] == DEVICE_ID
    assert item["ident"] == "TARGET_TEMPERATURE"
    assert item["value"] == Decimal("21.5")
    assert item["payload"] == {"temperature": {"targetTemperature": Decimal("21.5"), "unit": "C"}}
    assert item["success"] is True
    assert item["message"] == "Command accepted"
    assert "timestamp" in item
    assert "ttl" in item


@pytest.mark.asyncio
async def test_unhandled_request_is_logged_without_payload(dynamodb_table):
    logger, table = dynamodb_table

    await logger.log_control(DEVICE_ID, "LAST_ERROR", "x", _make_result(success=False, message="not handled"))

    item = table.query(KeyConditionExpression=Key("device_id").eq(DEVICE_ID))["Items"][0]
    assert item["success"] is False
    assert "payload" not in item


@pytest.mark.asyncio
async def test_log_multiple_requests_queryable_by_time(dynamodb_table):
    logger, table = dynamodb_table

    await logger.log_control(DEVICE_ID, "POWER", True, _make_result())
    await logger.log_control(DEVICE_ID, "TIMER_START_REL_HOUR", 2, _make_result())
    await logger.log_control(DEVICE_ID, "POWER", False, _make_result())

    resp = table.query(
        KeyConditionExpression=(
            Key("device_id").eq(DEVICE_ID) & Key("timestamp").gte("2000-01-01")
        )
    )
    assert resp["Count"] == 3

    # Items should come back in ascending timestamp order
    idents = [item["ident"] for item in resp["Items"]]
    assert idents == ["POWER", "TIMER_START_REL_HOUR", "POWER"]


@pytest.mark.asyncio
async def test_graceful_degradation_no_credentials():
    """When boto3 session creation fails, logger should disable itself, not raise."""
    from unittest.mock import patch

    logger = ControlAuditLogger()
    with patch("thinqmap.logging.dynamo_logger.boto3.Session", side_effect=Exception("no credentials")):
        await logger.log_control(DEVICE_ID, "POWER", True, _make_result())
    assert logger._disabled is True


@pytest.mark.asyncio
async def test_graceful_degradation_no_table(aws_env):
    """With moto active but no table created, logger should disable itself."""
    with mock_aws():
        session = boto3.Session(region_name=REGION)
        dynamodb = session.resource("dynamodb")
        # Table does NOT exist
        logger = ControlAuditLogger()
        logger._table = dynamodb.Table("nonexistent-table")

        await logger.log_control(DEVICE_ID, "POWER", True, _make_result())
        assert logger._disabled is True


@pytest.mark.asyncio
async def test_disabled_flag_prevents_retries(dynamodb_table):
    logger, table = dynamodb_table

    logger._disabled = True
    await logger.log_control(DEVICE_ID, "POWER", True, _make_result())

    resp = table.query(KeyConditionExpression=Key("device_id").eq(DEVICE_ID))
    assert resp["Count"] == 0
