"""DynamoDB audit log of control payloads sent to appliances."""

import json
import logging
import os
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = "thinqmap-control-log"
DEFAULT_REGION = "eu-central-1"
TTL_DAYS = 30


def _to_dynamo(value: Any) -> Any:
    """DynamoDB rejects floats; round-trip through JSON into Decimals."""
    return json.loads(json.dumps(value), parse_float=Decimal)


class ControlAuditLogger:
    """Fire-and-forget logger that writes control requests to DynamoDB.

    Lazy-initializes the boto3 Table resource on first write.
    After any connection/table failure, sets ``_disabled`` to avoid retrying.
    """

    def __init__(self, profile_name: str | None = None) -> None:
        self._profile_name = profile_name
        self._table = None
        self._disabled = False

    def _get_table(self):
        """Lazily create and return the DynamoDB Table resource."""
        if self._table is not None:
            return self._table

        table_name = os.environ.get("DYNAMODB_TABLE_NAME", DEFAULT_TABLE_NAME)
        region = os.environ.get("AWS_DEFAULT_REGION", DEFAULT_REGION)

        session_kwargs = {"region_name": region}
        if self._profile_name:
            session_kwargs["profile_name"] = self._profile_name

        session = boto3.Session(**session_kwargs)
        dynamodb = session.resource("dynamodb")
        self._table = dynamodb.Table(table_name)
        return self._table

    async def log_control(
        self, device_id: str, ident: str, value: Any, result: dict[str, Any]
    ) -> None:
        """Log a control request to DynamoDB.

        This is fire-and-forget: failures are logged as warnings and never
        propagate to the caller.

        Args:
            device_id: Identifier of the appliance
            ident: Property that was changed (``TIMER_START_REL_HOUR``)
            value: Requested value
            result: The dict returned by ``ThinQDevice.request_action``,
                expected to contain ``success``, ``message`` and ``payload``.
        """
        if self._disabled:
            return

        try:
            table = self._get_table()

            now = datetime.now(timezone.utc)
            item = {
                "device_id": device_id,
                "timestamp": now.isoformat(timespec="microseconds"),
                "ident": ident,
                "value": _to_dynamo(value),
                "success": bool(result.get("success", False)),
                "message": str(result.get("message", "")),
                "ttl": int((now + timedelta(days=TTL_DAYS)).timestamp()),
            }
            if result.get("payload") is not None:
                item["payload"] = _to_dynamo(result["payload"])

            table.put_item(Item=item)
        except (BotoCoreError, ClientError, Exception) as exc:
            logger.warning("DynamoDB logging failed, disabling logger: %s", exc)
            self._disabled = True
