from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

from waterlevel.logger import logger
from waterlevel.models.telemetry import TelemetryEntity, TelemetryMessage
from waterlevel.tables.aio import AsyncTableService


def decode_message(payload: bytes, meta: Dict[str, Any]) -> Optional[TelemetryMessage]:
    """
    Parses a queue payload into a TelemetryMessage.
    Returns None (and logs why) when the payload is not UTF-8 JSON with the expected fields.
    """
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError:
        logger.bind(meta=meta, size=len(payload)).info("Received non-utf8 payload")
        return None

    try:
        return TelemetryMessage.from_json(text)
    except ValidationError as e:
        logger.bind(meta=meta, sample=text[:200], errors=e.error_count()).warning(
            "Payload is not a telemetry message"
        )
        return None


async def process_message(
    payload: bytes, meta: Dict[str, Any], tables: AsyncTableService, table: str
) -> Optional[TelemetryEntity]:
    """
    Persists a drained queue message as a table entity.
    Invalid payloads are skipped (None is returned); storage errors propagate.
    """
    message = decode_message(payload, meta)
    if message is None:
        return None

    entity = TelemetryEntity.from_message(message)
    stored = await tables.insert_or_replace_entity(table, entity.to_entity())
    logger.bind(
        table=table,
        partition_key=entity.partition_key,
        row_key=entity.row_key,
        water_level=entity.water_level,
        elapsed_s=stored.response.elapsed_s,
    ).info("Stored telemetry record")
    return TelemetryEntity.from_entity(stored.result)
