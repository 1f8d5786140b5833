from __future__ import annotations

from typing import Any, Dict

from waterlevel.logger import logger
from waterlevel.models.sample import Sample
from waterlevel.models.telemetry import TelemetryMessage
from waterlevel.queues.base import QueueClient


def encode_sample(sample: Sample) -> bytes:
    """JSON payload of the queue message for a sample."""
    return TelemetryMessage.from_sample(sample).to_json().encode("utf-8")


def publish_sample(client: QueueClient, sample: Sample) -> Dict[str, Any]:
    """Pushes a sample onto the queue and returns the message metadata."""
    meta = client.send(encode_sample(sample))
    logger.bind(queue=client.name, date=sample.timestamp.isoformat(), meta=meta).debug("Published sample")
    return meta
