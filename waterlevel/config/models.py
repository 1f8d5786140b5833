from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from waterlevel.models.base import BaseModel


@dataclass(frozen=True)
class KafkaConfig:
    bootstrap_servers: str
    topic: Optional[str] = None  # defaults to the harness queue name
    group_id: str = "waterlevel-harness"
    security_protocol: str = "PLAINTEXT"  # or "SASL_SSL"
    sasl_mechanism: Optional[str] = None  # e.g. "PLAIN"
    sasl_username: Optional[str] = None
    sasl_password: Optional[str] = None
    ssl_ca_location: Optional[str] = None  # path to CA if TLS
    num_partitions: int = 1
    replication_factor: int = 1


@dataclass(frozen=True)
class QueueConfig:
    # kind: "memory" | "kafka"
    kind: str
    kafka: Optional[KafkaConfig] = None


@dataclass(frozen=True)
class RestTableConfig:
    endpoint: str  # e.g. "https://account.table.core.windows.net"
    sas_token: Optional[str] = None  # forwarded verbatim as query string
    timeout_s: float = 10.0


@dataclass(frozen=True)
class TableConfig:
    # kind: "memory" | "rest"
    kind: str
    rest: Optional[RestTableConfig] = None


class AppConfig(BaseModel):
    queue: QueueConfig
    table: TableConfig
