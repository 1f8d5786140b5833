from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from waterlevel.config.models import AppConfig, KafkaConfig, QueueConfig, RestTableConfig, TableConfig
from waterlevel.exceptions.custom import ConfigurationException
from waterlevel.logger import logger


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found at {path}. Set APP_CONFIG_PATH or pass --config."
        )
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a YAML mapping at top level.")
    return data


def parse_connection_string(connection_string: str) -> Dict[str, str]:
    """
    Splits a storage connection string ("Key1=value1;Key2=value2") into a dict.
    Values may contain '=' (SAS tokens), only the first one separates key and value.
    """
    parts: Dict[str, str] = {}
    for item in connection_string.split(";"):
        item = item.strip()
        if not item:
            continue
        key, sep, value = item.partition("=")
        if not sep:
            raise ConfigurationException(f"Malformed connection string segment: '{key}'")
        parts[key.strip()] = value.strip()
    return parts


def _table_config_from_connection_string(connection_string: str, timeout_s: float) -> RestTableConfig:
    parts = parse_connection_string(connection_string)
    endpoint = parts.get("TableEndpoint")
    if not endpoint and parts.get("AccountName"):
        protocol = parts.get("DefaultEndpointsProtocol", "https")
        suffix = parts.get("EndpointSuffix", "core.windows.net")
        endpoint = f"{protocol}://{parts['AccountName']}.table.{suffix}"
    if not endpoint:
        raise ConfigurationException("Connection string has no TableEndpoint nor AccountName")
    return RestTableConfig(
        endpoint=endpoint,
        sas_token=parts.get("SharedAccessSignature"),
        timeout_s=timeout_s,
    )


def load_queue_config(data: Dict[str, Any]) -> QueueConfig:
    """
    Builds a QueueConfig from the 'queue' section.
    Expected structure:

    queue:
      kind: memory | kafka
      kafka:
        bootstrap_servers: "localhost:9092"
        topic: "water-level-queue"    # optional, defaults to HARNESS_QUEUE_NAME
        group_id: "waterlevel-harness"
        security_protocol: "PLAINTEXT"  # or "SASL_SSL"
        sasl_mechanism: "PLAIN"
        sasl_username: "user"
        sasl_password: "pass"
        ssl_ca_location: "/path/ca.crt"
    """
    section = data.get("queue", {}) or {}
    kind = str(section.get("kind", "memory")).lower()

    if kind == "kafka":
        k = section.get("kafka", {}) or {}
        if "bootstrap_servers" not in k:
            raise ConfigurationException("queue.kafka.bootstrap_servers is required when kind is 'kafka'")
        cfg = KafkaConfig(
            bootstrap_servers=str(k["bootstrap_servers"]),
            topic=k.get("topic"),
            group_id=str(k.get("group_id", "waterlevel-harness")),
            security_protocol=str(k.get("security_protocol", "PLAINTEXT")),
            sasl_mechanism=k.get("sasl_mechanism"),
            sasl_username=k.get("sasl_username"),
            sasl_password=k.get("sasl_password"),
            ssl_ca_location=k.get("ssl_ca_location"),
            num_partitions=int(k.get("num_partitions", 1)),
            replication_factor=int(k.get("replication_factor", 1)),
        )
        return QueueConfig(kind="kafka", kafka=cfg)

    if kind != "memory":
        raise ConfigurationException(f"Unknown queue kind '{kind}'")
    return QueueConfig(kind="memory")


def load_table_config(data: Dict[str, Any], connection_string: Optional[str] = None) -> TableConfig:
    """
    Builds a TableConfig from the 'table' section.
    Expected structure:

    table:
      kind: memory | rest
      rest:
        endpoint: "https://account.table.core.windows.net"   # or use AZURE_STORAGE_CONNECTION_STRING
        sas_token: "sv=...&sig=..."
        timeout_s: 10

    An explicit endpoint wins over the connection string.
    """
    section = data.get("table", {}) or {}
    kind = str(section.get("kind", "memory")).lower()

    if kind == "rest":
        r = section.get("rest", {}) or {}
        timeout_s = float(r.get("timeout_s", 10.0))
        if r.get("endpoint"):
            rest = RestTableConfig(
                endpoint=str(r["endpoint"]),
                sas_token=r.get("sas_token"),
                timeout_s=timeout_s,
            )
        elif connection_string:
            rest = _table_config_from_connection_string(connection_string, timeout_s)
        else:
            raise ConfigurationException("No connection string found")
        return TableConfig(kind="rest", rest=rest)

    if kind != "memory":
        raise ConfigurationException(f"Unknown table kind '{kind}'")
    return TableConfig(kind="memory")


def load_app_config(path: Path, connection_string: Optional[str] = None) -> AppConfig:
    """
    Loads the queue and the table configuration from the same YAML.
    """
    logger.bind(path=str(path)).info("Loading app config")
    data = _load_yaml(path)

    return AppConfig(
        queue=load_queue_config(data),
        table=load_table_config(data, connection_string=connection_string),
    )
