from pathlib import Path

import pytest

from waterlevel.config.loader import load_app_config, parse_connection_string
from waterlevel.config.models import RestTableConfig, TableConfig
from waterlevel.exceptions.custom import ConfigurationException
from waterlevel.tables import table_service_factory
from waterlevel.tables.memory import MemoryTableService
from waterlevel.tables.rest import RestTableService


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_empty_config_defaults_to_memory_backends(tmp_path):
    cfg = load_app_config(_write(tmp_path, ""))

    assert cfg.queue.kind == "memory"
    assert cfg.table.kind == "memory"


def test_bundled_config_loads():
    path = Path(__file__).resolve().parents[1] / "waterlevel" / "config" / "config.yaml"
    cfg = load_app_config(path)
    assert cfg.queue.kind == "memory"


def test_kafka_queue(tmp_path):
    cfg = load_app_config(
        _write(
            tmp_path,
            """
queue:
  kind: Kafka
  kafka:
    bootstrap_servers: "kafka-1:9092"
    sasl_mechanism: PLAIN
    num_partitions: 3
""",
        )
    )

    assert cfg.queue.kind == "kafka"
    assert cfg.queue.kafka.bootstrap_servers == "kafka-1:9092"
    assert cfg.queue.kafka.topic is None
    assert cfg.queue.kafka.group_id == "waterlevel-harness"
    assert cfg.queue.kafka.sasl_mechanism == "PLAIN"
    assert cfg.queue.kafka.num_partitions == 3


def test_kafka_requires_bootstrap_servers(tmp_path):
    with pytest.raises(ConfigurationException):
        load_app_config(_write(tmp_path, "queue:\n  kind: kafka\n"))


def test_rest_table_with_endpoint(tmp_path):
    cfg = load_app_config(
        _write(
            tmp_path,
            """
table:
  kind: rest
  rest:
    endpoint: "http://127.0.0.1:10002/devstoreaccount1"
    sas_token: "sv=1&sig=x"
    timeout_s: 3
""",
        ),
        connection_string="TableEndpoint=https://ignored",
    )

    assert cfg.table.rest == RestTableConfig(
        endpoint="http://127.0.0.1:10002/devstoreaccount1", sas_token="sv=1&sig=x", timeout_s=3.0
    )


def test_rest_table_from_connection_string(tmp_path):
    cfg = load_app_config(
        _write(tmp_path, "table:\n  kind: rest\n"),
        connection_string="DefaultEndpointsProtocol=https;AccountName=acc;SharedAccessSignature=sv=1&sig=a==;",
    )

    assert cfg.table.rest.endpoint == "https://acc.table.core.windows.net"
    assert cfg.table.rest.sas_token == "sv=1&sig=a=="


def test_rest_table_without_connection_string(tmp_path):
    with pytest.raises(ConfigurationException, match="No connection string found"):
        load_app_config(_write(tmp_path, "table:\n  kind: rest\n"))


@pytest.mark.parametrize("text", ["queue:\n  kind: sqs\n", "table:\n  kind: cosmos\n"])
def test_unknown_kinds(tmp_path, text):
    with pytest.raises(ConfigurationException):
        load_app_config(_write(tmp_path, text))


def test_non_mapping_yaml(tmp_path):
    with pytest.raises(ValueError):
        load_app_config(_write(tmp_path, "- a\n- b\n"))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_app_config(tmp_path / "nope.yaml")


def test_parse_connection_string():
    parts = parse_connection_string("TableEndpoint=http://host:10002/acc; SharedAccessSignature=a=b&c=d")
    assert parts == {"TableEndpoint": "http://host:10002/acc", "SharedAccessSignature": "a=b&c=d"}

    with pytest.raises(ConfigurationException):
        parse_connection_string("garbage")


def test_table_service_factory():
    assert isinstance(table_service_factory(TableConfig(kind="memory")), MemoryTableService)
    rest = table_service_factory(TableConfig(kind="rest", rest=RestTableConfig(endpoint="http://host")))
    assert isinstance(rest, RestTableService)
    with pytest.raises(ConfigurationException):
        table_service_factory(TableConfig(kind="cosmos"))
