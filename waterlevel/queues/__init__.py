from waterlevel.config.models import QueueConfig
from waterlevel.exceptions.custom import ConfigurationException
from waterlevel.queues.base import QueueClient
from waterlevel.queues.kafka import KafkaQueueClient
from waterlevel.queues.memory import MemoryQueueClient


def client_factory(cfg: QueueConfig, name: str) -> QueueClient:
    if cfg.kind == "kafka" and cfg.kafka:
        return KafkaQueueClient(cfg.kafka, name)
    if cfg.kind == "memory":
        return MemoryQueueClient(name)
    raise ConfigurationException(f"Unsupported queue kind '{cfg.kind}'")
