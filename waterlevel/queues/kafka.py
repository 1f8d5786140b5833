from __future__ import annotations

from typing import Any, Dict, List, Optional

from waterlevel.config.models import KafkaConfig
from waterlevel.exceptions.custom import QueueException
from waterlevel.logger import logger
from waterlevel.queues.base import Message, QueueClient


class KafkaQueueClient(QueueClient):
    """Queue client backed by a confluent-kafka topic.

    The consumer is assigned every partition of the topic explicitly (no group
    rebalancing), so clear() can move it to the end of the log."""

    def __init__(self, cfg: KafkaConfig, name: str):
        super().__init__(cfg.topic or name)
        self.cfg = cfg
        self._producer = None
        self._consumer = None
        self._admin = None

    def _base_conf(self) -> Dict[str, Any]:
        conf: Dict[str, Any] = {"bootstrap.servers": self.cfg.bootstrap_servers}
        if self.cfg.security_protocol:
            conf["security.protocol"] = self.cfg.security_protocol
        if self.cfg.sasl_mechanism:
            conf["sasl.mechanisms"] = self.cfg.sasl_mechanism
        if self.cfg.sasl_username:
            conf["sasl.username"] = self.cfg.sasl_username
        if self.cfg.sasl_password:
            conf["sasl.password"] = self.cfg.sasl_password
        if self.cfg.ssl_ca_location:
            conf["ssl.ca.location"] = self.cfg.ssl_ca_location
        return conf

    def connect(self) -> None:
        try:
            from confluent_kafka import Consumer, Producer  # type: ignore[import]
            from confluent_kafka.admin import AdminClient  # type: ignore[import]
        except ImportError:
            logger.error(
                "confluent-kafka is not installed. Install it with "
                "`pip install confluent-kafka` or change queue.kind in config."
            )
            raise

        base = self._base_conf()
        self._admin = AdminClient(base)
        self._producer = Producer(base)
        self._consumer = Consumer(
            {
                **base,
                "group.id": self.cfg.group_id,
                "auto.offset.reset": "earliest",
                "enable.auto.commit": False,
            }
        )

        logger.bind(
            bootstrap_servers=self.cfg.bootstrap_servers,
            topic=self.name,
            group_id=self.cfg.group_id,
            security_protocol=self.cfg.security_protocol,
        ).info("KafkaQueueClient connected")

    def _partitions(self) -> List[int]:
        metadata = self._consumer.list_topics(self.name, timeout=10)
        topic = metadata.topics.get(self.name)
        if topic is None or topic.error is not None:
            raise QueueException(f"Topic '{self.name}' is not available")
        return sorted(topic.partitions.keys())

    def create(self) -> None:
        from confluent_kafka import KafkaError, TopicPartition  # type: ignore[import]
        from confluent_kafka.admin import NewTopic  # type: ignore[import]

        existing = self._admin.list_topics(timeout=10).topics
        if self.name not in existing:
            futures = self._admin.create_topics(
                [
                    NewTopic(
                        self.name,
                        num_partitions=self.cfg.num_partitions,
                        replication_factor=self.cfg.replication_factor,
                    )
                ]
            )
            for topic, future in futures.items():
                try:
                    future.result()
                    logger.info(f"Created topic '{topic}'")
                except Exception as e:
                    # Another client created the topic after list_topics
                    error = e.args[0] if e.args else None
                    if hasattr(error, "code") and error.code() == KafkaError.TOPIC_ALREADY_EXISTS:
                        logger.debug(f"Topic '{topic}' already exists")
                        continue
                    raise QueueException(f"Could not create topic '{topic}': {e}") from e

        self._consumer.assign([TopicPartition(self.name, p) for p in self._partitions()])

    def clear(self) -> None:
        from confluent_kafka import TopicPartition  # type: ignore[import]

        assignment = []
        for partition in self._partitions():
            _, high = self._consumer.get_watermark_offsets(TopicPartition(self.name, partition), timeout=10)
            assignment.append(TopicPartition(self.name, partition, high))
        self._consumer.assign(assignment)
        logger.debug(f"Moved consumer of '{self.name}' to the end of the topic")

    def send(self, payload: bytes) -> Dict[str, Any]:
        delivered: Dict[str, Any] = {}

        def delivery_report(err, msg):
            if err:
                delivered["error"] = err
            else:
                delivered["meta"] = {
                    "topic": msg.topic(),
                    "partition": msg.partition(),
                    "offset": msg.offset(),
                }

        self._producer.produce(self.name, value=payload, callback=delivery_report)
        remaining = self._producer.flush(10)
        if "error" in delivered:
            raise QueueException(f"Delivery failed: {delivered['error']}")
        if remaining or "meta" not in delivered:
            raise QueueException(f"Delivery to '{self.name}' not confirmed")
        return delivered["meta"]

    def poll(self, timeout_s: float) -> Optional[Message]:
        msg = self._consumer.poll(timeout_s)
        if msg is None:
            return None
        if msg.error():
            logger.warning(f"Kafka consumer error: {msg.error()}")
            return None

        headers: Dict[str, Any] = {}
        if msg.headers():
            headers = {
                k: v.decode("utf-8") if isinstance(v, (bytes, bytearray)) else v
                for k, v in msg.headers()
            }

        meta: Dict[str, Any] = {
            "topic": msg.topic(),
            "partition": msg.partition(),
            "offset": msg.offset(),
            "headers": headers,
        }
        return msg.value(), meta

    def close(self) -> None:
        try:
            if self._producer:
                self._producer.flush(10)
            if self._consumer:
                self._consumer.close()
        finally:
            logger.info("KafkaQueueClient closed")
