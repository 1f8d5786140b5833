import pytest
from confluent_kafka import OFFSET_INVALID, KafkaError, KafkaException

from waterlevel.config.models import KafkaConfig, QueueConfig
from waterlevel.exceptions.custom import ConfigurationException, QueueException
from waterlevel.queues import client_factory
from waterlevel.queues.kafka import KafkaQueueClient
from waterlevel.queues.memory import MemoryQueueClient


def test_memory_queue_is_fifo():
    client = MemoryQueueClient("q")
    client.create()
    client.send(b"a")
    client.send(b"b")

    first = client.poll(0)
    second = client.poll(0)

    assert first[0] == b"a" and second[0] == b"b"
    assert second[1]["offset"] == first[1]["offset"] + 1
    assert client.poll(0) is None


def test_memory_queue_requires_create():
    with pytest.raises(QueueException):
        MemoryQueueClient("missing").send(b"x")


def test_memory_queue_clear():
    client = MemoryQueueClient("q")
    client.create()
    for i in range(5):
        client.send(str(i).encode())

    client.clear()

    assert client.poll(0) is None


def test_memory_queues_with_same_name_are_shared():
    producer = MemoryQueueClient("shared")
    consumer = MemoryQueueClient("shared")
    other = MemoryQueueClient("other")
    for c in (producer, consumer, other):
        c.create()

    producer.send(b"hello")

    assert other.poll(0) is None
    assert consumer.poll(0)[0] == b"hello"


def test_memory_queue_create_is_idempotent():
    client = MemoryQueueClient("q")
    client.create()
    client.send(b"kept")
    client.create()

    assert client.poll(0)[0] == b"kept"


def test_receive_respects_max_messages():
    client = MemoryQueueClient("q")
    client.create()
    for i in range(5):
        client.send(str(i).encode())

    batch = client.receive(max_messages=3)

    assert [payload for payload, _ in batch] == [b"0", b"1", b"2"]
    assert len(client.receive(max_messages=10)) == 2
    assert client.receive() == []


def test_context_manager_closes():
    with MemoryQueueClient("q") as client:
        client.create()
        client.send(b"x")
    assert client._queue is None


def test_client_factory():
    assert isinstance(client_factory(QueueConfig(kind="memory"), "q"), MemoryQueueClient)

    kafka = client_factory(QueueConfig(kind="kafka", kafka=KafkaConfig(bootstrap_servers="b:9092")), "q")
    assert isinstance(kafka, KafkaQueueClient)
    assert kafka.name == "q"

    with pytest.raises(ConfigurationException):
        client_factory(QueueConfig(kind="sqs"), "q")


def test_kafka_topic_overrides_queue_name():
    client = KafkaQueueClient(KafkaConfig(bootstrap_servers="b:9092", topic="levels"), "q")
    assert client.name == "levels"


class _FakeKafkaMessage:
    def __init__(self, value=b"", error=None, headers=None, offset=0):
        self._value = value
        self._error = error
        self._headers = headers
        self._offset = offset

    def value(self):
        return self._value

    def error(self):
        return self._error

    def headers(self):
        return self._headers

    def topic(self):
        return "levels"

    def partition(self):
        return 0

    def offset(self):
        return self._offset


class _FakeProducer:
    def __init__(self, error=None):
        self.error = error
        self.produced = []
        self._pending = []

    def produce(self, topic, value, callback):
        self.produced.append((topic, value))
        self._pending.append((callback, _FakeKafkaMessage(value, offset=len(self.produced) - 1)))

    def flush(self, timeout=None):
        for callback, msg in self._pending:
            callback(self.error, msg)
        self._pending = []
        return 0


class _FakeTopicMetadata:
    def __init__(self, partitions=(0,), error=None):
        self.partitions = {p: None for p in partitions}
        self.error = error


class _FakeClusterMetadata:
    def __init__(self, topics):
        self.topics = topics


class _FakeConsumer:
    def __init__(self, messages=(), topics=None, watermarks=None):
        self.messages = list(messages)
        self.topics = topics if topics is not None else {"levels": _FakeTopicMetadata()}
        self.watermarks = watermarks or {}
        self.assignments = []

    def poll(self, timeout):
        return self.messages.pop(0) if self.messages else None

    def list_topics(self, topic=None, timeout=None):
        return _FakeClusterMetadata(self.topics)

    def assign(self, partitions):
        self.assignments.append([(tp.topic, tp.partition, tp.offset) for tp in partitions])

    def get_watermark_offsets(self, partition, timeout=None):
        return self.watermarks[partition.partition]


class _FakeFuture:
    def __init__(self, error=None):
        self.error = error

    def result(self):
        if self.error is not None:
            raise self.error


class _FakeAdmin:
    def __init__(self, topics=(), error=None):
        self.topics = list(topics)
        self.error = error
        self.created = []

    def list_topics(self, timeout=None):
        return _FakeClusterMetadata({name: _FakeTopicMetadata() for name in self.topics})

    def create_topics(self, new_topics):
        self.created.extend((t.topic, t.num_partitions) for t in new_topics)
        return {t.topic: _FakeFuture(self.error) for t in new_topics}


def _kafka_client(producer=None, consumer=None, admin=None) -> KafkaQueueClient:
    client = KafkaQueueClient(KafkaConfig(bootstrap_servers="b:9092", topic="levels"), "q")
    client._producer = producer
    client._consumer = consumer
    client._admin = admin
    return client


def test_kafka_send_returns_delivery_metadata():
    producer = _FakeProducer()
    client = _kafka_client(producer=producer)

    meta = client.send(b"payload")

    assert producer.produced == [("levels", b"payload")]
    assert meta == {"topic": "levels", "partition": 0, "offset": 0}


def test_kafka_send_raises_on_delivery_error():
    client = _kafka_client(producer=_FakeProducer(error="broker down"))

    with pytest.raises(QueueException):
        client.send(b"payload")


def test_kafka_poll_decodes_headers_and_skips_errors():
    consumer = _FakeConsumer(
        [
            _FakeKafkaMessage(error="partition EOF"),
            _FakeKafkaMessage(b"value", headers=[("source", b"harness")], offset=4),
        ]
    )
    client = _kafka_client(consumer=consumer)

    assert client.poll(0.1) is None
    payload, meta = client.poll(0.1)

    assert payload == b"value"
    assert meta["offset"] == 4
    assert meta["headers"] == {"source": "harness"}
    assert client.poll(0.1) is None


def test_kafka_create_makes_missing_topic_and_assigns_its_partitions():
    admin = _FakeAdmin()
    consumer = _FakeConsumer(topics={"levels": _FakeTopicMetadata(partitions=(1, 0))})
    client = _kafka_client(consumer=consumer, admin=admin)

    client.create()

    assert admin.created == [("levels", 1)]
    assert consumer.assignments == [[("levels", 0, OFFSET_INVALID), ("levels", 1, OFFSET_INVALID)]]


def test_kafka_create_keeps_existing_topic():
    admin = _FakeAdmin(topics=["levels"])
    consumer = _FakeConsumer()
    client = _kafka_client(consumer=consumer, admin=admin)

    client.create()

    assert admin.created == []
    assert consumer.assignments == [[("levels", 0, OFFSET_INVALID)]]


def test_kafka_create_raises_when_topic_creation_fails():
    client = _kafka_client(consumer=_FakeConsumer(), admin=_FakeAdmin(error=RuntimeError("not authorized")))

    with pytest.raises(QueueException, match="Could not create topic 'levels'"):
        client.create()


def test_kafka_create_tolerates_topic_created_concurrently():
    error = KafkaException(KafkaError(KafkaError.TOPIC_ALREADY_EXISTS))
    consumer = _FakeConsumer()
    client = _kafka_client(consumer=consumer, admin=_FakeAdmin(error=error))

    client.create()

    assert consumer.assignments == [[("levels", 0, OFFSET_INVALID)]]


@pytest.mark.parametrize(
    "topics",
    [{}, {"levels": _FakeTopicMetadata(error="UNKNOWN_TOPIC_OR_PART")}],
    ids=["missing", "errored"],
)
def test_kafka_unavailable_topic_raises(topics):
    client = _kafka_client(consumer=_FakeConsumer(topics=topics), admin=_FakeAdmin(topics=["levels"]))

    with pytest.raises(QueueException, match="not available"):
        client.create()
    with pytest.raises(QueueException, match="not available"):
        client.clear()


def test_kafka_clear_assigns_every_partition_at_its_high_watermark():
    consumer = _FakeConsumer(
        topics={"levels": _FakeTopicMetadata(partitions=(0, 1, 2))},
        watermarks={0: (0, 5), 1: (3, 3), 2: (10, 42)},
    )
    client = _kafka_client(consumer=consumer)

    client.clear()

    assert consumer.assignments == [[("levels", 0, 5), ("levels", 1, 3), ("levels", 2, 42)]]
