import sys

from confluent_kafka import Producer

from waterlevel.generator.signal import generate
from waterlevel.services.publisher import encode_sample

# Arguments:
#   1 -> days of hourly samples to send
#   2 -> topic (optional)
if len(sys.argv) < 2:
    print("Usage: python producer_samples_to_json.py <days> [topic]")
    sys.exit(1)

DAYS = float(sys.argv[1])
TOPIC = sys.argv[2] if len(sys.argv) > 2 else "water-level-queue"

BOOTSTRAP_SERVERS = "localhost:9092"


def main():
    producer = Producer({"bootstrap.servers": BOOTSTRAP_SERVERS})

    def delivery_report(err, msg):
        if err:
            print(f"Delivery failed: {err}")
        else:
            print(f"Sent to {msg.topic()} offset={msg.offset()}")

    count = 0
    for sample in generate(DAYS):
        producer.produce(TOPIC, value=encode_sample(sample), callback=delivery_report)
        producer.poll(0)
        count += 1

    producer.flush()
    print(f"Sent {count} samples to topic '{TOPIC}'")


if __name__ == "__main__":
    main()
