from types import SimpleNamespace

import pytest

from common.broker import PublishError
from common.models import InventoryEntry
from delivery_service.app import create_app as create_delivery_app
from store_service.app import create_app as create_store_app
from store_service.catalog import InventoryCatalog


class RecordingPublisher:
    """Stands in for QueuePublisher; keeps what would have been enqueued."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.published = []

    def publish(self, queue, message):
        if self.fail:
            raise PublishError(f"could not publish to {queue}")
        self.published.append((queue, message))


class FakeChannel:
    def __init__(self):
        self.declared = []
        self.acked = []
        self.nacked = []
        self.published = []
        self.prefetch = None
        self.callback = None
        self.on_start = None

    def queue_declare(self, queue, durable=False):
        self.declared.append(queue)

    def basic_qos(self, prefetch_count):
        self.prefetch = prefetch_count

    def basic_consume(self, queue, on_message_callback, auto_ack=False):
        self.callback = on_message_callback

    def start_consuming(self):
        if self.on_start:
            self.on_start()

    def stop_consuming(self):
        pass

    def basic_ack(self, delivery_tag):
        self.acked.append(delivery_tag)

    def basic_nack(self, delivery_tag, requeue=True):
        self.nacked.append((delivery_tag, requeue))

    def basic_publish(self, exchange, routing_key, body, properties=None):
        self.published.append(
            SimpleNamespace(exchange=exchange, routing_key=routing_key, body=body, properties=properties)
        )


class FakeConnection:
    def __init__(self, channel):
        self._channel = channel
        self.is_open = True

    def channel(self):
        return self._channel

    def close(self):
        self.is_open = False

    def add_callback_threadsafe(self, callback):
        callback()


def delivery(tag):
    return SimpleNamespace(delivery_tag=tag)


@pytest.fixture
def catalog():
    return InventoryCatalog([
        InventoryEntry(name="Apple", price=190000),
        InventoryEntry(name="Samsung", price=150000),
        InventoryEntry(name="Nokia", price=80000),
    ])


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def store_client(publisher, catalog):
    app = create_store_app(publisher=publisher, catalog=catalog)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def delivery_client(publisher):
    app = create_delivery_app(publisher=publisher)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def channel():
    return FakeChannel()
