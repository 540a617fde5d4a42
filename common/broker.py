"""
RabbitMQ plumbing shared by both services.

Queues are durable and addressed through the default exchange, so a queue
name doubles as the routing key. Publishing happens inline on the HTTP
request path with a short-lived connection per call; consuming happens on
a background thread that owns its own connection.
"""

import logging
import threading
import time
from typing import Any, Callable, Optional

import pika

from common import config
from common.models import MessageDecodeError

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """The broker could not accept a message."""


# ---------------------------------------------------------------------------
# Connection helpers
# ---------------------------------------------------------------------------

def connection_parameters() -> pika.ConnectionParameters:
    credentials = pika.PlainCredentials(config.RABBITMQ_USER, config.RABBITMQ_PASSWORD)
    return pika.ConnectionParameters(
        host=config.RABBITMQ_HOST,
        port=config.RABBITMQ_PORT,
        virtual_host=config.RABBITMQ_VHOST,
        credentials=credentials,
        heartbeat=600,
        blocked_connection_timeout=300,
    )


def get_connection(retries: int = 15, delay: float = 5) -> pika.BlockingConnection:
    """Create a blocking connection to RabbitMQ with retry logic."""
    retries = max(retries, 1)
    last_error = None
    for attempt in range(1, retries + 1):
        try:
            conn = pika.BlockingConnection(connection_parameters())
            logger.debug("Connected to RabbitMQ (attempt %d)", attempt)
            return conn
        except pika.exceptions.AMQPConnectionError as e:
            last_error = e
            if attempt < retries:
                logger.warning("RabbitMQ not ready, retrying in %ss (%d/%d)", delay, attempt, retries)
                time.sleep(delay)
    logger.error("Could not connect to RabbitMQ after %d attempts", retries)
    raise last_error


def setup_channel(channel, *queues: str) -> None:
    """Declare the durable queues a service touches (idempotent)."""
    for queue in queues:
        if queue:
            channel.queue_declare(queue=queue, durable=True)


# ---------------------------------------------------------------------------
# Publisher
# ---------------------------------------------------------------------------

class QueuePublisher:
    """Serializes a message and enqueues it on a named queue."""

    def __init__(self, connect: Optional[Callable[[], Any]] = None):
        # One connection attempt per publish; a down broker fails the request at once.
        self._connect = connect or (lambda: get_connection(retries=1))

    def publish(self, queue: str, message) -> None:
        """
        Publish ``message`` (anything with ``to_message()``) to ``queue``.

        Raises PublishError if the broker is unreachable or refuses the
        message. Nothing is retried.
        """
        body = message.to_message()
        correlation_id = getattr(message, "correlation_id", None)
        try:
            conn = self._connect()
            try:
                ch = conn.channel()
                setup_channel(ch, queue)
                ch.basic_publish(
                    exchange="",
                    routing_key=queue,
                    body=body.encode("utf-8"),
                    properties=pika.BasicProperties(
                        delivery_mode=2,  # persistent
                        content_type="application/json",
                        correlation_id=correlation_id,
                    ),
                )
            finally:
                if conn.is_open:
                    conn.close()
        except pika.exceptions.AMQPError as e:
            logger.error("Failed to publish to %s: %r", queue, e)
            raise PublishError(f"could not publish to {queue}") from e
        logger.info("Published message to %s (correlation_id=%s)", queue, correlation_id)


# ---------------------------------------------------------------------------
# Consumer / dispatcher
# ---------------------------------------------------------------------------

class QueueConsumer:
    """
    Consumes one queue and hands every decoded message to ``handler``.

    Each delivery goes Delivered -> Deserializing -> HandlerInvoked and ends
    Acknowledged or Failed:

    * a body that ``decode`` rejects never reaches the handler; it is copied
      to the dead-letter queue (if one is configured) and acked;
    * a handler exception is logged and the message is acked anyway, unless
      ``requeue_on_failure`` is set, in which case it is nacked and requeued.
    """

    def __init__(
        self,
        queue: str,
        decode: Callable[[bytes], Any],
        handler: Callable[[Any], None],
        dead_letter_queue: str = config.DEAD_LETTER_QUEUE,
        requeue_on_failure: bool = False,
        connect: Optional[Callable[[], Any]] = None,
        reconnect_delay: float = config.CONSUMER_RECONNECT_DELAY_S,
    ):
        self.queue = queue
        self.decode = decode
        self.handler = handler
        self.dead_letter_queue = dead_letter_queue
        self.requeue_on_failure = requeue_on_failure
        self.reconnect_delay = reconnect_delay
        self._connect = connect or get_connection
        self._stopped = threading.Event()
        self._connection = None
        self._channel = None
        self._thread: Optional[threading.Thread] = None

    def on_message(self, ch, method, properties, body) -> None:
        tag = method.delivery_tag
        try:
            message = self.decode(body)
        except MessageDecodeError as e:
            logger.error("Could not decode message %s from %s: %s", tag, self.queue, e)
            self._dead_letter(ch, body, properties, str(e))
            ch.basic_ack(delivery_tag=tag)
            return

        try:
            self.handler(message)
        except Exception as e:
            logger.error(
                "Handler failed for message %s from %s (correlation_id=%s): %s",
                tag, self.queue, getattr(message, "correlation_id", None), e,
            )
            if self.requeue_on_failure:
                ch.basic_nack(delivery_tag=tag, requeue=True)
            else:
                ch.basic_ack(delivery_tag=tag)
            return

        ch.basic_ack(delivery_tag=tag)
        logger.debug("Message %s from %s acknowledged", tag, self.queue)

    def _dead_letter(self, ch, body, properties, reason: str) -> None:
        if not self.dead_letter_queue:
            return
        headers = dict(getattr(properties, "headers", None) or {})
        headers["x-dlq-reason"] = reason[:200]
        headers["x-original-queue"] = self.queue
        ch.basic_publish(
            exchange="",
            routing_key=self.dead_letter_queue,
            body=body,
            properties=pika.BasicProperties(delivery_mode=2, headers=headers),
        )
        logger.warning("Routed undecodable message from %s to %s", self.queue, self.dead_letter_queue)

    def run(self) -> None:
        """Consume until ``stop()`` is called, reconnecting on failure."""
        while not self._stopped.is_set():
            conn = None
            failed = False
            try:
                conn = self._connect()
                ch = conn.channel()
                setup_channel(ch, self.queue, self.dead_letter_queue)
                ch.basic_qos(prefetch_count=1)
                ch.basic_consume(queue=self.queue, on_message_callback=self.on_message, auto_ack=False)
                self._connection, self._channel = conn, ch
                logger.info("Consumer ready, waiting for messages on %s...", self.queue)
                ch.start_consuming()
            except pika.exceptions.AMQPConnectionError:
                failed = True
                logger.warning(
                    "Consumer on %s lost connection, reconnecting in %ss...", self.queue, self.reconnect_delay
                )
            except Exception as e:
                failed = True
                logger.error("Consumer on %s error: %s, restarting in %ss...", self.queue, e, self.reconnect_delay)
            finally:
                # Every pass owns exactly one connection; never carry it into the next.
                if conn is not None and conn.is_open:
                    conn.close()

            if failed:
                self._stopped.wait(self.reconnect_delay)

        logger.info("Consumer on %s stopped", self.queue)

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name=f"consumer-{self.queue}", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        self._stopped.set()
        conn, ch = self._connection, self._channel
        if conn is not None and conn.is_open and ch is not None:
            # pika connections are not thread-safe; stop from the consumer's own thread.
            conn.add_callback_threadsafe(ch.stop_consuming)
