"""
PhoneStore — accepts phone orders over HTTP and publishes them to OrderQueue,
then forwards queued orders to the delivery service from a background thread.

The HTTP caller gets its answer as soon as the order is on the queue; it
never waits for the forward call.
"""

import logging
import signal
import sys
from typing import Optional

from flask import Blueprint, Flask, current_app, g, jsonify, request

from common import config
from common.broker import PublishError, QueueConsumer, QueuePublisher
from common.forwarding import ForwardingClient
from common.models import Order
from common.validation import validate
from common.web import install_correlation_id, message_response
from store_service.catalog import load_catalog

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("PhoneStore")

ORDER_PLACED = "Your order is successfully placed. Ordered phone will be delivered soon"
NOT_AVAILABLE = "Requested phone not available"
INVALID_PAYLOAD = "Bad Request - Invalid payload"
BROKER_UNAVAILABLE = "Message broker unavailable - please retry later"

# ---------------------------------------------------------------------------
# HTTP endpoints
# ---------------------------------------------------------------------------
store = Blueprint("phonestore", __name__, url_prefix="/phonestore")


@store.route("/placeOrder", methods=["POST"])
def place_order():
    """Validate an order, check the catalog and publish it to OrderQueue."""
    result = validate(request.get_data(), correlation_id=g.correlation_id)
    if not result.ok:
        logger.warning("Rejected order (%s): %s", result.rejection.value, result.detail)
        return message_response(INVALID_PAYLOAD, 400)

    order = result.order
    if not current_app.config["CATALOG"].is_available(order):
        logger.info("Phone %r not in catalog, order from %s not placed", order.item_name, order.customer_name)
        return message_response(NOT_AVAILABLE)

    try:
        current_app.config["PUBLISHER"].publish(config.ORDER_QUEUE, order)
    except PublishError as e:
        logger.error("Order from %s not placed: %s", order.customer_name, e)
        return message_response(BROKER_UNAVAILABLE, 503)

    logger.info("Order placed for %s (%s)", order.customer_name, order.item_name)
    return message_response(ORDER_PLACED)


@store.route("/getPhoneList", methods=["GET"])
def get_phone_list():
    return jsonify(current_app.config["CATALOG"].labels()), 200


def create_app(publisher=None, catalog=None) -> Flask:
    app = Flask(__name__)
    app.config["PUBLISHER"] = publisher or QueuePublisher()
    app.config["CATALOG"] = catalog or load_catalog()
    install_correlation_id(app)
    app.register_blueprint(store)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "service": "phonestore"}), 200

    return app


# ---------------------------------------------------------------------------
# Background consumer — forwards queued orders to the delivery service
# ---------------------------------------------------------------------------

def make_order_consumer(client: Optional[ForwardingClient] = None, **kwargs) -> QueueConsumer:
    """
    Build the OrderQueue consumer. A failed forward raises out of the
    handler; whether the order is then acked or requeued depends on
    ACK_ON_FORWARD_SUCCESS.
    """
    client = client or ForwardingClient()

    def forward_order(order: Order) -> None:
        logger.info(
            "New order from OrderQueue: %s, %s (correlation_id=%s)",
            order.customer_name, order.item_name, order.correlation_id,
        )
        client.forward(order)

    kwargs.setdefault("requeue_on_failure", config.ACK_ON_FORWARD_SUCCESS)
    return QueueConsumer(config.ORDER_QUEUE, Order.from_message, forward_order, **kwargs)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    app = create_app()
    client = ForwardingClient()
    consumer = make_order_consumer(client=client)

    def graceful_shutdown(signum, frame):
        logger.info("Shutting down PhoneStore...")
        consumer.stop()
        client.close()
        sys.exit(0)

    signal.signal(signal.SIGINT, graceful_shutdown)
    signal.signal(signal.SIGTERM, graceful_shutdown)

    consumer.start()

    logger.info("PhoneStore starting on port %d...", config.STORE_PORT)
    app.run(host=config.STORE_HOST, port=config.STORE_PORT, debug=False, threaded=True)


if __name__ == "__main__":
    main()
