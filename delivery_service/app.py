"""
DeliveryService — receives forwarded orders over HTTP, records them on
DeliveryQueue, and consumes DeliveryQueue in a background thread to log
each confirmed delivery.
"""

import logging
import signal
import sys

from flask import Blueprint, Flask, current_app, g, jsonify, request

from common import config
from common.broker import PublishError, QueueConsumer, QueuePublisher
from common.models import DeliveryRecord
from common.validation import validate
from common.web import install_correlation_id, message_response

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("DeliveryService")

DELIVERY_ACCEPTED = "Delivery details received. Ordered phone will be delivered soon"
INVALID_PAYLOAD = "Bad Request - Invalid payload"
BROKER_UNAVAILABLE = "Message broker unavailable - please retry later"

# ---------------------------------------------------------------------------
# HTTP endpoints
# ---------------------------------------------------------------------------
delivery = Blueprint("delivery", __name__, url_prefix="/deliveryDetails")


@delivery.route("/sendDelivery", methods=["POST"])
def send_delivery():
    result = validate(request.get_data(), correlation_id=g.correlation_id)
    if not result.ok:
        logger.warning("Rejected delivery request (%s): %s", result.rejection.value, result.detail)
        return message_response(INVALID_PAYLOAD, 400)

    record = DeliveryRecord.from_order(result.order)
    try:
        current_app.config["PUBLISHER"].publish(config.DELIVERY_QUEUE, record)
    except PublishError as e:
        logger.error("Delivery for %s not recorded: %s", record.customer_name, e)
        return message_response(BROKER_UNAVAILABLE, 503)

    return message_response(DELIVERY_ACCEPTED)


def create_app(publisher=None) -> Flask:
    app = Flask(__name__)
    app.config["PUBLISHER"] = publisher or QueuePublisher()
    install_correlation_id(app)
    app.register_blueprint(delivery)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "service": "delivery"}), 200

    return app


# ---------------------------------------------------------------------------
# Background consumer — terminal handling of DeliveryQueue
# ---------------------------------------------------------------------------

def on_delivery(record: DeliveryRecord) -> None:
    logger.info(
        "[DELIVERY] %s will be delivered to %s at %s (contact %s, correlation_id=%s)",
        record.item_name, record.customer_name, record.address,
        record.contact_number, record.correlation_id,
    )


def make_delivery_consumer(**kwargs) -> QueueConsumer:
    return QueueConsumer(config.DELIVERY_QUEUE, DeliveryRecord.from_message, on_delivery, **kwargs)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    app = create_app()
    consumer = make_delivery_consumer()

    def graceful_shutdown(signum, frame):
        logger.info("Shutting down DeliveryService...")
        consumer.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, graceful_shutdown)
    signal.signal(signal.SIGTERM, graceful_shutdown)

    consumer.start()

    logger.info("DeliveryService starting on port %d...", config.DELIVERY_PORT)
    app.run(host=config.DELIVERY_HOST, port=config.DELIVERY_PORT, debug=False, threaded=True)


if __name__ == "__main__":
    main()
