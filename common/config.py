import os


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y")


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Broker
RABBITMQ_HOST = os.getenv("RABBITMQ_HOST", "localhost")
RABBITMQ_PORT = int(os.getenv("RABBITMQ_PORT", 5672))
RABBITMQ_USER = os.getenv("RABBITMQ_USER", "guest")
RABBITMQ_PASSWORD = os.getenv("RABBITMQ_PASSWORD", "guest")
RABBITMQ_VHOST = os.getenv("RABBITMQ_VHOST", "/")

# Queues
ORDER_QUEUE = os.getenv("ORDER_QUEUE", "OrderQueue")
DELIVERY_QUEUE = os.getenv("DELIVERY_QUEUE", "DeliveryQueue")
# Empty string disables dead-lettering of undecodable messages.
DEAD_LETTER_QUEUE = os.getenv("DEAD_LETTER_QUEUE", "DeadLetterQueue")

CONSUMER_RECONNECT_DELAY_S = float(os.getenv("CONSUMER_RECONNECT_DELAY_S", 5))

# Forwarding (store -> delivery)
DELIVERY_SERVICE_URL = os.getenv("DELIVERY_SERVICE_URL", "http://localhost:9091/deliveryDetails")
DELIVERY_SEND_PATH = os.getenv("DELIVERY_SEND_PATH", "/sendDelivery")
FORWARD_TIMEOUT_MS = int(os.getenv("FORWARD_TIMEOUT_MS", 5000))
FORWARD_RETRIES = int(os.getenv("FORWARD_RETRIES", 0))
FORWARD_BACKOFF_MS = int(os.getenv("FORWARD_BACKOFF_MS", 500))
# When set, an order whose forward call fails is requeued instead of acked.
ACK_ON_FORWARD_SUCCESS = _flag("ACK_ON_FORWARD_SUCCESS")

# Catalog, "Name:Price" entries separated by commas
PHONE_INVENTORY = os.getenv(
    "PHONE_INVENTORY",
    "Apple:190000,Samsung:150000,Nokia:80000,HTC:40000,Huawei:100000",
)

# HTTP listeners
STORE_HOST = os.getenv("STORE_HOST", "0.0.0.0")
STORE_PORT = int(os.getenv("STORE_PORT", 9090))
DELIVERY_HOST = os.getenv("DELIVERY_HOST", "0.0.0.0")
DELIVERY_PORT = int(os.getenv("DELIVERY_PORT", 9091))
