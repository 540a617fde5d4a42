
import logging
import time
from typing import Callable, Optional

import httpx

from common import config
from common.models import PhoneOrder

logger = logging.getLogger(__name__)


class ForwardError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ForwardingClient:
    """Blocking HTTP client that hands a consumed order to the delivery service."""

    def __init__(
        self,
        base_url: str = config.DELIVERY_SERVICE_URL,
        path: str = config.DELIVERY_SEND_PATH,
        timeout_ms: int = config.FORWARD_TIMEOUT_MS,
        retries: int = config.FORWARD_RETRIES,
        backoff_ms: int = config.FORWARD_BACKOFF_MS,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.path = path
        self.retries = retries
        self.backoff_ms = backoff_ms
        self._sleep = sleep
        # Convert ms to seconds
        self._client = httpx.Client(base_url=base_url, timeout=timeout_ms / 1000.0, transport=transport)

    def forward(self, order: PhoneOrder) -> httpx.Response:
        headers = {}
        if order.correlation_id:
            headers["X-Correlation-Id"] = order.correlation_id

        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = self._client.post(self.path, json=order.to_payload(), headers=headers)
            except httpx.TimeoutException as e:
                error = ForwardError(f"delivery service timed out: {e}")
            except httpx.RequestError as e:
                error = ForwardError(f"delivery service unreachable: {e}")
            else:
                if response.is_success:
                    logger.info(
                        "Forwarded order for %s to delivery service (status %d, correlation_id=%s)",
                        order.customer_name, response.status_code, order.correlation_id,
                    )
                    return response
                error = ForwardError(
                    f"delivery service returned {response.status_code}", status_code=response.status_code
                )

            if attempt < attempts:
                delay_sec = self.backoff_ms * (2 ** (attempt - 1)) / 1000.0
                logger.warning("Forward attempt %d/%d failed (%s), retrying in %.2fs", attempt, attempts, error, delay_sec)
                self._sleep(delay_sec)

        raise error

    def close(self) -> None:
        self._client.close()
