import json

import httpx
import pytest

from common.forwarding import ForwardError, ForwardingClient
from common.models import Order

ORDER = Order(
    customer_name="John",
    address="20, Palm Grove",
    contact_number="+94718930874",
    item_name="Apple:190000",
    correlation_id="cor_f1",
)

BASE_URL = "http://delivery.test/deliveryDetails"


def _client(handler, **kwargs):
    return ForwardingClient(base_url=BASE_URL, path="/sendDelivery", transport=httpx.MockTransport(handler), **kwargs)


def test_forward_posts_payload_to_delivery_endpoint():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"Message": "ok"})

    response = _client(handler).forward(ORDER)

    assert response.status_code == 200
    [request] = seen
    assert request.method == "POST"
    assert str(request.url) == "http://delivery.test/deliveryDetails/sendDelivery"
    assert json.loads(request.content) == ORDER.to_payload()
    assert request.headers["X-Correlation-Id"] == "cor_f1"


def test_non_2xx_is_a_forward_error():
    client = _client(lambda request: httpx.Response(500, json={"Message": "boom"}))

    with pytest.raises(ForwardError) as excinfo:
        client.forward(ORDER)
    assert excinfo.value.status_code == 500


def test_transport_failure_is_a_forward_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ForwardError, match="unreachable") as excinfo:
        _client(handler).forward(ORDER)
    assert excinfo.value.status_code is None


def test_timeout_is_a_forward_error():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(ForwardError, match="timed out"):
        _client(handler).forward(ORDER)


def test_no_retry_by_default():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    with pytest.raises(ForwardError):
        _client(handler, retries=0).forward(ORDER)
    assert len(calls) == 1


def test_bounded_retry_with_backoff():
    calls, sleeps = [], []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    client = _client(handler, retries=2, backoff_ms=100, sleep=sleeps.append)
    with pytest.raises(ForwardError):
        client.forward(ORDER)

    assert len(calls) == 3
    assert sleeps == [0.1, 0.2]


def test_retry_stops_at_first_success():
    responses = iter([httpx.Response(502), httpx.Response(200)])
    client = _client(lambda request: next(responses), retries=3, backoff_ms=0, sleep=lambda s: None)

    assert client.forward(ORDER).status_code == 200
