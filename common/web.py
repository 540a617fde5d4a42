import logging

from flask import Flask, g, jsonify, request

from common import ids

logger = logging.getLogger(__name__)

# The id is carried as the AMQP correlation_id, a short string.
MAX_CORRELATION_ID_BYTES = 255


def install_correlation_id(app: Flask) -> None:
    """Read or mint an X-Correlation-Id per request and echo it on the response."""

    @app.before_request
    def add_correlation_id():
        correlation_id = request.headers.get("X-Correlation-Id")
        if correlation_id and len(correlation_id.encode("utf-8")) > MAX_CORRELATION_ID_BYTES:
            logger.warning(
                "X-Correlation-Id longer than %d bytes, replacing it", MAX_CORRELATION_ID_BYTES
            )
            correlation_id = None
        if not correlation_id:
            correlation_id = ids.generate_correlation_id()
        g.correlation_id = correlation_id

    @app.after_request
    def echo_correlation_id(response):
        correlation_id = g.get("correlation_id")
        if correlation_id:
            response.headers["X-Correlation-Id"] = correlation_id
        return response


def message_response(message: str, status: int = 200):
    return jsonify({"Message": message}), status
