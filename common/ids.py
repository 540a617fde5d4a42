import uuid


def generate_correlation_id() -> str:
    # Short prefix for easy log scanning.
    return f"cor_{uuid.uuid4().hex[:16]}"
