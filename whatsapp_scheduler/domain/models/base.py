"""Column helpers shared by the messaging models."""

import uuid


def new_id() -> str:
    return str(uuid.uuid4())
