"""Identifier utilities."""

import uuid


def generate_id() -> str:
    """Generate an opaque unique identifier (UUID4 string)."""
    return str(uuid.uuid4())
