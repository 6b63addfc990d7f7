"""Declarative base shared by all models."""

import uuid

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def new_uuid() -> str:
    """Default primary key for UUID-keyed tables."""
    return str(uuid.uuid4())
