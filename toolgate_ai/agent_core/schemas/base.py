"""Pydantic base schema utilities for agent core models."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class BaseSchema(BaseModel):
    """
    Base Pydantic model for all domain schemas.

    Configures common Pydantic behaviors:
    - ``populate_by_name=True``: Allow initialization by alias or field name.
    - ``extra="forbid"``: Prevent unknown fields from slipping into the model, ensuring strict validation.

    Schemas are persisted as JSON by the keyed store, so every field must be
    JSON-serializable in ``model_dump(mode="json")``.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )
