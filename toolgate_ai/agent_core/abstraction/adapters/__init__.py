"""Framework adapters implementing ``ModelClient``."""

from .pydantic_ai import PydanticAIModelClient

__all__ = ["PydanticAIModelClient"]
