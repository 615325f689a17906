"""Model abstraction layer.

The ``Agent`` talks to language models only through ``ModelClient``. The
Pydantic AI adapter lives in ``abstraction.adapters``.
"""

from .base import ModelClient, ModelTurn, ToolChoice

__all__ = ["ModelClient", "ModelTurn", "ToolChoice"]
