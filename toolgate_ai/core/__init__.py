"""
Core utilities and configuration for Toolgate-AI.

This package provides core functionality including settings and logging
configuration shared by the rest of the codebase.
"""

from toolgate_ai.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
