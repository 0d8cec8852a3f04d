"""
================================================================================
Salesflow Tools Common Utilities
================================================================================

Exports:
    - init_logger: Configure loguru (stderr + optional rotating file)
    - LOG_FORMAT: Default record format carrying the per-test identity

Usage:
    from salesflow_tools.common import init_logger
    from testsuites.ui_testing.framework.config_loader import ConfigLoader

    init_logger(ConfigLoader())

================================================================================
"""

from .global_config import (
    LOG_FORMAT,
    init_logger,
)

__all__ = [
    "LOG_FORMAT",
    "init_logger",
]
