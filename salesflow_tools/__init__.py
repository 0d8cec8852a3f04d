"""
================================================================================
Salesflow Tools
================================================================================

Infrastructure utilities shared by the Salesflow UI regression suite.

Modules:
    - common: Logging initialisation
    - report_tools: Allure attachment helpers, run summary, report generation

Example:
    from salesflow_tools.common import init_logger
    from salesflow_tools.report_tools.allure_utils import RunSummary

    init_logger()
    summary = RunSummary()

================================================================================
"""

__version__ = "1.0.0"

__all__ = [
    "common",
    "report_tools",
]
