"""
================================================================================
Page Flows
================================================================================

Flows for the Salesforce pages under test.

Each flow owns:
    - Its element locators (class attributes)
    - Named, ordered actions
    - Read-back helpers for assertions

Author: Automation Team
License: MIT
================================================================================
"""

from .account_flow import AccountFlow
from .app_launcher_flow import AppLauncherFlow
from .login_flow import LoginFlow

__all__ = [
    "AccountFlow",
    "AppLauncherFlow",
    "LoginFlow",
]
