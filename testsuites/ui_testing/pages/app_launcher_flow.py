"""
================================================================================
App Launcher Flow (Salesforce Lightning)
================================================================================

Opens an app through the App Launcher: launcher button -> search box ->
app tile. The Sales tile sits under the launcher's own overlay, so it is
clicked through the programmatic path directly.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from testsuites.ui_testing.framework.locators import ElementLocator
from testsuites.ui_testing.framework.page_flow import PageFlow


class AppLauncherFlow(PageFlow):
    """Navigate to the Sales app."""

    APP_LAUNCHER = ElementLocator.xpath("//button[@title='App Launcher']", name="app launcher")
    SEARCH = ElementLocator.xpath(
        "//input[@placeholder='Search apps and items...']", name="app launcher search"
    )
    SALES_APP = ElementLocator.xpath("//a[@data-label='Sales']", name="sales app link")
    APP_HEADER = ElementLocator.xpath(
        "//h1[contains(@class, 'appName')]/span[@title='Sales']", name="app header"
    )

    def open_sales_app(self) -> str:
        """Open the Sales app; returns the landing URL."""
        with self.step("Open Sales app via App Launcher"):
            self.dispatcher.click(self.APP_LAUNCHER)
            self.dispatcher.type(self.SEARCH, "Sales")
            self.dispatcher.click(self.SALES_APP, programmatic=True)
            return self.wait_for_url("lightning")

    def read_app_header(self) -> str:
        return self.dispatcher.read_text(self.APP_HEADER)
