"""
================================================================================
Account Flow (Sales app)
================================================================================

Account list and record pages of the Sales app:
    - open the Accounts tab
    - create a Business account (the flow's one irreversible action: Save)
    - search an account from the list view and open its record
    - read back the record name and the success toast

Toast and record-name locators are application-contract details that have
changed between Lightning releases; override the class attributes when the
target org renders them differently.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from testsuites.ui_testing.framework.locators import ElementLocator
from testsuites.ui_testing.framework.page_flow import PageFlow

_COMBOBOX = (
    "//button[@class='slds-combobox__input slds-input_faux fix-slds-input_faux "
    "slds-combobox__input-value']"
)


def xpath_literal(value: str) -> str:
    """Quote `value` as an XPath string literal."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"


def epoch_millis() -> int:
    return int(time.time() * 1000)


class AccountFlow(PageFlow):
    """
    Account flows.

    Example:
        flow = AccountFlow.from_context(ctx)
        flow.open_accounts_tab()
        flow.create_account()
        assert flow.created_account_name in flow.read_success_toast()
    """

    ACCOUNT_TYPE = "Customer - Direct"
    INDUSTRY = "Technology"
    PHONE = "0412345678"

    ACCOUNTS_TAB = ElementLocator.xpath("//a[@title='Accounts']", name="accounts tab")
    NEW_BUTTON = ElementLocator.xpath("//a[@title='New']", name="new button")
    BUSINESS_RECORD_TYPE = ElementLocator.xpath(
        "(//span[@class='slds-radio--faux'])[3]", name="business record type"
    )
    NEXT_BUTTON = ElementLocator.xpath(
        "//button[@class='slds-button slds-button_neutral slds-button slds-button_brand uiButton']",
        name="next button",
    )
    NAME_FIELD = ElementLocator.xpath("//input[@name='Name']", name="account name input")
    TYPE_FIELD = ElementLocator.xpath(f"({_COMBOBOX})[2]", name="type combobox")
    INDUSTRY_FIELD = ElementLocator.xpath(f"({_COMBOBOX})[3]", name="industry combobox")
    PHONE_FIELD = ElementLocator.xpath("//input[@name='Phone']", name="phone input")
    SAVE_BUTTON = ElementLocator.xpath("//button[@name='SaveEdit']", name="save button")

    LIST_SEARCH = ElementLocator.xpath(
        "//input[@name='Account-search-input']", name="account list search"
    )
    SUCCESS_TOAST = ElementLocator.css("div.forceToastMessage", name="success toast")
    ACCOUNT_NAME = ElementLocator.xpath(
        "//div[@class='entityNameTitle slds-line-height--reset']"
        "/following-sibling::slot/lightning-formatted-text",
        name="account name",
    ).or_(
        ElementLocator.xpath(
            "//records-highlights2//lightning-formatted-text[@slot='primaryField']"
        )
    )

    def __init__(self, *args, name_factory: Optional[Callable[[], str]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._name_factory = name_factory or (lambda: f"Test Account {epoch_millis()}")
        self.created_account_name: Optional[str] = None

    @staticmethod
    def combobox_option(value: str) -> ElementLocator:
        return ElementLocator.xpath(
            f"//lightning-base-combobox-item[@data-value={xpath_literal(value)}]",
            name=f"option '{value}'",
        )

    @staticmethod
    def record_link(name: str) -> ElementLocator:
        return ElementLocator.xpath(
            f"//table//a[@title={xpath_literal(name)}]", name=f"record link '{name}'"
        )

    def open_accounts_tab(self) -> str:
        with self.step("Open Accounts tab"):
            self.dispatcher.click(self.ACCOUNTS_TAB, programmatic=True)
            return self.wait_for_url("Account")

    def create_account(self) -> str:
        """
        Create a Business account and save it.

        Returns:
            The generated account name (also kept in `created_account_name`)
        """
        name = self._name_factory()

        with self.step("Open new account form"):
            self.dispatcher.click(self.NEW_BUTTON)
            self.dispatcher.click(self.BUSINESS_RECORD_TYPE)
            self.dispatcher.click(self.NEXT_BUTTON)

        with self.step(f"Fill account details: {name}"):
            self.dispatcher.type(self.NAME_FIELD, name)
            self.created_account_name = name
            self.select_option(self.TYPE_FIELD, self.ACCOUNT_TYPE)
            self.select_option(self.INDUSTRY_FIELD, self.INDUSTRY)
            self.dispatcher.type(self.PHONE_FIELD, self.PHONE)

        with self.irreversible("Save account"):
            self.dispatcher.click(self.SAVE_BUTTON)
        self.wait_for_overlay_to_clear()
        return name

    def select_option(self, combobox: ElementLocator, value: str) -> None:
        """Open a Lightning combobox and pick `value`."""
        self.dispatcher.click(combobox)
        self.dispatcher.click(self.combobox_option(value), programmatic=True)

    def search_account(self, name: str) -> None:
        """Search the list view for `name` and open the matching record."""
        with self.step(f"Search account: {name}"):
            self.dispatcher.type(self.LIST_SEARCH, name)
            self.dispatcher.press(self.LIST_SEARCH, "Enter")
            self.wait_for_overlay_to_clear()
            self.dispatcher.click(self.record_link(name))
            self.wait_for_url("Account")

    def read_account_name(self) -> str:
        return self.dispatcher.read_text(self.ACCOUNT_NAME)

    def read_success_toast(self) -> str:
        return self.dispatcher.read_text(self.SUCCESS_TOAST)
