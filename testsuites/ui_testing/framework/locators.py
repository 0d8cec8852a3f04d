"""
================================================================================
Element Locators
================================================================================

Immutable, declarative descriptors of "where to find a node in the document".

A locator is a strategy tag plus a selector string. Several locators may
describe the same logical element across page variants; those are declared
as alternatives and resolved together (first match in document order wins).

Locators are pure data. Page flows declare them as class attributes and never
share a mutable registry.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from playwright.sync_api import Locator, Page


# Strategy tag -> Playwright selector engine prefix
STRATEGIES = {
    "css": "css",
    "xpath": "xpath",
    "text": "text",
    "id": "id",
    "testid": "data-testid",
}


@dataclass(frozen=True)
class ElementLocator:
    """
    Declarative locator.

    Attributes:
        strategy: One of STRATEGIES ('css', 'xpath', 'text', 'id', 'testid')
        selector: Selector string understood by the strategy
        name: Human-readable element name used in logs and failure reports
        alternatives: Locators for the same element on other page variants

    Usage:
        >>> SAVE = ElementLocator.xpath("//button[@name='SaveEdit']", name="save_button")
        >>> TOAST = ElementLocator.css("div.forceToastMessage").or_(
        ...     ElementLocator.css("[role='alert'].slds-notify_toast"))
    """

    strategy: str
    selector: str
    name: str = ""
    alternatives: Tuple["ElementLocator", ...] = field(default=())

    def __post_init__(self) -> None:
        if self.strategy not in STRATEGIES:
            raise ValueError(
                f"Unknown locator strategy '{self.strategy}'. "
                f"Expected one of: {', '.join(sorted(STRATEGIES))}"
            )
        if not self.selector:
            raise ValueError("Locator selector must not be empty")

    # ----- constructors -----

    @classmethod
    def css(cls, selector: str, name: str = "") -> "ElementLocator":
        return cls("css", selector, name)

    @classmethod
    def xpath(cls, selector: str, name: str = "") -> "ElementLocator":
        return cls("xpath", selector, name)

    @classmethod
    def text(cls, selector: str, name: str = "") -> "ElementLocator":
        return cls("text", selector, name)

    @classmethod
    def by_id(cls, selector: str, name: str = "") -> "ElementLocator":
        return cls("id", selector, name)

    @classmethod
    def testid(cls, selector: str, name: str = "") -> "ElementLocator":
        return cls("testid", selector, name)

    # ----- composition -----

    def or_(self, *others: "ElementLocator") -> "ElementLocator":
        """Return a new locator that also matches the given page variants."""
        return ElementLocator(
            self.strategy,
            self.selector,
            self.name,
            self.alternatives + tuple(others),
        )

    def named(self, name: str) -> "ElementLocator":
        """Return a copy with a different display name."""
        return ElementLocator(self.strategy, self.selector, name, self.alternatives)

    # ----- resolution -----

    @property
    def query(self) -> str:
        """Playwright selector string for this locator (without alternatives)."""
        return f"{STRATEGIES[self.strategy]}={self.selector}"

    def resolve(self, page: Page) -> Locator:
        """
        Build a fresh Playwright Locator against the live document.

        Called on every poll tick; the returned Locator is lazy and is only
        turned into node handles by the caller.
        """
        locator = page.locator(self.query)
        for alternative in self.alternatives:
            locator = locator.or_(alternative.resolve(page))
        return locator

    def describe(self) -> str:
        label = self.query
        if self.alternatives:
            label += " | " + " | ".join(alt.query for alt in self.alternatives)
        return f"'{self.name}' ({label})" if self.name else label

    def __str__(self) -> str:
        return self.describe()


__all__ = [
    "ElementLocator",
    "STRATEGIES",
]
