"""
Fetched document abstraction over BeautifulSoup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError


class FetchedDocument(ABC):
    """
    A rendered page or response that strategies can query.
    """

    url: str

    @abstractmethod
    def find_all(self, selector: str) -> Sequence[Tag]:
        """
        Return nodes matching a CSS selector; invalid selectors match nothing.
        """

    @abstractmethod
    def text(self) -> str:
        """
        Return the visible text of the document.
        """

    def exists(self, selector: str) -> bool:
        return len(self.find_all(selector)) > 0


class HtmlDocument(FetchedDocument):
    """
    Document backed by HTML markup and an optional pre-rendered text snapshot.
    """

    def __init__(self, *, url: str, html: str, text: str | None = None) -> None:
        self.url = url
        self._html = html or ""
        self._text = text
        self._soup: BeautifulSoup | None = None

    @property
    def soup(self) -> BeautifulSoup:
        if self._soup is None:
            self._soup = BeautifulSoup(self._html, "html.parser")
        return self._soup

    def find_all(self, selector: str) -> Sequence[Tag]:
        try:
            return self.soup.select(selector)
        except (SelectorSyntaxError, ValueError, NotImplementedError):
            return []

    def text(self) -> str:
        if self._text is None:
            stripped = BeautifulSoup(self._html, "html.parser")
            for hidden in stripped(["script", "style", "noscript"]):
                hidden.extract()
            self._text = stripped.get_text(" ", strip=True)
        return self._text
