"""
Host Object Interfaces
======================

The classifier never imports the host's document model. Everything it needs
from the host is described here as a narrow structural interface, so any
object with matching methods (the real host objects, the in-memory versions
in ``llm_classifier.local``, or test doubles) can be passed in.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol


class Category(Protocol):
    def get_id(self) -> int: ...

    def get_name(self) -> str: ...


class Folder(Protocol):
    def get_id(self) -> int: ...

    def get_name(self) -> str: ...

    def get_parent(self) -> Folder | None: ...


class Content(Protocol):
    """The latest stored revision of a document."""

    def get_mime_type(self) -> str: ...

    def get_path(self) -> str:
        """Storage path relative to the DMS content directory."""
        ...


class Document(Protocol):
    def get_id(self) -> int: ...

    def get_latest_content(self) -> Content | None: ...

    def get_folder(self) -> Folder | None: ...

    def get_name(self) -> str: ...

    def set_name(self, name: str) -> bool: ...

    def get_keywords(self) -> str: ...

    def set_keywords(self, keywords: str) -> bool: ...

    def get_categories(self) -> list[Category]: ...

    def add_categories(self, categories: list[Category]) -> Any: ...


class KeywordCategory(Protocol):
    def get_keyword_lists(self) -> Iterable[Mapping[str, Any]]:
        """Entries carry the configured keyword under ``"keywords"``."""
        ...


class Dms(Protocol):
    content_dir: str

    def get_document_categories(self) -> list[Category]: ...

    def get_document_category(self, category_id: int) -> Category | None: ...

    def get_all_keyword_categories(self) -> list[KeywordCategory]: ...
