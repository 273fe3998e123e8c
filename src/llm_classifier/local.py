"""
In-memory host objects.

Plain implementations of the host interfaces from ``llm_classifier.host``.
The command-line entry point uses them to classify a file outside the host,
and the tests use them as lightweight doubles.
"""

from __future__ import annotations

import mimetypes
import os
from dataclasses import dataclass, field
from typing import Any


@dataclass
class LocalCategory:
    id: int
    name: str

    def get_id(self) -> int:
        return self.id

    def get_name(self) -> str:
        return self.name


@dataclass
class LocalFolder:
    id: int
    name: str
    parent: LocalFolder | None = None

    def get_id(self) -> int:
        return self.id

    def get_name(self) -> str:
        return self.name

    def get_parent(self) -> LocalFolder | None:
        return self.parent


@dataclass
class LocalContent:
    path: str
    mime_type: str = "application/pdf"

    def get_mime_type(self) -> str:
        return self.mime_type

    def get_path(self) -> str:
        return self.path


@dataclass
class LocalKeywordCategory:
    keywords: list[str] = field(default_factory=list)

    def get_keyword_lists(self) -> list[dict[str, Any]]:
        return [{"keywords": keyword} for keyword in self.keywords]


@dataclass
class LocalDocument:
    id: int
    name: str
    content: LocalContent | None = None
    folder: LocalFolder | None = None
    keywords: str = ""
    categories: list[LocalCategory] = field(default_factory=list)

    @classmethod
    def from_file(cls, file_path: str, doc_id: int = 1, name: str | None = None):
        """Wrap a file on disk; its path is stored relative to its directory."""
        mime_type = mimetypes.guess_type(file_path)[0] or "application/octet-stream"
        return cls(
            id=doc_id,
            name=name or os.path.basename(file_path),
            content=LocalContent(os.path.basename(file_path), mime_type),
        )

    def get_id(self) -> int:
        return self.id

    def get_latest_content(self) -> LocalContent | None:
        return self.content

    def get_folder(self) -> LocalFolder | None:
        return self.folder

    def get_name(self) -> str:
        return self.name

    def set_name(self, name: str) -> bool:
        self.name = name
        return True

    def get_keywords(self) -> str:
        return self.keywords

    def set_keywords(self, keywords: str) -> bool:
        self.keywords = keywords
        return True

    def get_categories(self) -> list[LocalCategory]:
        return list(self.categories)

    def add_categories(self, categories: list[LocalCategory]) -> bool:
        known = {category.id for category in self.categories}
        for category in categories:
            if category.id not in known:
                self.categories.append(category)
                known.add(category.id)
        return True


@dataclass
class LocalDms:
    content_dir: str = ""
    categories: list[LocalCategory] = field(default_factory=list)
    keyword_categories: list[LocalKeywordCategory] = field(default_factory=list)

    @classmethod
    def from_names(
        cls,
        content_dir: str,
        category_names: list[str] | None = None,
        keywords: list[str] | None = None,
    ) -> LocalDms:
        """Build a catalog with sequential category ids starting at 1."""
        categories = [
            LocalCategory(index, name)
            for index, name in enumerate(category_names or [], start=1)
        ]
        keyword_categories = [LocalKeywordCategory(list(keywords))] if keywords else []
        return cls(content_dir, categories, keyword_categories)

    def get_document_categories(self) -> list[LocalCategory]:
        return list(self.categories)

    def get_document_category(self, category_id: int) -> LocalCategory | None:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def get_all_keyword_categories(self) -> list[LocalKeywordCategory]:
        return list(self.keyword_categories)
