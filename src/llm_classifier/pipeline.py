"""
Document Classification Pipeline
================================

This module defines the `DocumentClassifier`, which handles the classification
workflow for a single uploaded document:

1. check that the document lives inside the configured folder scope;
2. extract the PDF text;
3. build the system prompt (categories, keyword vocabulary, limits) and the
   user message (current name, text);
4. call the chat completion API;
5. merge the returned name, keywords and categories into the document.

Merging is strictly additive: existing keywords are kept, categories are only
ever added, and nothing is touched when a run fails before step 5.
"""

from __future__ import annotations

import json
import os
from typing import Iterable

import structlog

from common.config import Settings
from .client import ChatCompletionClient, ClassificationResult
from .errors import PreconditionError
from .extractor import PdfTextExtractor
from .host import Category, Content, Dms, Document

log = structlog.get_logger(__name__)

PDF_MIME_TYPE = "application/pdf"

# Upper bound on the folder walk; real folder trees are far shallower.
MAX_FOLDER_DEPTH = 1000

SYSTEM_PROMPT_TEMPLATE = """
You are a document classification assistant. Analyze the PDF document and provide:

1. **name**: A clear, descriptive name (in the document's language, max {max_title_length} characters)
2. **categories**: Select from this list: {categories}
{keyword_instruction}

IMPORTANT: For tax-related documents (invoices, receipts, expenses), include "Steuer" in keywords if available.

Respond with valid JSON only:
{{"name": "Document Name", "categories": ["Category"], "keywords": ["keyword1", "keyword2"]}}
""".strip()

FREE_KEYWORD_INSTRUCTION = (
    "3. **keywords**: Relevant search keywords (in the document's language)"
)
RESTRICTED_KEYWORD_INSTRUCTION = "3. **keywords**: Select ONLY from this list: {keywords}"

USER_MESSAGE_TEMPLATE = """
Classify this document. Current filename: "{current_name}"

Document content:
---
{text}
---

Provide JSON with name, categories, and keywords.
""".strip()


def _to_json(values: list[str]) -> str:
    return json.dumps(values, ensure_ascii=False)


def build_system_prompt(
    category_names: list[str],
    configured_keywords: list[str],
    max_title_length: int,
    additional_prompt: str = "",
) -> str:
    """Build the system prompt describing the expected JSON answer."""
    if configured_keywords:
        keyword_instruction = RESTRICTED_KEYWORD_INSTRUCTION.format(
            keywords=_to_json(configured_keywords)
        )
    else:
        keyword_instruction = FREE_KEYWORD_INSTRUCTION

    prompt = SYSTEM_PROMPT_TEMPLATE.format(
        max_title_length=max_title_length,
        categories=_to_json(category_names),
        keyword_instruction=keyword_instruction,
    )
    if additional_prompt:
        prompt += "\n\nADDITIONAL INSTRUCTIONS:\n" + additional_prompt
    return prompt


def build_user_message(text: str, current_name: str) -> str:
    return USER_MESSAGE_TEMPLATE.format(current_name=current_name, text=text)


def filter_keywords(
    keywords: Iterable[str], configured: Iterable[str]
) -> tuple[list[str], list[str]]:
    """
    Keep keywords that case-insensitively match the configured vocabulary.

    Accepted keywords take the configured spelling. Returns
    ``(accepted, rejected)``.
    """
    canonical = {}
    for keyword in configured:
        canonical.setdefault(keyword.strip().lower(), keyword.strip())

    accepted: list[str] = []
    rejected: list[str] = []
    for keyword in keywords:
        keyword = keyword.strip()
        if not keyword:
            continue
        match = canonical.get(keyword.lower())
        if match is None:
            rejected.append(keyword)
        else:
            accepted.append(match)
    return accepted, rejected


def merge_keywords(existing: str | None, keywords: list[str]) -> str:
    """Append keywords to the existing comma separated keyword string."""
    joined = ", ".join(keywords)
    existing = (existing or "").strip()
    if existing:
        return f"{existing}, {joined}"
    return joined


class DocumentClassifier:
    """
    Orchestrates the classification of a single uploaded document.
    """

    def __init__(
        self,
        settings: Settings,
        dms: Dms,
        logger=None,
        extractor: PdfTextExtractor | None = None,
        client: ChatCompletionClient | None = None,
    ):
        self.settings = settings
        self.dms = dms
        self.log = logger or log
        self.extractor = extractor or PdfTextExtractor(
            settings.PDFTOTEXT_PATH, logger=self.log
        )
        self.client = client or ChatCompletionClient.from_settings(
            settings, logger=self.log
        )

    def is_enabled(self) -> bool:
        return self.settings.is_enabled

    def is_document_in_allowed_folder(self, document: Document) -> bool:
        """
        True if the document's folder, or one of its ancestors, is the
        configured scope folder. Without a scope folder every document passes.
        """
        limit_folder_id = self.settings.LIMIT_FOLDER_ID
        if limit_folder_id <= 0:
            return True

        folder = document.get_folder()
        if folder is None:
            self.log.info("Cannot determine document folder", doc_id=document.get_id())
            return False

        visited: set[int] = set()
        current = folder
        while current is not None and len(visited) < MAX_FOLDER_DEPTH:
            folder_id = current.get_id()
            if folder_id == limit_folder_id:
                return True
            if folder_id in visited:
                self.log.warning("Folder cycle detected", folder_id=folder_id)
                break
            visited.add(folder_id)
            current = current.get_parent()

        self.log.info(
            "Document folder is outside the allowed folder tree",
            folder_name=folder.get_name(),
            folder_id=folder.get_id(),
            limit_folder_id=limit_folder_id,
        )
        return False

    def classify_document(self, document: Document) -> ClassificationResult | None:
        """
        Extract text, query the model, and return its classification.

        Returns None, after logging why, when the document does not qualify or
        any step fails.
        """
        doc_id = document.get_id()
        self.log.info("Starting classification", doc_id=doc_id)

        content = document.get_latest_content()
        if content is not None and content.get_mime_type() != PDF_MIME_TYPE:
            self.log.info(
                "Skipping non-PDF document",
                doc_id=doc_id,
                mime_type=content.get_mime_type(),
            )
            return None

        try:
            file_path = self._resolve_pdf_path(content)
        except PreconditionError as e:
            self.log.error("Skipping classification", doc_id=doc_id, reason=str(e))
            return None

        text = self.extractor.extract_text(file_path, self.settings.MAX_TEXT_LENGTH)
        if not text:
            self.log.error("Text extraction failed", doc_id=doc_id)
            return None
        self.log.info("Extracted text", doc_id=doc_id, characters=len(text))

        category_names = self._category_names_for_model()
        configured_keywords: list[str] = []
        if self.settings.RESTRICT_KEYWORDS:
            configured_keywords = self._configured_keywords()
            self.log.info(
                "Keyword restriction enabled", keyword_count=len(configured_keywords)
            )

        system_prompt = build_system_prompt(
            category_names,
            configured_keywords,
            self.settings.MAX_TITLE_LENGTH,
            self.settings.ADDITIONAL_PROMPT,
        )
        user_message = build_user_message(text, document.get_name())

        self.log.info("Calling LLM API", doc_id=doc_id, azure=self.client.is_azure)
        result = self.client.chat_completion(system_prompt, user_message)
        if result is None:
            self.log.error("LLM API call failed", doc_id=doc_id)
            return None

        self.log.info(
            "Classification result",
            doc_id=doc_id,
            result=json.dumps(result.to_dict(), ensure_ascii=False),
        )
        return result

    def apply_classification(
        self, document: Document, result: ClassificationResult
    ) -> bool:
        """
        Merge a classification into the document. Returns True if anything
        changed.
        """
        if not isinstance(result, ClassificationResult):
            self.log.error("Invalid classification data", result=repr(result))
            return False

        doc_id = document.get_id()
        outcomes = [
            self._apply_name(document, result),
            self._apply_keywords(document, result),
            self._apply_categories(document, result),
            self._apply_default_category(document),
        ]
        updated = any(outcomes)
        if updated:
            self.log.info("Document updated successfully", doc_id=doc_id)
        else:
            self.log.info("No changes applied to document", doc_id=doc_id)
        return updated

    def close(self) -> None:
        self.client.close()

    # -- preconditions -----------------------------------------------------

    def _resolve_pdf_path(self, content: Content | None) -> str:
        if content is None:
            raise PreconditionError("No content found for document")

        if not self.extractor.is_ready():
            raise PreconditionError(f"PDF extractor not ready: {self.extractor.error}")

        file_path = os.path.join(self.dms.content_dir, content.get_path().lstrip("/"))
        if not os.path.exists(file_path):
            raise PreconditionError(f"File not found: {file_path}")
        return file_path

    # -- host lookups ------------------------------------------------------

    def _category_names_for_model(self) -> list[str]:
        """All category names except the default category."""
        categories = self.dms.get_document_categories() or []
        if not categories:
            self.log.warning("No categories found in DMS")
            return []

        default_id = self.settings.DEFAULT_CATEGORY_ID
        names = []
        for category in categories:
            if default_id > 0 and category.get_id() == default_id:
                self.log.info(
                    "Excluding default category from LLM",
                    category=category.get_name(),
                )
                continue
            names.append(category.get_name())
        return names

    def _configured_keywords(self) -> list[str]:
        """All keywords from all keyword categories in the DMS."""
        keywords = []
        try:
            for keyword_category in self.dms.get_all_keyword_categories() or []:
                for entry in keyword_category.get_keyword_lists() or []:
                    value = str(entry.get("keywords") or "").strip()
                    if value:
                        keywords.append(value)
        except Exception:
            self.log.exception("Failed to fetch keywords")
            return []
        return keywords

    # -- apply steps -------------------------------------------------------

    def _apply_name(self, document: Document, result: ClassificationResult) -> bool:
        new_name = result.name
        if not new_name or new_name == document.get_name():
            return False

        # Advisory only; the name is applied in full
        if len(new_name) > self.settings.MAX_TITLE_LENGTH:
            self.log.warning(
                "LLM generated title exceeds configured limit",
                length=len(new_name),
                max_title_length=self.settings.MAX_TITLE_LENGTH,
            )

        if document.set_name(new_name) is False:
            self.log.error("Failed to set document name", doc_id=document.get_id())
            return False
        self.log.info("Updated name", doc_id=document.get_id(), name=new_name)
        return True

    def _apply_keywords(self, document: Document, result: ClassificationResult) -> bool:
        keywords = [keyword.strip() for keyword in result.keywords if keyword.strip()]
        if not keywords:
            return False

        if self.settings.RESTRICT_KEYWORDS:
            configured = self._configured_keywords()
            if not configured:
                self.log.warning(
                    "Keyword restriction enabled but no keywords configured"
                )
            else:
                keywords, rejected = filter_keywords(keywords, configured)
                if rejected:
                    self.log.info("Rejected keywords", rejected=", ".join(rejected))

        if not keywords:
            self.log.info("No keywords to apply after filtering", doc_id=document.get_id())
            return False

        new_keywords = merge_keywords(document.get_keywords(), keywords)
        if document.set_keywords(new_keywords) is False:
            self.log.error("Failed to set document keywords", doc_id=document.get_id())
            return False
        self.log.info("Updated keywords", doc_id=document.get_id(), keywords=new_keywords)
        return True

    def _apply_categories(
        self, document: Document, result: ClassificationResult
    ) -> bool:
        if not result.categories:
            return False

        all_categories = self.dms.get_document_categories() or []
        if not all_categories:
            self.log.warning("No categories available in DMS")
            return False

        by_name: dict[str, Category] = {}
        for category in all_categories:
            by_name.setdefault(category.get_name().lower(), category)

        assigned_ids = {category.get_id() for category in document.get_categories()}
        updated = False
        for name in result.categories:
            category = by_name.get(name.lower())
            if category is None:
                self.log.info("Unknown category suggested", category=name)
                continue
            if category.get_id() in assigned_ids:
                continue
            document.add_categories([category])
            assigned_ids.add(category.get_id())
            self.log.info("Added category", category=category.get_name())
            updated = True
        return updated

    def _apply_default_category(self, document: Document) -> bool:
        default_id = self.settings.DEFAULT_CATEGORY_ID
        if default_id <= 0:
            return False

        default_category = self.dms.get_document_category(default_id)
        if default_category is None:
            self.log.error("Default category not found", category_id=default_id)
            return False

        if any(category.get_id() == default_id for category in document.get_categories()):
            self.log.info("Default category already assigned")
            return False

        document.add_categories([default_category])
        self.log.info("Added default category", category=default_category.get_name())
        return True
