"""
LLM document classification package.

This package contains:

- the PDF text extractor (``pdftotext`` wrapper)
- the chat completion client and result parsing
- the classification pipeline that decides and applies metadata changes
- the upload hook the host calls for each stored document
"""

from .client import ChatCompletionClient, ClassificationResult
from .extractor import PdfTextExtractor
from .hook import AddDocumentHook, post_add_document
from .pipeline import DocumentClassifier

__all__ = [
    "AddDocumentHook",
    "ChatCompletionClient",
    "ClassificationResult",
    "DocumentClassifier",
    "PdfTextExtractor",
    "post_add_document",
]
