"""
Command-line Classification
===========================

Classify a single PDF outside the host, using the same pipeline the upload
hook runs. Configuration comes from ``LLM_*`` environment variables; the
category and keyword vocabularies that the host would provide are given on
the command line.

    LLM_ENABLED=1 LLM_ENDPOINT=https://api.openai.com/v1 LLM_API_KEY=... \\
        python -m llm_classifier invoice.pdf --category Invoices --keyword Steuer

The classification is printed as JSON on stdout. With ``--apply`` the result
is also merged into an in-memory copy of the document and that copy is
printed alongside.
"""

from __future__ import annotations

import argparse
import json
import os
import sys

import structlog

from common.config import Settings
from common.logging_config import configure_logging
from .local import LocalDms, LocalDocument
from .pipeline import DocumentClassifier

EXIT_OK = 0
EXIT_NO_RESULT = 1
EXIT_CONFIG_ERROR = 2


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llm-classifier",
        description="Classify a PDF document with an OpenAI-compatible chat API",
    )
    parser.add_argument("file", help="PDF file to classify")
    parser.add_argument("--name", default=None, help="Current document name")
    parser.add_argument(
        "--category",
        action="append",
        default=[],
        dest="categories",
        help="Available category (repeatable)",
    )
    parser.add_argument(
        "--keyword",
        action="append",
        default=[],
        dest="keywords",
        help="Configured keyword for LLM_RESTRICT_KEYWORDS (repeatable)",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Apply the result to an in-memory copy of the document",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``python -m llm_classifier``."""
    args = create_parser().parse_args(argv)
    log = structlog.get_logger(__name__)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        log.error("Configuration error", error=str(e))
        return EXIT_CONFIG_ERROR
    configure_logging(settings)

    if not settings.is_enabled:
        log.error(
            "Classifier disabled; set LLM_ENABLED and LLM_ENDPOINT",
            llm_enabled=settings.LLM_ENABLED,
            llm_endpoint=settings.LLM_ENDPOINT,
        )
        return EXIT_CONFIG_ERROR

    file_path = os.path.abspath(args.file)
    dms = LocalDms.from_names(
        os.path.dirname(file_path), args.categories, args.keywords
    )
    document = LocalDocument.from_file(file_path, name=args.name)

    classifier = DocumentClassifier(settings, dms)
    try:
        result = classifier.classify_document(document)
        if result is None:
            return EXIT_NO_RESULT

        output = {"classification": result.to_dict()}
        if args.apply:
            output["applied"] = classifier.apply_classification(document, result)
            output["document"] = {
                "name": document.get_name(),
                "keywords": document.get_keywords(),
                "categories": [c.get_name() for c in document.get_categories()],
            }
    finally:
        classifier.close()

    json.dump(output, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
