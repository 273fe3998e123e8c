"""
PDF Text Extraction
===================

This module turns a PDF file into plain text by running the ``pdftotext``
command-line tool from poppler-utils. The tool is located and validated once,
when the extractor is created; an extractor whose tool is missing stays
unusable for its whole lifetime and reports why through ``error``.

Extracted text is whitespace-normalized and capped to a maximum length so it
can be embedded in a prompt directly.
"""

from __future__ import annotations

import os
import re
import subprocess
import tempfile

import structlog

from .errors import ExternalToolError

log = structlog.get_logger(__name__)

DEFAULT_PDFTOTEXT_PATH = "/usr/bin/pdftotext"
DEFAULT_MAX_LENGTH = 4000
TRUNCATION_MARKER = "..."

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str, max_length: int) -> str:
    """
    Collapse whitespace runs to single spaces, trim, and cap the length.

    Text longer than ``max_length`` is cut to exactly ``max_length``
    characters and the truncation marker is appended.
    """
    text = _WHITESPACE_RE.sub(" ", text).strip()
    if len(text) > max_length:
        text = text[:max_length] + TRUNCATION_MARKER
    return text


class PdfTextExtractor:
    """Extracts text from PDF files with ``pdftotext -layout``."""

    def __init__(self, pdftotext_path: str | None = None, logger=None):
        self.log = logger or log
        self.pdftotext_path = pdftotext_path or DEFAULT_PDFTOTEXT_PATH
        self.error: str | None = None

        if not os.path.exists(self.pdftotext_path):
            self.error = f"pdftotext binary not found at: {self.pdftotext_path}"
        elif not os.access(self.pdftotext_path, os.X_OK):
            self.error = f"pdftotext binary is not executable: {self.pdftotext_path}"

        if self.error:
            self.log.warning("Text extractor unavailable", error=self.error)

    def is_ready(self) -> bool:
        return self.error is None

    def extract_text(
        self, file_path: str, max_length: int = DEFAULT_MAX_LENGTH
    ) -> str | None:
        """
        Return the normalized text of ``file_path``, or None on any failure.
        """
        if not self.is_ready():
            self.log.warning("Cannot extract text", error=self.error)
            return None
        if not os.path.exists(file_path):
            self.log.warning("PDF file not found", file_path=file_path)
            return None
        if not os.access(file_path, os.R_OK):
            self.log.warning("PDF file not readable", file_path=file_path)
            return None

        try:
            raw_text = self._run_pdftotext(file_path)
        except ExternalToolError as e:
            self.log.warning("Text extraction failed", file_path=file_path, error=str(e))
            return None

        text = normalize_text(raw_text, max_length)
        if not text:
            self.log.warning("No text content extracted from PDF", file_path=file_path)
            return None
        return text

    def _run_pdftotext(self, file_path: str) -> str:
        """Run the tool into a temporary file and return its raw output."""
        try:
            fd, output_path = tempfile.mkstemp(prefix="llmclassifier_", suffix=".txt")
            os.close(fd)
        except OSError as e:
            raise ExternalToolError(f"Cannot create temporary file: {e}") from e

        try:
            try:
                completed = subprocess.run(
                    [self.pdftotext_path, "-layout", file_path, output_path],
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    encoding="utf-8",
                    errors="replace",
                    check=False,
                )
            except OSError as e:
                raise ExternalToolError(f"Failed to run pdftotext: {e}") from e

            if completed.returncode != 0:
                output = (completed.stdout or "").strip()
                raise ExternalToolError(
                    f"pdftotext failed (code {completed.returncode}): {output}"
                )

            try:
                with open(output_path, encoding="utf-8", errors="replace") as handle:
                    return handle.read()
            except OSError as e:
                raise ExternalToolError(f"Cannot read pdftotext output: {e}") from e
        finally:
            try:
                os.remove(output_path)
            except FileNotFoundError:
                pass
