"""
Shared fixtures. Adds ``src/`` to ``sys.path`` when the package is not installed.
"""

from __future__ import annotations

import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    try:
        import llm_classifier  # noqa: F401
        return
    except ModuleNotFoundError:
        pass

    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    sys.path.insert(0, str(src_dir))


_ensure_src_on_path()

import pytest  # noqa: E402

from llm_classifier.local import (  # noqa: E402
    LocalCategory,
    LocalContent,
    LocalDms,
    LocalDocument,
    LocalFolder,
)


@pytest.fixture
def categories():
    return [
        LocalCategory(1, "Invoices"),
        LocalCategory(2, "Contracts"),
        LocalCategory(3, "Inbox"),
    ]


@pytest.fixture
def dms(tmp_path, categories):
    return LocalDms(content_dir=str(tmp_path), categories=list(categories))


@pytest.fixture
def pdf_document(tmp_path):
    (tmp_path / "1").mkdir()
    (tmp_path / "1" / "1.pdf").write_bytes(b"%PDF-1.4 test")
    root = LocalFolder(1, "DMS")
    folder = LocalFolder(7, "Scans", parent=root)
    return LocalDocument(
        id=42,
        name="scan_0001.pdf",
        content=LocalContent("1/1.pdf", "application/pdf"),
        folder=folder,
        keywords="Archive",
    )
