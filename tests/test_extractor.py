import os
import subprocess

import pytest

from llm_classifier.extractor import PdfTextExtractor, normalize_text


@pytest.fixture
def pdftotext(tmp_path):
    """An executable placeholder for the pdftotext binary."""
    binary = tmp_path / "pdftotext"
    binary.write_text("#!/bin/sh\nexit 0\n")
    binary.chmod(0o755)
    return str(binary)


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "doc.pdf"
    path.write_bytes(b"%PDF-1.4")
    return str(path)


def _fake_run(output_text, returncode=0, stdout=""):
    """Build a subprocess.run replacement that writes ``output_text``."""
    calls = []

    def run(cmd, **kwargs):
        calls.append(cmd)
        if returncode == 0:
            with open(cmd[3], "w", encoding="utf-8") as handle:
                handle.write(output_text)
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout)

    run.calls = calls
    return run


def test_normalize_text_collapses_whitespace():
    assert normalize_text("  Invoice\n\n #123 \t total  ", 100) == "Invoice #123 total"


def test_normalize_text_truncates_with_marker():
    result = normalize_text("abcdefghij", 4)

    assert result == "abcd..."


def test_normalize_text_keeps_short_text():
    assert normalize_text("abc", 3) == "abc"


def test_missing_binary_is_not_ready(tmp_path):
    extractor = PdfTextExtractor(str(tmp_path / "nope"))

    assert extractor.is_ready() is False
    assert "not found" in extractor.error


def test_non_executable_binary_is_not_ready(tmp_path):
    binary = tmp_path / "pdftotext"
    binary.write_text("")
    binary.chmod(0o644)

    extractor = PdfTextExtractor(str(binary))

    assert extractor.is_ready() is False
    assert "not executable" in extractor.error


def test_default_binary_path(mocker):
    mocker.patch("llm_classifier.extractor.os.path.exists", return_value=False)

    extractor = PdfTextExtractor(None)

    assert extractor.pdftotext_path == "/usr/bin/pdftotext"


def test_not_ready_extractor_returns_none(tmp_path, pdf_file, mocker):
    run = mocker.patch("llm_classifier.extractor.subprocess.run")
    extractor = PdfTextExtractor(str(tmp_path / "nope"))

    assert extractor.extract_text(pdf_file) is None
    run.assert_not_called()


def test_extract_text_runs_pdftotext_and_cleans_up(pdftotext, pdf_file, mocker):
    fake = _fake_run("Invoice   #123\n\nTotal: 10 EUR\n")
    mocker.patch("llm_classifier.extractor.subprocess.run", side_effect=fake)

    text = PdfTextExtractor(pdftotext).extract_text(pdf_file, 4000)

    assert text == "Invoice #123 Total: 10 EUR"
    (cmd,) = fake.calls
    assert cmd[:3] == [pdftotext, "-layout", pdf_file]
    assert not os.path.exists(cmd[3])


def test_extract_text_truncates(pdftotext, pdf_file, mocker):
    mocker.patch(
        "llm_classifier.extractor.subprocess.run", side_effect=_fake_run("x" * 50)
    )

    text = PdfTextExtractor(pdftotext).extract_text(pdf_file, 10)

    assert text == "x" * 10 + "..."


def test_extract_text_missing_file(pdftotext, tmp_path):
    extractor = PdfTextExtractor(pdftotext)

    assert extractor.extract_text(str(tmp_path / "missing.pdf")) is None


def test_extract_text_tool_failure_removes_temp_file(pdftotext, pdf_file, mocker):
    fake = _fake_run("", returncode=1, stdout="Syntax Error: Couldn't read xref")
    mocker.patch("llm_classifier.extractor.subprocess.run", side_effect=fake)

    assert PdfTextExtractor(pdftotext).extract_text(pdf_file) is None
    (cmd,) = fake.calls
    assert not os.path.exists(cmd[3])


def test_extract_text_os_error(pdftotext, pdf_file, mocker):
    mocker.patch(
        "llm_classifier.extractor.subprocess.run",
        side_effect=PermissionError("denied"),
    )

    assert PdfTextExtractor(pdftotext).extract_text(pdf_file) is None


def test_extract_text_empty_output(pdftotext, pdf_file, mocker):
    mocker.patch(
        "llm_classifier.extractor.subprocess.run", side_effect=_fake_run(" \n\f \n")
    )

    assert PdfTextExtractor(pdftotext).extract_text(pdf_file) is None


def test_extract_text_unreadable_file(pdftotext, pdf_file, mocker):
    extractor = PdfTextExtractor(pdftotext)
    mocker.patch(
        "llm_classifier.extractor.os.access",
        side_effect=lambda path, mode: mode != os.R_OK,
    )
    run = mocker.patch("llm_classifier.extractor.subprocess.run")

    assert extractor.extract_text(pdf_file) is None
    run.assert_not_called()


def test_extract_text_undecodable_tool_output(tmp_path, pdf_file):
    binary = tmp_path / "pdftotext"
    binary.write_text("#!/bin/sh\nprintf '\\377\\376bad'\nexit 3\n")
    binary.chmod(0o755)

    assert PdfTextExtractor(str(binary)).extract_text(pdf_file) is None


def test_extract_text_temp_file_error(pdftotext, pdf_file, mocker):
    mocker.patch(
        "llm_classifier.extractor.tempfile.mkstemp", side_effect=OSError("no space")
    )
    run = mocker.patch("llm_classifier.extractor.subprocess.run")

    assert PdfTextExtractor(pdftotext).extract_text(pdf_file) is None
    run.assert_not_called()


def test_extract_text_output_not_readable(pdftotext, pdf_file, mocker):
    def run(cmd, **kwargs):
        os.remove(cmd[3])
        return subprocess.CompletedProcess(cmd, 0, stdout="")

    mocker.patch("llm_classifier.extractor.subprocess.run", side_effect=run)

    assert PdfTextExtractor(pdftotext).extract_text(pdf_file) is None
