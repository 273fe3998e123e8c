import json
import sys

import pytest
import structlog

from llm_classifier import main as main_module
from llm_classifier.client import ClassificationResult


@pytest.fixture(autouse=True)
def _restore_logging(mocker):
    mocker.patch.object(main_module, "configure_logging")
    structlog.configure(logger_factory=structlog.PrintLoggerFactory(sys.stderr))
    yield
    structlog.reset_defaults()


@pytest.fixture
def env(monkeypatch, tmp_path):
    binary = tmp_path / "pdftotext"
    binary.write_text("#!/bin/sh\nexit 0\n")
    binary.chmod(0o755)
    monkeypatch.setenv("LLM_ENABLED", "1")
    monkeypatch.setenv("LLM_ENDPOINT", "https://api.openai.com/v1")
    monkeypatch.setenv("PDFTOTEXT_PATH", str(binary))


@pytest.fixture
def pdf_path(tmp_path):
    path = tmp_path / "scan.pdf"
    path.write_bytes(b"%PDF-1.4")
    return str(path)


def test_main_disabled_returns_config_error(monkeypatch, pdf_path):
    monkeypatch.delenv("LLM_ENABLED", raising=False)
    monkeypatch.delenv("LLM_ENDPOINT", raising=False)

    assert main_module.main([pdf_path]) == main_module.EXIT_CONFIG_ERROR


def test_main_invalid_settings(monkeypatch, env, pdf_path):
    monkeypatch.setenv("LLM_LIMIT_FOLDER", "inbox")

    assert main_module.main([pdf_path]) == main_module.EXIT_CONFIG_ERROR


def test_main_prints_classification(env, pdf_path, mocker, capsys):
    classifier = mocker.patch.object(main_module, "DocumentClassifier").return_value
    classifier.classify_document.return_value = ClassificationResult(
        name="Invoice 123", categories=["Invoices"], keywords=["Invoice"]
    )

    exit_code = main_module.main([pdf_path, "--category", "Invoices"])

    assert exit_code == main_module.EXIT_OK
    output = json.loads(capsys.readouterr().out)
    assert output == {
        "classification": {
            "name": "Invoice 123",
            "categories": ["Invoices"],
            "keywords": ["Invoice"],
        }
    }
    classifier.apply_classification.assert_not_called()
    classifier.close.assert_called_once()
    settings, dms = main_module.DocumentClassifier.call_args.args
    assert [c.get_name() for c in dms.get_document_categories()] == ["Invoices"]


def test_main_apply_updates_document(env, pdf_path, mocker, capsys):
    result = ClassificationResult(
        name="Invoice 123", categories=["invoices"], keywords=["Invoice"]
    )
    mocker.patch(
        "llm_classifier.pipeline.DocumentClassifier.classify_document",
        return_value=result,
    )

    exit_code = main_module.main(
        [pdf_path, "--category", "Invoices", "--keyword", "Invoice", "--apply"]
    )

    assert exit_code == main_module.EXIT_OK
    output = json.loads(capsys.readouterr().out)
    assert output["applied"] is True
    assert output["document"] == {
        "name": "Invoice 123",
        "keywords": "Invoice",
        "categories": ["Invoices"],
    }


def test_main_without_result(env, pdf_path, mocker, capsys):
    classifier = mocker.patch.object(main_module, "DocumentClassifier").return_value
    classifier.classify_document.return_value = None

    assert main_module.main([pdf_path]) == main_module.EXIT_NO_RESULT
    assert capsys.readouterr().out == ""
