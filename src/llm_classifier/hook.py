"""
Document Upload Hook
====================

The host calls `AddDocumentHook.post_add_document` once for every document it
has stored. The hook wires the host's DMS, settings and logger into a
`DocumentClassifier` and runs it inline.

Classification is best-effort: every abort path logs and returns ``None``, and
no exception escapes to the host, so the upload itself always succeeds.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any

from common.config import EXTENSION_NAME, Settings
from common.logging_config import bind_host_logger
from .client import ClassificationResult
from .errors import ConfigurationError, PreconditionError
from .host import Document
from .pipeline import DocumentClassifier

RESULT_SESSION_KEY = f"{EXTENSION_NAME}_result"


def store_result(
    session: MutableMapping[str, Any] | None,
    doc_id: int,
    result: ClassificationResult,
) -> None:
    """Remember the latest result per document for display in the UI."""
    if session is None:
        return
    session.setdefault(RESULT_SESSION_KEY, {})[doc_id] = result


class AddDocumentHook:
    """Runs classification after a document has been added."""

    def __init__(self, classifier_factory=DocumentClassifier):
        self.classifier_factory = classifier_factory

    def post_add_document(
        self,
        params: Mapping[str, Any],
        document: Document,
        session: MutableMapping[str, Any] | None = None,
    ) -> ClassificationResult | None:
        """
        Classify an uploaded document and apply the result.

        ``params`` carries the host handles ``dms``, ``settings`` and the
        optional ``logger``. The result is returned to the caller and, when a
        ``session`` mapping is given, stored there keyed by document id.
        """
        log = bind_host_logger(params.get("logger"))
        doc_id = document.get_id()
        log.info("Document uploaded", doc_id=doc_id)

        classifier = None
        try:
            dms = params.get("dms")
            if dms is None:
                log.error("DMS not available", doc_id=doc_id)
                return None

            try:
                settings = Settings.from_host(params.get("settings"))
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
            classifier = self.classifier_factory(settings, dms, logger=log)

            if not classifier.is_enabled():
                raise ConfigurationError("Extension disabled")
            if not classifier.is_document_in_allowed_folder(document):
                raise PreconditionError("Document outside allowed folder")

            result = classifier.classify_document(document)
            if result is None:
                return None

            applied = classifier.apply_classification(document, result)
            log.info(
                "Classification applied" if applied else "Classification made no changes",
                doc_id=doc_id,
            )
            store_result(session, doc_id, result)
            return result
        except (ConfigurationError, PreconditionError) as e:
            log.info("Classification skipped", doc_id=doc_id, reason=str(e))
            return None
        except Exception:
            log.exception("Classification failed", doc_id=doc_id)
            return None
        finally:
            if classifier is not None:
                classifier.close()


def post_add_document(
    params: Mapping[str, Any],
    document: Document,
    session: MutableMapping[str, Any] | None = None,
) -> ClassificationResult | None:
    """Module-level entry point for hosts that register plain callables."""
    return AddDocumentHook().post_add_document(params, document, session)
