"""
Classification errors.

Each failure mode of a classification run has its own exception type. They
are raised where the failure happens and caught at the public boundary of
the component, which logs them and reports "no result". None of them ever
reaches the host's upload transaction.
"""


class ClassifierError(Exception):
    """Base class for all classification failures."""


class ConfigurationError(ClassifierError):
    """The extension is disabled or its endpoint is missing or invalid."""


class PreconditionError(ClassifierError):
    """The document does not qualify (wrong type, missing file, out of scope)."""


class ExternalToolError(ClassifierError):
    """The text extraction tool is unavailable or failed."""


class TransportError(ClassifierError):
    """The completion request could not be delivered."""


class ProtocolError(ClassifierError):
    """The provider answered, but not with a usable classification."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
