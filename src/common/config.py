"""
Configuration module for the LLM document classifier.

This module centralizes the loading and validation of all configuration
parameters. The host hands over its extension settings as a flat mapping;
the command-line entry point builds the same mapping from environment
variables. Either way, a single `Settings` object holds every option and is
treated as read-only for the duration of a classification run.
"""

import os
from collections.abc import Mapping
from typing import Any, Literal

EXTENSION_NAME = "llmclassifier"

DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_TITLE_LENGTH = 100
DEFAULT_MAX_TEXT_LENGTH = 4000

# Environment variable -> settings key, used by ``Settings.from_env``.
ENV_KEYS = {
    "LLM_ENABLED": "llm_enabled",
    "LLM_ENDPOINT": "llm_endpoint",
    "LLM_API_KEY": "llm_api_key",
    "LLM_MODEL": "llm_model",
    "LLM_API_VERSION": "llm_api_version",
    "LLM_LIMIT_FOLDER": "limit_folder",
    "LLM_DEFAULT_CATEGORY": "default_category",
    "LLM_MAX_TITLE_LENGTH": "max_title_length",
    "LLM_MAX_TEXT_LENGTH": "max_text_length",
    "LLM_RESTRICT_KEYWORDS": "restrict_keywords",
    "LLM_ADDITIONAL_PROMPT": "additional_prompt",
    "PDFTOTEXT_PATH": "pdftotext_path",
    "LOG_LEVEL": "log_level",
    "LOG_FORMAT": "log_format",
}

_FALSE_STRINGS = {"", "0", "false", "no", "off"}


class Settings:
    """
    A container for all configuration settings of the classifier extension.

    Values are read once from the supplied mapping. Optional settings fall
    back to defaults; malformed numeric values raise ``ValueError``.
    """

    # --- Activation ---
    LLM_ENABLED: bool

    # --- Chat Completion Endpoint ---
    LLM_ENDPOINT: str
    LLM_API_KEY: str
    LLM_MODEL: str
    LLM_API_VERSION: str | None

    # --- Document Scope ---
    LIMIT_FOLDER_ID: int
    DEFAULT_CATEGORY_ID: int

    # --- Prompt Configuration ---
    MAX_TITLE_LENGTH: int
    MAX_TEXT_LENGTH: int
    RESTRICT_KEYWORDS: bool
    ADDITIONAL_PROMPT: str

    # --- Text Extraction ---
    PDFTOTEXT_PATH: str | None

    # --- Logging ---
    LOG_LEVEL: str
    LOG_FORMAT: Literal["console", "json"]

    # --- Constants ---
    REQUEST_TIMEOUT: int = 120

    def __init__(self, values: Mapping[str, Any] | None = None):
        """
        Loads settings from the extension's settings mapping.
        """
        values = dict(values or {})

        # --- Activation ---
        self.LLM_ENABLED = self._get_bool(values, "llm_enabled")

        # --- Chat Completion Endpoint ---
        self.LLM_ENDPOINT = self._get_str(values, "llm_endpoint").rstrip("/")
        self.LLM_API_KEY = self._get_str(values, "llm_api_key")
        self.LLM_MODEL = self._get_str(values, "llm_model") or DEFAULT_MODEL
        self.LLM_API_VERSION = self._get_str(values, "llm_api_version") or None

        # --- Document Scope ---
        self.LIMIT_FOLDER_ID = self._get_id(values, "limit_folder")
        self.DEFAULT_CATEGORY_ID = self._get_id(values, "default_category")

        # --- Prompt Configuration ---
        self.MAX_TITLE_LENGTH = self._get_positive_int(
            values, "max_title_length", DEFAULT_MAX_TITLE_LENGTH
        )
        self.MAX_TEXT_LENGTH = self._get_positive_int(
            values, "max_text_length", DEFAULT_MAX_TEXT_LENGTH
        )
        self.RESTRICT_KEYWORDS = self._get_bool(values, "restrict_keywords")
        self.ADDITIONAL_PROMPT = self._get_str(values, "additional_prompt").strip()

        # --- Text Extraction ---
        self.PDFTOTEXT_PATH = self._get_str(values, "pdftotext_path") or None

        # --- Logging ---
        self.LOG_LEVEL = (self._get_str(values, "log_level") or "INFO").upper()
        self.LOG_FORMAT = (self._get_str(values, "log_format") or "console").lower()
        if self.LOG_FORMAT not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")

    @classmethod
    def from_host(
        cls, host_settings: Any, extension: str = EXTENSION_NAME
    ) -> "Settings":
        """
        Build settings from the host's settings object.

        The host exposes extension settings either as an ``extensions``
        attribute or as a plain mapping keyed by extension name.
        """
        if host_settings is None:
            return cls()
        extensions = getattr(host_settings, "extensions", host_settings)
        if not isinstance(extensions, Mapping):
            return cls()
        return cls(extensions.get(extension) or {})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``LLM_*`` environment variables."""
        environ = os.environ if environ is None else environ
        values = {
            key: environ[var_name]
            for var_name, key in ENV_KEYS.items()
            if var_name in environ
        }
        return cls(values)

    @property
    def is_enabled(self) -> bool:
        """True when the extension is switched on and has an endpoint."""
        return self.LLM_ENABLED and bool(self.LLM_ENDPOINT)

    @staticmethod
    def _get_str(values: Mapping[str, Any], key: str) -> str:
        value = values.get(key)
        if value is None:
            return ""
        return str(value).strip()

    @staticmethod
    def _get_bool(values: Mapping[str, Any], key: str) -> bool:
        value = values.get(key)
        if isinstance(value, str):
            return value.strip().lower() not in _FALSE_STRINGS
        return bool(value)

    @staticmethod
    def _get_id(values: Mapping[str, Any], key: str) -> int:
        """
        Read an object id. Select widgets deliver a list; the first entry wins.
        """
        value = values.get(key, 0)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else 0
        if value is None or value == "":
            return 0
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Setting '{key}' must be an integer id, got {value!r}.")

    @staticmethod
    def _get_positive_int(values: Mapping[str, Any], key: str, default: int) -> int:
        value = values.get(key)
        if value is None or value == "":
            return default
        try:
            number = int(value)
        except (TypeError, ValueError):
            return default
        return number if number > 0 else default
