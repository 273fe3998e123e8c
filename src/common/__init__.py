"""
Common building blocks for the classifier extension.

This package contains reusable, domain-agnostic code:

- configuration loading (host settings mapping or environment variables)
- logging configuration and host logger adaptation
"""
