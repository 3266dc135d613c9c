"""Decoding HTTP parameters and bodies by OpenAPI 3 rules, and error reporting."""

__version__ = "0.1.0"

__all__ = ["errors", "params", "body", "validation_error", "kit"]