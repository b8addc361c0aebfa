from __future__ import annotations


class CaptionRewriterError(Exception):
    """Base exception for the caption rewriter."""


class InputValidationError(CaptionRewriterError):
    """Raised for user input that blocks an action (missing key, empty batch, wrong file type)."""


class ParseError(CaptionRewriterError):
    """Raised when an uploaded file cannot be parsed."""


class SpreadsheetParseError(ParseError):
    pass


class PdfParseError(ParseError):
    pass


class ProviderError(CaptionRewriterError):
    """Raised when a rewrite provider rejects the input or the API call fails."""


class UnknownModelError(ProviderError):
    """Raised when no registered provider serves the requested model."""


class StorageError(CaptionRewriterError):
    """Raised when the history store cannot be written."""
