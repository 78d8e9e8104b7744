"""Custom exceptions for DOCX Composer."""

from typing import Optional


class DocxComposerError(Exception):
    """Base exception for DOCX Composer errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class DocumentModelError(DocxComposerError):
    """Exception raised when an editor state cannot be read into a document."""

    pass


class ConfigurationError(DocxComposerError):
    """Exception raised for invalid page setup or export options."""

    pass


class LayoutError(DocxComposerError):
    """Exception raised during pagination."""

    pass


class MediaError(DocxComposerError):
    """Exception raised during image fetching or decoding."""

    pass


class ExportError(DocxComposerError):
    """Exception raised when the output document cannot be assembled or serialized."""

    pass
