"""Version information for DOCX Composer."""

__version__ = "0.1.0"
