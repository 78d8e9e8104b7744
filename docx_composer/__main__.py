"""
Entry point for running docx_composer as a module.

Usage:
    python -m docx_composer export state.json --output document.docx
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
