"""
Pytest configuration for DOCX Composer
"""

import base64
import io
import logging
import sys
from pathlib import Path

import pytest
from PIL import Image

from tests.builders import (
    cell,
    heading,
    list_item,
    list_node,
    paragraph,
    row,
    state,
    table,
    text,
)


@pytest.fixture(autouse=True)
def configure_logging():
    """Configure logging for tests to avoid file handler issues."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    # Console-only logging; warnings and errors only
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter('%(name)s - %(levelname)s - %(message)s'))

    root_logger.addHandler(console_handler)
    root_logger.setLevel(logging.WARNING)

    yield

    root_logger.handlers.clear()


@pytest.fixture
def temp_dir(tmp_path):
    """Temporary directory for output files."""
    return Path(tmp_path)


def _image_bytes(fmt: str, size=(40, 20), color=(200, 30, 30)) -> bytes:
    output = io.BytesIO()
    Image.new("RGB", size, color).save(output, format=fmt)
    return output.getvalue()


@pytest.fixture
def png_bytes():
    """40x20 red PNG."""
    return _image_bytes("PNG")


@pytest.fixture
def jpeg_bytes():
    """40x20 red JPEG."""
    return _image_bytes("JPEG")


@pytest.fixture
def png_data_uri(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def empty_state():
    return state()


@pytest.fixture
def mixed_state():
    """A heading, a two-item list and a 2x2 table, in that order."""
    return state(
        heading("h1", text("Quarterly report")),
        list_node(
            "number",
            list_item(text("First item")),
            list_item(text("Second item", fmt=1)),
        ),
        table(
            row(cell(paragraph(text("A1")), header=1), cell(paragraph(text("B1")), header=1)),
            row(cell(paragraph(text("A2"))), cell(paragraph(text("B2")), background="#FFEECC")),
        ),
    )
