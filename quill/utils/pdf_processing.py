"""
PDF processing utilities for turning compiled snippets into chat-ready images.

Helper functions:
    page_count: Quick page count without rasterizing.
    pdf_to_png: Rasterize the first page of a PDF to PNG bytes.
"""

import io
from pathlib import Path
from typing import Optional, Union

import pdfplumber
from PyPDF2 import PdfReader

DEFAULT_RESOLUTION = 300


def page_count(pdf_path: Path) -> Optional[int]:
    """Get page count from PDF, or None if unreadable."""
    try:
        reader = PdfReader(str(pdf_path))
        return len(reader.pages)
    except Exception:
        return None


def pdf_to_png(pdf_path: Union[str, Path], resolution: int = DEFAULT_RESOLUTION) -> bytes:
    """
    Rasterize the first page of a PDF to PNG bytes.

    Args:
        pdf_path: Path to PDF file
        resolution: Rendering density in dots per inch (default: 300)

    Returns:
        PNG-encoded image bytes

    Raises:
        FileNotFoundError: If the PDF does not exist
        ValueError: If the PDF has no pages
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF not found: {pdf_path}")

    with pdfplumber.open(pdf_path) as pdf:
        if not pdf.pages:
            raise ValueError(f"PDF has no pages: {pdf_path}")
        page_image = pdf.pages[0].to_image(resolution=resolution)
        buffer = io.BytesIO()
        page_image.original.save(buffer, format="PNG")

    return buffer.getvalue()
