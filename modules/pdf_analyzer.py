"""Lightweight PDF analyzer for prefilling artwork dimensions."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Dict, Any, Union

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from logging_config import get_logger


logger = get_logger(__name__)

POINTS_PER_INCH = 72


class PDFAnalyzer:
    """Extract page count and first-page size, resilient to malformed PDFs."""

    def analyze(self, source: Union[str, Path, bytes]) -> Dict[str, Any]:
        """
        Args:
            source: Path to a PDF, or the uploaded bytes

        Returns:
            pages, size_kb, page_dimensions (inches) and, when readable,
            suggested width/length for the job form
        """
        if isinstance(source, (bytes, bytearray)):
            stream = BytesIO(source)
            size = len(source)
            label = "<upload>"
        else:
            path = Path(source)
            stream = str(path)
            size = path.stat().st_size if path.exists() else 0
            label = str(path)

        info: Dict[str, Any] = {
            "source": label,
            "pages": 0,
            "size_kb": round(size / 1024, 2),
            "page_dimensions": [],
        }

        try:
            reader = PdfReader(stream)
            info["pages"] = len(reader.pages)
            if reader.pages:
                page = reader.pages[0]
                width = round(float(page.mediabox.width) / POINTS_PER_INCH, 2)
                height = round(float(page.mediabox.height) / POINTS_PER_INCH, 2)
                info["page_dimensions"].append({"width_in": width, "height_in": height})
                info["suggested_width"] = width
                info["suggested_length"] = height
        except (PdfReadError, OSError, ValueError) as exc:
            logger.warning(f"PDF analysis failed for {label}: {exc}")
            info["error"] = f"PDF analysis failed: {exc}"

        return info
