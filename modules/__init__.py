"""Helper modules for the Print Shop Web application."""

__all__ = [
    "estimator",
    "pdf_analyzer",
    "pdf_documents",
    "qr_codes",
    "validation",
]
