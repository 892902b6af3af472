"""
Extraction Package

Turns remote PDF documents into text through an ordered chain of extraction
tiers, with page-range splitting for oversized inputs and a URL-keyed cache.
"""

from .cache import TextCache
from .pdf_services import (
    ConversionService,
    PdfServicesClient,
    resolve_pdf_services_credentials,
)
from .pipeline import Extractor
from .service import ExtractionService
from .splitter import DocumentSplitter, PageRange, plan_parts

__all__ = [
    "TextCache",
    "ConversionService",
    "PdfServicesClient",
    "resolve_pdf_services_credentials",
    "Extractor",
    "ExtractionService",
    "DocumentSplitter",
    "PageRange",
    "plan_parts",
]
