"""Text extraction from uploaded file content."""
from .pdf_loader import PDFLoader
from .docx_loader import DocxLoader
from .text_loader import TextLoader
from .composite_extractor import CompositeTextExtractor

__all__ = ["PDFLoader", "DocxLoader", "TextLoader", "CompositeTextExtractor"]
