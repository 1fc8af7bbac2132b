import logging
from pathlib import Path

from docsim.core.errors import PipelineError, PipelineStep, ValidationError

from .docx_loader import DocxLoader
from .pdf_loader import PDFLoader
from .text_loader import TextLoader

logger = logging.getLogger(__name__)


class CompositeTextExtractor:
    """Picks a loader by file extension and extracts text from bytes."""

    def __init__(self):
        self._loaders = [
            PDFLoader(),
            DocxLoader(),
            TextLoader(),
        ]

    def supports(self, file_name: str) -> bool:
        suffix = Path(file_name).suffix.lower()
        return any(suffix in loader.EXTENSIONS for loader in self._loaders)

    def extract_text(self, data: bytes, file_name: str) -> str:
        suffix = Path(file_name).suffix.lower()
        for loader in self._loaders:
            if suffix in loader.EXTENSIONS:
                try:
                    return loader.load(data)
                except Exception as e:
                    logger.error(f"Failed to extract text from {file_name}: {e}")
                    raise PipelineError(
                        f"Failed to extract text from {file_name}: {e}",
                        step=PipelineStep.EXTRACT,
                        cause=e,
                    ) from e

        raise ValidationError(
            f"Unsupported file type: {suffix or file_name}", step=PipelineStep.EXTRACT
        )
