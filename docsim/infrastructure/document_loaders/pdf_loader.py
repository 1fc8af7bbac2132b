import io

from pypdf import PdfReader


class PDFLoader:

    EXTENSIONS = {".pdf"}

    def load(self, data: bytes) -> str:
        reader = PdfReader(io.BytesIO(data))
        text_parts = []
        for page in reader.pages:
            text = page.extract_text()
            if text:
                text_parts.append(text.strip())
        return "\n\n".join(text_parts)
