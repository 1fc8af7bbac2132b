import io

from docx import Document


class DocxLoader:

    EXTENSIONS = {".docx"}

    def load(self, data: bytes) -> str:
        doc = Document(io.BytesIO(data))
        paragraphs = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
        return "\n\n".join(paragraphs)
