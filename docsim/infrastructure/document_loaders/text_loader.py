class TextLoader:

    EXTENSIONS = {".txt", ".md", ".markdown"}

    def load(self, data: bytes) -> str:
        return data.decode("utf-8-sig")
