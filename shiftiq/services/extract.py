
import io
from typing import Tuple
from pdfminer.high_level import extract_text as pdf_extract
from docx import Document as DocxDocument
import chardet

def extract_text(filename: str, content: bytes) -> Tuple[str, str]:
    """Return (text, file_type) for an uploaded file."""
    name = (filename or "").lower()
    if name.endswith(".pdf"):
        return pdf_extract(io.BytesIO(content)), "pdf"
    if name.endswith(".docx"):
        doc = DocxDocument(io.BytesIO(content))
        return "\n".join(p.text for p in doc.paragraphs), "docx"
    enc = chardet.detect(content).get("encoding") or "utf-8"
    try:
        return content.decode(enc, errors="ignore"), "text"
    except LookupError:
        return content.decode("utf-8", errors="ignore"), "text"
