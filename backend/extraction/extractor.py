# Upload validation and text extraction for summarization.
# PDFs are parsed with Docling by default; set USE_LLAMAPARSE=TRUE to use LlamaParse.
# Images are not parsed here: they travel to the model as inline attachments.

import io
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from dotenv import load_dotenv

from llm.generator import Attachment

# Load environment variables
load_dotenv()

# Configuration from environment
USE_LLAMAPARSE = os.getenv("USE_LLAMAPARSE", "FALSE").upper() == "TRUE"
MAX_IMAGES = int(os.getenv("MAX_IMAGES", "6"))
MAX_ATTACHMENT_BYTES = int(os.getenv("MAX_ATTACHMENT_BYTES", str(int(3.5 * 1024 * 1024))))

# Below this many characters a PDF is treated as having no usable text layer
MIN_PDF_TEXT_CHARS = 80

PDF_TYPE = "application/pdf"
TEXT_TYPES = {"text/plain", "text/markdown"}
IMAGE_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp", "image/heic", "image/heif", "image/gif"}
EXTENSION_TYPES = {
    ".pdf": PDF_TYPE,
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heic",
    ".gif": "image/gif",
}


class DocumentExtractionError(ValueError):
    """The upload could not be turned into text or attachments."""


class AttachmentTooLargeError(DocumentExtractionError):
    """A single upload exceeds the per-attachment byte limit."""


@dataclass
class UploadedFile:
    filename: str
    content_type: str
    data: bytes


@dataclass
class ExtractedDocument:
    """Text plus inline attachments ready for the content generator."""

    text: str = ""
    attachments: List[Attachment] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip() and not self.attachments


def resolve_media_type(filename: Optional[str], content_type: Optional[str]) -> str:
    """Pick a supported media type from the declared type, falling back to the extension."""
    declared = (content_type or "").split(";")[0].strip().lower()
    if declared in ("image/heif", "image/heic"):
        return "image/heic"
    if declared == "image/jpg":
        return "image/jpeg"
    if declared == PDF_TYPE or declared in TEXT_TYPES or declared in IMAGE_TYPES:
        return declared

    extension = Path(filename or "").suffix.lower()
    if extension in EXTENSION_TYPES:
        return EXTENSION_TYPES[extension]

    raise DocumentExtractionError(
        f"Invalid file type. Received: content_type={content_type}, extension={extension}. "
        "Only PDF, image, TXT and MD files are allowed."
    )


def validate_upload(filename: Optional[str], content_type: Optional[str], size: int) -> str:
    """Check type and size of one upload and return its normalized media type."""
    media_type = resolve_media_type(filename, content_type)
    if size <= 0:
        raise DocumentExtractionError(f"File '{filename}' is empty.")
    if media_type != PDF_TYPE and media_type not in TEXT_TYPES and size > MAX_ATTACHMENT_BYTES:
        raise AttachmentTooLargeError(
            "Image is too large. Take the photo at medium quality or upload a smaller one."
        )
    return media_type


def parse_pdf_with_llamaparse(filename: str, data: bytes) -> str:
    """Parse PDF using LlamaParse and return markdown text."""
    from llama_parse import LlamaParse

    parser = LlamaParse(result_type="markdown")
    docs = parser.load_data(io.BytesIO(data), extra_info={"file_name": filename})
    return "\n\n".join(d.text for d in docs)


def parse_pdf_with_docling(filename: str, data: bytes) -> str:
    """Parse PDF using Docling and return markdown text."""
    from docling.datamodel.base_models import DocumentStream
    from docling.document_converter import DocumentConverter
    from docling.exceptions import ConversionError

    converter = DocumentConverter()
    source = DocumentStream(name=filename or "document.pdf", stream=io.BytesIO(data))
    try:
        doc = converter.convert(source).document
    except (ConversionError, OSError) as e:
        print(f"[extraction] Docling could not convert {filename}: {e}")
        raise DocumentExtractionError(
            "Could not read the PDF. Upload a PDF with text or a clear image."
        ) from e
    return doc.export_to_markdown()


def parse_pdf_to_text(filename: str, data: bytes) -> str:
    if USE_LLAMAPARSE:
        print(f"[extraction] Parsing {filename} with LlamaParse...")
        return parse_pdf_with_llamaparse(filename, data)
    print(f"[extraction] Parsing {filename} with Docling...")
    return parse_pdf_with_docling(filename, data)


def has_usable_text(text: str) -> bool:
    return len(re.sub(r"\s+", " ", text or "").strip()) > MIN_PDF_TEXT_CHARS


def extract_documents(files: Sequence[UploadedFile], text_chunks: Sequence[str] = ()) -> ExtractedDocument:
    """
    Turn uploads into generator input:
      - PDFs -> parsed text (only the first PDF is used)
      - images -> inline attachments (at most MAX_IMAGES)
      - text/markdown files and raw text chunks -> text
    The combined text is passed on whole; oversized sources are summarized in chunks.
    """
    result = ExtractedDocument()
    texts: List[str] = [str(t) for t in text_chunks if t and str(t).strip()]
    has_pdf = False

    for upload in files:
        media_type = validate_upload(upload.filename, upload.content_type, len(upload.data))

        if media_type == PDF_TYPE:
            if has_pdf:
                print(f"[extraction] Skipping extra PDF {upload.filename}")
                continue
            has_pdf = True
            pdf_text = parse_pdf_to_text(upload.filename, upload.data)
            if not has_usable_text(pdf_text):
                raise DocumentExtractionError(
                    "Could not extract content from the file. Upload a PDF with text or a clear image."
                )
            texts.append(pdf_text)
        elif media_type in TEXT_TYPES:
            decoded = upload.data.decode("utf-8", errors="replace").strip()
            if not decoded:
                raise DocumentExtractionError(f"File '{upload.filename}' is empty.")
            texts.append(decoded)
        else:
            if len(result.attachments) >= MAX_IMAGES:
                print(f"[extraction] Image limit reached, skipping {upload.filename}")
                continue
            result.attachments.append(Attachment(media_type=media_type, data=upload.data, name=upload.filename))
        result.sources.append(upload.filename)

    result.text = "\n\n".join(texts)
    if result.is_empty:
        raise DocumentExtractionError("Send at least one file (PDF/image) or some text.")
    return result


def extract_document(filename: str, content_type: str, data: bytes) -> ExtractedDocument:
    """Single-file convenience wrapper around :func:`extract_documents`."""
    return extract_documents([UploadedFile(filename=filename, content_type=content_type, data=data)])


def read_local_file(path: str) -> Tuple[str, str, bytes]:
    """Load a file from disk as ``(filename, media_type, bytes)`` for the CLI."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File '{path}' does not exist")
    media_type = resolve_media_type(file_path.name, None)
    return file_path.name, media_type, file_path.read_bytes()
