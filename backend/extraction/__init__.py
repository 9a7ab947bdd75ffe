"""Upload validation and document text extraction."""

from .extractor import (
    MAX_ATTACHMENT_BYTES,
    MAX_IMAGES,
    USE_LLAMAPARSE,
    AttachmentTooLargeError,
    DocumentExtractionError,
    ExtractedDocument,
    UploadedFile,
    extract_document,
    extract_documents,
    read_local_file,
    resolve_media_type,
    validate_upload,
)

__all__ = [
    'MAX_ATTACHMENT_BYTES',
    'MAX_IMAGES',
    'USE_LLAMAPARSE',
    'AttachmentTooLargeError',
    'DocumentExtractionError',
    'ExtractedDocument',
    'UploadedFile',
    'extract_document',
    'extract_documents',
    'read_local_file',
    'resolve_media_type',
    'validate_upload',
]
