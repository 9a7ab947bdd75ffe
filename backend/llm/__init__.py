"""LLM access: content generator, prompts and the raw-text-to-JSON gate."""

from .errors import (
    GenerationError,
    GeneratorUnavailableError,
    MalformedGenerationError,
    ValidationError,
)
from .json_extract import extract_array, extract_object, parse_json_loosely, strip_code_fences
from .generator import Attachment, ContentGenerator
from . import prompts

__all__ = [
    'GenerationError',
    'GeneratorUnavailableError',
    'MalformedGenerationError',
    'ValidationError',
    'extract_array',
    'extract_object',
    'parse_json_loosely',
    'strip_code_fences',
    'Attachment',
    'ContentGenerator',
    'prompts',
]
