"""
Tests for recovering JSON from raw model output.
"""

import pytest

from llm.errors import RAW_EXCERPT_LIMIT, MalformedGenerationError, ValidationError
from llm.json_extract import extract_array, extract_object, parse_json_loosely, strip_code_fences


class TestStripCodeFences:
    """Fence removal is anchored at the start and end of the text."""

    def test_json_tagged_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self):
        assert strip_code_fences('```\n[1, 2]\n```') == '[1, 2]'

    def test_uppercase_tag(self):
        assert strip_code_fences('```JSON\n{}\n```') == '{}'

    def test_no_fence_is_untouched(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestParseJsonLoosely:
    """The three recovery attempts run in order."""

    def test_direct_parse(self):
        assert parse_json_loosely('{"root": {"label": "A"}}') == {"root": {"label": "A"}}

    def test_fenced_block(self):
        raw = '```json\n{"root": {"label": "A"}}\n```'
        assert parse_json_loosely(raw) == {"root": {"label": "A"}}

    def test_surrounding_prose(self):
        raw = 'Sure! Here is the map: {"root": {"label": "A"}} Let me know if you need more.'
        assert parse_json_loosely(raw) == {"root": {"label": "A"}}

    def test_prose_and_fence_combined(self):
        raw = 'Here you go:\n```json\n{"x": [1, 2]}\n```'
        assert parse_json_loosely(raw) == {"x": [1, 2]}

    def test_array_container(self):
        raw = 'Cards:\n[{"question": "Q", "answer": "A"}]\nDone.'
        assert parse_json_loosely(raw, container="array") == [{"question": "Q", "answer": "A"}]

    def test_no_brackets_fails(self):
        with pytest.raises(MalformedGenerationError):
            parse_json_loosely("I could not create a mind map for this text.")

    def test_unbalanced_fails(self):
        with pytest.raises(MalformedGenerationError):
            parse_json_loosely('{"root": {"label": "A"')

    def test_empty_response_fails(self):
        with pytest.raises(MalformedGenerationError):
            parse_json_loosely("   ")

    def test_unknown_container(self):
        with pytest.raises(ValueError):
            parse_json_loosely("{}", container="tuple")

    def test_raw_excerpt_is_truncated(self):
        raw = "x" * (RAW_EXCERPT_LIMIT + 500)
        with pytest.raises(MalformedGenerationError) as exc_info:
            parse_json_loosely(raw)
        assert len(exc_info.value.raw_excerpt) == RAW_EXCERPT_LIMIT


class TestExtractHelpers:
    """Shape checks after parsing."""

    def test_object_rejects_array(self):
        with pytest.raises(ValidationError):
            extract_object('[1, 2, 3]')

    def test_validation_error_is_malformed_generation(self):
        with pytest.raises(MalformedGenerationError):
            extract_object('"just a string"')

    def test_array_unwraps_key(self):
        raw = '{"flashcards": [{"question": "Q", "answer": "A"}]}'
        assert extract_array(raw, key="flashcards") == [{"question": "Q", "answer": "A"}]

    def test_array_without_key_rejects_object(self):
        with pytest.raises(ValidationError):
            extract_array('{"flashcards": []}')

    def test_array_garbage_with_key_still_fails(self):
        with pytest.raises(MalformedGenerationError):
            extract_array("no json here", key="flashcards")
