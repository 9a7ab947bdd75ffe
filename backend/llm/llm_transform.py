"""Generation transforms: summary, concept map, mind map and flashcards.

Every structured result goes through the same gate: raw generator text ->
``llm.json_extract`` -> validation into a typed value. Nothing half-parsed is
ever returned.
"""

import os
import unicodedata
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from dotenv import load_dotenv

from flashcards.deck import EmptyDeckError, Flashcard, coerce_pairs
from mindmap.model import HierarchyDocument, extract_hierarchy, validate_hierarchy

from . import prompts
from .errors import MalformedGenerationError, ValidationError
from .fallback_llm import TOKEN_LIMIT, count_tokens, summarize_large_text_chunked
from .generator import Attachment, ContentGenerator
from .json_extract import extract_array, extract_object

# Load environment variables
load_dotenv()

# Configuration from environment
OUTPUT_LANGUAGE = os.getenv("OUTPUT_LANGUAGE", "English")
MAX_SUMMARY_INPUT_CHARS = int(os.getenv("MAX_SUMMARY_INPUT_CHARS", "2000000"))
MAX_CONCEPT_MAP_CHARS = int(os.getenv("MAX_CONCEPT_MAP_CHARS", "20000"))
MAX_MINDMAP_CHARS = int(os.getenv("MAX_MINDMAP_CHARS", "10000"))
MINDMAP_MAX_LEVELS = int(os.getenv("MINDMAP_MAX_LEVELS", "3"))
MINDMAP_CHILDREN_PER_NODE = int(os.getenv("MINDMAP_CHILDREN_PER_NODE", "5"))
SUMMARY_TITLE_WORDS = 6


class SummaryType(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    DETAILED = "detailed"
    BULLET = "bullet"


class PresentationType(str, Enum):
    EXTENSIVE = "extensive"
    COMPLETE = "complete"
    KIDS = "kids"


PRESENTATION_RULES: Dict[PresentationType, Dict[str, Any]] = {
    PresentationType.EXTENSIVE: {
        "style_title": "Extensive (in detail)",
        "sections_max": 6,
        "subsections_max": 4,
        "max_depth": 3,
        "content_length": "2-3 sentences per section or sub-section",
        "extra": "Clear language, technical where necessary.",
    },
    PresentationType.COMPLETE: {
        "style_title": "Complete (+50% more detail than Extensive)",
        "sections_max": 6,
        "subsections_max": 5,
        "max_depth": 4,
        "content_length": "3-4 sentences per section or sub-section",
        "extra": "Expand causes, consequences and examples.",
    },
    PresentationType.KIDS: {
        "style_title": "For kids",
        "sections_max": 6,
        "subsections_max": 3,
        "max_depth": 3,
        "content_length": "1-2 simple sentences per section or sub-section",
        "extra": "Very simple, positive language with kid-friendly emojis.",
    },
}


def _fold(value: str) -> str:
    """Lowercase and strip accents so 'Viñetas' matches 'vinet'."""
    decomposed = unicodedata.normalize("NFD", str(value or ""))
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower()


def normalize_summary_type(value: Any) -> SummaryType:
    """Map user-facing names and aliases onto a summary type (default: short)."""
    folded = _fold(value.value if isinstance(value, Enum) else value)
    if any(word in folded for word in ("bullet", "punto", "vinet")):
        return SummaryType.BULLET
    if any(word in folded for word in ("detail", "detall", "long", "largo", "extenso")):
        return SummaryType.DETAILED
    if any(word in folded for word in ("medium", "medio")):
        return SummaryType.MEDIUM
    return SummaryType.SHORT


def normalize_presentation_type(value: Any) -> PresentationType:
    folded = _fold(value.value if isinstance(value, Enum) else value)
    if "complet" in folded:
        return PresentationType.COMPLETE
    if any(word in folded for word in ("kid", "nino", "child")):
        return PresentationType.KIDS
    return PresentationType.EXTENSIVE


def summary_title(summary: str) -> str:
    """Working title for a summary: its first few words."""
    return " ".join((summary or "").split()[:SUMMARY_TITLE_WORDS])


def _summary_style(summary_type: SummaryType) -> str:
    return prompts.SUMMARY_BASE_INSTRUCTION.format(
        language=OUTPUT_LANGUAGE, summary_type=summary_type.value
    ) + prompts.SUMMARY_STYLE[summary_type.value]


async def summarize_content(
    text: str,
    summary_type: Any,
    generator: ContentGenerator,
    attachments: Sequence[Attachment] = (),
) -> str:
    """Summarize extracted text and/or inline attachments."""
    kind = normalize_summary_type(summary_type)
    text = (text or "")[:MAX_SUMMARY_INPUT_CHARS]
    if not text.strip() and not attachments:
        raise ValueError("Send at least one file (PDF/image) or some text to summarize.")

    style = _summary_style(kind)
    max_tokens = 8192 if kind is SummaryType.DETAILED else 2048

    # A token is at least one UTF-8 byte, so short inputs skip the tokenizer.
    if len(text.encode("utf-8")) > TOKEN_LIMIT and count_tokens(text) > TOKEN_LIMIT:
        print(f"[LLM] Source exceeds {TOKEN_LIMIT:,} tokens - using chunked summarization")
        summary = await summarize_large_text_chunked(
            text, style, generator, attachments=attachments, max_tokens=max_tokens
        )
    else:
        parts = [style]
        if text.strip():
            parts.append(text)
        parts.append(prompts.SUMMARY_TASK.format(language=OUTPUT_LANGUAGE))
        summary = await generator.generate(
            "\n\n".join(parts),
            attachments=attachments,
            temperature=0.35,
            max_tokens=max_tokens,
        )

    summary = (summary or "").strip()
    if not summary:
        raise MalformedGenerationError("The model returned no content for the summary.")
    return summary


def _section_to_node(section: Any) -> Any:
    if not isinstance(section, dict):
        return section
    emoji = str(section.get("emoji") or "").strip()
    title = str(section.get("title") or "").strip()
    return {
        "id": section.get("id"),
        # An emoji alone is not a label; the node is dropped when the title is empty.
        "label": f"{emoji} {title}".strip() if title else "",
        "note": section.get("content") or section.get("note"),
        "children": [_section_to_node(s) for s in section.get("subsections") or section.get("children") or []],
    }


def concept_map_to_document(parsed: Dict[str, Any], raw_text: str = "") -> HierarchyDocument:
    """Convert the ``presentationData`` shape into a hierarchy document."""
    data = parsed.get("presentationData") if isinstance(parsed.get("presentationData"), dict) else parsed
    sections = data.get("sections")
    if not isinstance(sections, list) or not sections:
        raise ValidationError("Concept map has no sections.", raw=raw_text)

    title = str(data.get("title") or "").strip() or "Concept map"
    tree = {
        "title": title,
        "root": {
            "id": "root",
            "label": title,
            "children": [_section_to_node(s) for s in sections],
        },
    }
    return validate_hierarchy(tree, raw_text=raw_text)


async def create_concept_map(
    summary: str,
    presentation_type: Any,
    generator: ContentGenerator,
) -> HierarchyDocument:
    text = str(summary or "").strip()
    if not text:
        raise ValueError("There is no summary to build a concept map from.")
    kind = normalize_presentation_type(presentation_type)
    prompt = prompts.CONCEPT_MAP_PROMPT.format(
        language=OUTPUT_LANGUAGE,
        text=text[:MAX_CONCEPT_MAP_CHARS],
        **PRESENTATION_RULES[kind],
    )
    raw = await generator.generate(prompt, temperature=0.45)
    return concept_map_to_document(extract_object(raw), raw_text=raw)


def flatten_document_to_text(document: HierarchyDocument) -> str:
    """Indented text rendering used as mind map input."""
    lines: List[str] = [document.display_title]

    def walk(node, depth: int):
        prefix = "  " * depth
        lines.append(f"{prefix}{node.label}")
        if node.note:
            lines.append(f"{prefix}{node.note}")
        for child in node.children:
            walk(child, depth + 1)

    for child in document.root.children:
        walk(child, 0)
    return "\n".join(lines)


async def create_mindmap(
    text: str,
    generator: ContentGenerator,
    max_levels: int = MINDMAP_MAX_LEVELS,
    children_per_node: int = MINDMAP_CHILDREN_PER_NODE,
    title: Optional[str] = None,
) -> HierarchyDocument:
    """Generate a mind map; depth/branching are advisory prompt parameters only."""
    text = str(text or "").strip()
    if not text:
        raise ValueError("There is no text to build a mind map from. Generate a summary first.")

    prompt = prompts.MINDMAP_PROMPT.format(
        language=OUTPUT_LANGUAGE,
        max_levels=max_levels,
        children_per_node=children_per_node,
        text=text[:MAX_MINDMAP_CHARS],
    )
    raw = await generator.generate(prompt, temperature=0.4)
    document = extract_hierarchy(raw)
    if title and not document.title:
        document = document.model_copy(update={"title": title})
    return document


async def create_flashcards(
    summary: str,
    generator: ContentGenerator,
    min_cards: int = 10,
    max_cards: int = 20,
) -> List[Flashcard]:
    text = str(summary or "").strip()
    if not text:
        raise ValueError("There is no summary to build flashcards from.")

    prompt = prompts.FLASHCARDS_PROMPT.format(
        language=OUTPUT_LANGUAGE, min_cards=min_cards, max_cards=max_cards, summary=text
    )
    raw = await generator.generate(prompt, temperature=0.2)
    cards = coerce_pairs(extract_array(raw, key="flashcards"))
    if not cards:
        raise EmptyDeckError("The model produced no usable flashcards. Try a more detailed summary.")
    return cards
