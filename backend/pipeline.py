"""End-to-end pipeline: document -> summary -> (concept map) -> mind map -> exports."""

import asyncio
import json
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from extraction import UploadedFile, extract_documents, read_local_file
from flashcards import FlashcardDeck
from llm import ContentGenerator
from llm.llm_transform import (
    create_concept_map,
    create_flashcards,
    create_mindmap,
    flatten_document_to_text,
    summarize_content,
    summary_title,
)
from mindmap import CameraState, export_filename, export_html, to_outline_text

# Load environment variables
load_dotenv()

# Configuration from environment
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "output")


async def run_pipeline(
    file_path: str,
    summary_type: str = "short",
    concept_map: Optional[str] = None,
    with_flashcards: bool = False,
    output_dir: Optional[str] = None,
    generator: Optional[ContentGenerator] = None,
) -> dict:
    """
    Run the complete pipeline and write the exports.

    Args:
        file_path: PDF, image, TXT or MD file to summarize
        summary_type: short / medium / detailed / bullet (aliases accepted)
        concept_map: presentation type; when set the mind map is built from the concept map
        with_flashcards: also write a shuffled flashcards JSON file
        output_dir: where to write files (default: from env)
        generator: content generator to use (default: a new ContentGenerator)

    Returns:
        dict: paths of the files written
    """
    output_dir = Path(output_dir or OUTPUT_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)
    generator = generator or ContentGenerator()

    # Step 1: Extract
    filename, media_type, data = read_local_file(file_path)
    extracted = extract_documents([UploadedFile(filename=filename, content_type=media_type, data=data)])
    print(f"Extracted {len(extracted.text):,} chars and {len(extracted.attachments)} attachment(s) from {filename}")

    # Step 2: Summarize
    summary = await summarize_content(extracted.text, summary_type, generator, attachments=extracted.attachments)
    title = summary_title(summary)
    written = {}
    summary_path = output_dir / export_filename(title, "md")
    summary_path.write_text(summary, encoding="utf-8")
    written["summary"] = str(summary_path)
    print(f"Wrote summary to {summary_path}")

    # Step 3: Optional concept map feeds the mind map
    mindmap_source = summary
    if concept_map:
        concept = await create_concept_map(summary, concept_map, generator)
        mindmap_source = flatten_document_to_text(concept)
        print(f"Built concept map '{concept.display_title}'")

    # Step 4: Mind map + exports
    document = await create_mindmap(mindmap_source, generator, title=title)
    html_path = output_dir / export_filename(document.display_title, "html")
    html_path.write_bytes(export_html(document, CameraState(), open_ids=()))
    text_path = output_dir / export_filename(document.display_title, "txt")
    text_path.write_text(to_outline_text(document), encoding="utf-8")
    written["html"] = str(html_path)
    written["text"] = str(text_path)
    print(f"Wrote mind map to {html_path} and {text_path}")

    # Step 5: Optional flashcards
    if with_flashcards:
        deck = FlashcardDeck.create(await create_flashcards(summary, generator))
        cards_path = output_dir / export_filename(f"{title} flashcards", "json")
        ordered = [deck.cards[i].model_dump() for i in deck.order]
        with open(cards_path, "w", encoding="utf-8") as f:
            json.dump(ordered, f, ensure_ascii=False, indent=2)
        written["flashcards"] = str(cards_path)
        print(f"Wrote {len(ordered)} flashcards to {cards_path}")

    return written


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Summarize a document and export it as an interactive mind map")
    parser.add_argument("file", type=str, help="PDF, image, TXT or MD file")
    parser.add_argument(
        "--summary-type",
        type=str,
        default="short",
        help="short, medium, detailed or bullet (default: short)"
    )
    parser.add_argument(
        "--concept-map",
        type=str,
        default=None,
        help="Build the mind map from a concept map: extensive, complete or kids"
    )
    parser.add_argument(
        "--flashcards",
        action="store_true",
        help="Also write a flashcards JSON file"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory (default: from env)"
    )
    args = parser.parse_args()

    asyncio.run(run_pipeline(
        file_path=args.file,
        summary_type=args.summary_type,
        concept_map=args.concept_map,
        with_flashcards=args.flashcards,
        output_dir=args.output_dir,
    ))
