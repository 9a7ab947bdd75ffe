"""Chunked summarization for sources that exceed the token limit."""

import os
from typing import List, Sequence

import tiktoken
from dotenv import load_dotenv

from . import prompts
from .errors import MalformedGenerationError
from .generator import Attachment, ContentGenerator

load_dotenv()

# Token limit from environment (default 100k)
TOKEN_LIMIT = int(os.getenv("TOKEN_LIMIT", "100000"))
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "60000"))


def _encoding(model: str = "gpt-4.1"):
    try:
        return tiktoken.encoding_for_model(model)
    except KeyError:
        # Fallback to cl100k_base encoding (used by gpt-4 and gpt-3.5-turbo)
        return tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str, model: str = "gpt-4.1") -> int:
    """Count tokens in a text using tiktoken."""
    return len(_encoding(model).encode(text or ""))


def split_text_into_chunks(text: str, chunk_size: int = CHUNK_SIZE, model: str = "gpt-4.1") -> List[str]:
    """
    Split text into chunks of at most chunk_size tokens.
    Paragraph boundaries are kept where possible; a single oversized paragraph is
    cut on token boundaries.
    """
    encoding = _encoding(model)
    chunks: List[str] = []
    current: List[str] = []
    current_tokens = 0

    for paragraph in text.split("\n\n"):
        if not paragraph.strip():
            continue
        tokens = encoding.encode(paragraph)

        if len(tokens) > chunk_size:
            if current:
                chunks.append("\n\n".join(current))
                current, current_tokens = [], 0
            for start in range(0, len(tokens), chunk_size):
                chunks.append(encoding.decode(tokens[start:start + chunk_size]))
            continue

        # If adding this paragraph exceeds chunk size and we have some text already, start new chunk
        if current_tokens + len(tokens) > chunk_size and current:
            chunks.append("\n\n".join(current))
            current, current_tokens = [], 0

        current.append(paragraph)
        current_tokens += len(tokens)

    if current:
        chunks.append("\n\n".join(current))
    return chunks


async def summarize_large_text_chunked(
    text: str,
    style: str,
    generator: ContentGenerator,
    attachments: Sequence[Attachment] = (),
    max_tokens: int = None,
) -> str:
    """
    Summarize a text that exceeds the token limit by processing it in chunks.
    Each call receives the running summary and merges the next chunk into it.
    Attachments travel with the first chunk only.
    """
    chunks = split_text_into_chunks(text, CHUNK_SIZE)
    print(f"[LLM] Chunked summarization: {len(chunks)} chunks of <= {CHUNK_SIZE:,} tokens")

    previous_summary = ""
    for i, chunk in enumerate(chunks):
        chunk_num = i + 1
        previous_block = (
            f"**Previous summary (from parts 1-{chunk_num - 1}):**\n{previous_summary}\n"
            if previous_summary
            else ""
        )
        prompt = prompts.CHUNK_SUMMARY_PROMPT.format(
            chunk_num=chunk_num,
            total_chunks=len(chunks),
            previous_block=previous_block,
            chunk_text=chunk,
            style=style,
        )
        print(f"[LLM] Summarizing part {chunk_num}/{len(chunks)} ({len(prompt):,} chars)...")
        summary = await generator.generate(
            prompt,
            attachments=attachments if chunk_num == 1 else (),
            temperature=0.35,
            max_tokens=max_tokens,
        )
        if not summary:
            raise MalformedGenerationError(f"The model returned an empty summary for part {chunk_num}.")
        previous_summary = summary

    return previous_summary
