"""Content generator: prompt (+ optional inline attachments) in, raw text out."""

import os
from dataclasses import dataclass
from typing import Optional, Sequence

import openai
from dotenv import load_dotenv
from llama_index.core.base.llms.types import ChatMessage, ImageBlock, MessageRole, TextBlock
from llama_index.llms.openai import OpenAI

from .errors import GeneratorUnavailableError

load_dotenv()

# Configuration from environment
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4.1")
FALLBACK_MODEL = os.getenv("FALLBACK_MODEL", "gpt-4.1-mini")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "300"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "4096"))


@dataclass(frozen=True)
class Attachment:
    """Inline binary content sent alongside a prompt."""

    media_type: str
    data: bytes
    name: str = ""

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")


def is_token_error(error: Exception) -> bool:
    """Context-length / request-size failures worth one retry on another model."""
    error_msg = str(error).lower()
    error_type = type(error).__name__.lower()
    return (
        "maximum context" in error_msg
        or "context length" in error_msg
        or "request too large" in error_msg
        or "tokens per min" in error_msg
        or ("ratelimiterror" in error_type and "token" in error_msg)
    )


class ContentGenerator:
    """Thin wrapper over the llama-index OpenAI LLM.

    Every provider failure, including a missing API key, surfaces as
    :class:`GeneratorUnavailableError` carrying the provider's message.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = LLM_TIMEOUT,
        max_tokens: int = LLM_MAX_TOKENS,
        fallback_model: Optional[str] = FALLBACK_MODEL,
    ):
        self.model = model or LLM_MODEL
        self.api_key = api_key
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.fallback_model = fallback_model

    def _llm(self, model: str, temperature: float, max_tokens: Optional[int]) -> OpenAI:
        api_key = self.api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise GeneratorUnavailableError("Set OPENAI_API_KEY in your environment first.")
        return OpenAI(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens or self.max_tokens,
            api_key=api_key,
            timeout=self.timeout,
        )

    @staticmethod
    def build_messages(
        prompt: str,
        attachments: Sequence[Attachment] = (),
        system_prompt: Optional[str] = None,
    ):
        messages = []
        if system_prompt:
            messages.append(ChatMessage(role=MessageRole.SYSTEM, content=system_prompt))

        blocks = [TextBlock(text=prompt)]
        for attachment in attachments:
            if not attachment.is_image:
                raise ValueError(f"Unsupported inline attachment type: {attachment.media_type}")
            blocks.append(ImageBlock(image=attachment.data, image_mimetype=attachment.media_type))
        messages.append(ChatMessage(role=MessageRole.USER, blocks=blocks))
        return messages

    async def generate(
        self,
        prompt: str,
        attachments: Sequence[Attachment] = (),
        system_prompt: Optional[str] = None,
        temperature: float = 0.4,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Run one chat completion and return the raw text (possibly empty)."""
        messages = self.build_messages(prompt, attachments, system_prompt)
        llm = self._llm(self.model, temperature, max_tokens)
        try:
            try:
                resp = await llm.achat(messages)
            except openai.OpenAIError as token_error:
                if not (self.fallback_model and is_token_error(token_error)):
                    raise
                print(f"[LLM] Token limit exceeded on {self.model}, retrying with {self.fallback_model}...")
                llm = self._llm(self.fallback_model, temperature, max_tokens)
                resp = await llm.achat(messages)
        except openai.OpenAIError as e:
            raise GeneratorUnavailableError(str(e)) from e

        return (resp.message.content or "").strip()
