"""Flashcard deck with a fixed shuffled order and a flip/navigate cursor."""

import random
from typing import Any, Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class EmptyDeckError(ValueError):
    """Deck creation was requested with zero question/answer pairs."""


class Flashcard(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str = Field(description="Direct question shown on the front")
    answer: str = Field(description="Concise answer shown on the back")


def fisher_yates(count: int, rng: random.Random) -> List[int]:
    """One Fisher–Yates pass over ``range(count)``."""
    order = list(range(count))
    for i in range(count - 1, 0, -1):
        j = rng.randint(0, i)
        order[i], order[j] = order[j], order[i]
    return order


def coerce_pairs(items: Iterable[Any]) -> List[Flashcard]:
    """Keep items that carry a non-empty question and answer.

    Accepts ``question``/``answer`` and the older ``front``/``back`` keys.
    """
    cards = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        question = str(item.get("question") or item.get("front") or "").strip()
        answer = str(item.get("answer") or item.get("back") or "").strip()
        if question and answer:
            cards.append(Flashcard(question=question, answer=answer))
    return cards


class FlashcardDeck:
    """Immutable cards in a presentation order fixed at creation time.

    State is ``(cursor, showing_answer)``, starting at ``(0, False)``. Navigation
    wraps in both directions and always hides the answer.
    """

    def __init__(self, cards: Sequence[Flashcard], order: Sequence[int]):
        self.cards = tuple(cards)
        self.order = tuple(order)
        self.cursor = 0
        self.showing_answer = False

    @classmethod
    def create(
        cls,
        pairs: Sequence[Any],
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> "FlashcardDeck":
        if not pairs:
            raise EmptyDeckError("No flashcards to show.")
        cards = [p if isinstance(p, Flashcard) else Flashcard(**p) for p in pairs]
        if rng is None:
            rng = random.Random(seed) if seed is not None else random.SystemRandom()
        return cls(cards, fisher_yates(len(cards), rng))

    def __len__(self) -> int:
        return len(self.cards)

    @property
    def current(self) -> Flashcard:
        return self.cards[self.order[self.cursor]]

    @property
    def face(self) -> str:
        card = self.current
        return card.answer if self.showing_answer else card.question

    def next(self) -> Flashcard:
        self.cursor = (self.cursor + 1) % len(self.cards)
        self.showing_answer = False
        return self.current

    def prev(self) -> Flashcard:
        self.cursor = (self.cursor - 1 + len(self.cards)) % len(self.cards)
        self.showing_answer = False
        return self.current

    def flip(self) -> bool:
        self.showing_answer = not self.showing_answer
        return self.showing_answer

    def state(self) -> dict:
        card = self.current
        return {
            "position": self.cursor + 1,
            "total": len(self.cards),
            "showing_answer": self.showing_answer,
            "question": card.question,
            "answer": card.answer if self.showing_answer else None,
        }
