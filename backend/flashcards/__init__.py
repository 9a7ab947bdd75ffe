"""Flashcard deck module."""

from .deck import EmptyDeckError, Flashcard, FlashcardDeck, coerce_pairs, fisher_yates

__all__ = [
    'EmptyDeckError',
    'Flashcard',
    'FlashcardDeck',
    'coerce_pairs',
    'fisher_yates',
]
