"""lexicard: spaced-repetition scheduling core for vocabulary flashcards."""

from lexicard.consts import VERSION

__version__ = VERSION
