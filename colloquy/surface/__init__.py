"""Conversation surface: a text buffer plus its role annotations."""

from colloquy.surface.annotations import AnnotationStore
from colloquy.surface.buffer import TextBuffer

__all__ = ["AnnotationStore", "TextBuffer"]
