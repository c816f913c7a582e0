"""Adapters layer - turns the markdown tree on disk into domain documents."""

from .markdown_parser import MarkdownDocumentParser


__all__ = ["MarkdownDocumentParser"]
