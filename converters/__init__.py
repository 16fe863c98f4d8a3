"""Converters package for rendering native document bodies into portable snapshots."""

from .prosemirror_renderer import ProsemirrorRenderer

__all__ = ['ProsemirrorRenderer']
