"""Markdown rendering and atomic publishing."""

from docwatch.renderer.highlighter import Highlighter
from docwatch.renderer.io import AtomicWriter
from docwatch.renderer.models import GeneratedFile, RenderedDocument, RenderMetadata
from docwatch.renderer.pipeline import RenderPipeline


__all__ = [
    "AtomicWriter",
    "GeneratedFile",
    "Highlighter",
    "RenderMetadata",
    "RenderPipeline",
    "RenderedDocument",
]
