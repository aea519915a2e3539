"""
Template Compiler - Compiles template documents into playable form.

The template compiler:
1. Validates the document
2. Pre-parses every formula into an immutable tree
3. Caches results by content hash

Formula errors surface at compile time, never during play.
"""

from .compiler import (
    CompiledAction,
    CompiledEffect,
    CompiledScoring,
    CompiledTemplate,
    compile_template,
)
from .cache import TemplateCache, CacheEntry, canonical_json

__all__ = [
    "CompiledAction",
    "CompiledEffect",
    "CompiledScoring",
    "CompiledTemplate",
    "compile_template",
    "TemplateCache",
    "CacheEntry",
    "canonical_json",
]
