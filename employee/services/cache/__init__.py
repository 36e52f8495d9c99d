"""
Response cache package.

Exports the public API surface; no I/O on import.
"""

from .response_cache import ResponseCache, canonicalize_prompt, make_key

__all__ = [
    "ResponseCache",
    "canonicalize_prompt",
    "make_key",
]
