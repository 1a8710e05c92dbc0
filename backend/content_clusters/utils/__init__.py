"""Shared helpers."""

from content_clusters.utils.text import STOP_WORDS, normalize, slugify, token_set, tokenize

__all__ = ["STOP_WORDS", "normalize", "slugify", "token_set", "tokenize"]
