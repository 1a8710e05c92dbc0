"""Text normalization helpers shared by relevance ranking and overlap checks.

Catalog and blog content is mostly Spanish, so matching is accent-insensitive
("Guía" and "guia" are the same token) and drops both Spanish and English
stop words.
"""

import re
import unicodedata

# Spanish + English stop words, lowercase and accent-stripped
STOP_WORDS: frozenset[str] = frozenset(
    {
        # Spanish
        "al",
        "algo",
        "algunas",
        "algunos",
        "ante",
        "antes",
        "como",
        "con",
        "contra",
        "cual",
        "cuando",
        "del",
        "desde",
        "donde",
        "durante",
        "ella",
        "ellas",
        "ellos",
        "entre",
        "era",
        "eres",
        "esa",
        "esas",
        "ese",
        "eso",
        "esos",
        "esta",
        "estas",
        "este",
        "esto",
        "estos",
        "estan",
        "fue",
        "hay",
        "las",
        "les",
        "los",
        "mas",
        "mis",
        "muy",
        "nos",
        "nosotros",
        "otra",
        "otras",
        "otro",
        "otros",
        "para",
        "pero",
        "por",
        "porque",
        "que",
        "quien",
        "sin",
        "sobre",
        "son",
        "sus",
        "tambien",
        "tiene",
        "todo",
        "todos",
        "una",
        "unas",
        "uno",
        "unos",
        "usted",
        "ustedes",
        "vos",
        # English
        "about",
        "after",
        "all",
        "and",
        "any",
        "are",
        "but",
        "can",
        "for",
        "from",
        "has",
        "have",
        "how",
        "into",
        "its",
        "more",
        "not",
        "our",
        "that",
        "the",
        "their",
        "them",
        "then",
        "there",
        "these",
        "they",
        "this",
        "those",
        "was",
        "what",
        "when",
        "where",
        "which",
        "who",
        "why",
        "will",
        "with",
        "you",
        "your",
    }
)

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+")
_SLUG_SEPARATOR = re.compile(r"[^a-z0-9]+")


def normalize(text: str | None) -> str:
    """Lowercase `text` and strip accents (NFD decomposition)."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(c for c in decomposed if unicodedata.category(c) != "Mn")


def tokenize(text: str | None) -> list[str]:
    """Split text into normalized tokens without stop words.

    Tokens shorter than three characters are dropped, except numbers
    ("2026" is a meaningful token in a topic like "Agendas 2026").

    Examples:
        >>> tokenize("Agendas Personalizadas 2026: Guía Completa")
        ['agendas', 'personalizadas', '2026', 'guia', 'completa']
    """
    tokens = _TOKEN_PATTERN.findall(normalize(text))
    return [
        t for t in tokens if t not in STOP_WORDS and (len(t) > 2 or t.isdigit())
    ]


def token_set(*parts: str | None) -> set[str]:
    """Token set of several text fragments joined together."""
    tokens: set[str] = set()
    for part in parts:
        tokens.update(tokenize(part))
    return tokens


def slugify(text: str) -> str:
    """Build a URL slug: accent-stripped, lowercase, hyphen-separated.

    Examples:
        >>> slugify("Regalos Empresariales: Guía 2026")
        'regalos-empresariales-guia-2026'
    """
    return _SLUG_SEPARATOR.sub("-", normalize(text)).strip("-")
