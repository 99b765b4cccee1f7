"""Subject label normalization and validation"""

import re
from typing import Any

LABEL_PATTERN = re.compile(r"^[a-z]{2,24}$")

# Synonyms mapped onto the canonical species label so bank keys stay stable
LABEL_ALIASES = {
    "budgie": "parrot",
    "parakeet": "parrot",
    "canary": "bird",
    "kitten": "cat",
    "puppy": "dog",
    "guineapig": "guinea",
    "guinea_pig": "guinea",
}

# Too generic to write a character for
BLOCKED_LABELS = frozenset({"animal", "pet", "mammal", "person", "human"})


def clean_label(label: Any) -> str:
    return str(label or "").strip().lower()


def normalize_label(label: Any) -> str:
    """Trim, lowercase and resolve aliases"""
    cleaned = clean_label(label)
    return LABEL_ALIASES.get(cleaned, cleaned)


def is_valid_label(label: str) -> bool:
    return bool(LABEL_PATTERN.match(label or ""))
