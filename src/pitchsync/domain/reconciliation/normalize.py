"""Name and identity-key normalisation used by identity resolution.

Names are compared at three strengths:

- ``exact_name_key``: case-folded tokens, punctuation other than hyphens dropped
- ``stripped_name_key``: the same with club suffixes ("FC", "United", ...) removed
- ``compact_name_key``: the stripped key with every non-alphanumeric removed,
  used for containment similarity
"""

from __future__ import annotations

import re
import unicodedata
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID
from zoneinfo import ZoneInfo

from pitchsync.domain.model import IdentityStrategy

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pitchsync.domain.model import EntitySchema, ProviderRecord

type CompositeKey = tuple[str, ...]

SUFFIX_TOKENS = frozenset({"fc", "cf", "afc", "sc", "united", "city", "town"})
MIN_CONTAINMENT_LENGTH = 3
# Timestamps in identity keys compare by calendar day where the leagues play.
IDENTITY_TIMEZONE = ZoneInfo("Asia/Seoul")

_TOKEN_RE = re.compile(r"[\w-]+")
_NON_ALNUM_RE = re.compile(r"[\W_]+")


def normalize_text(value: str) -> str:
    folded = unicodedata.normalize("NFKC", value).casefold()
    return " ".join(folded.split())


def name_tokens(value: str) -> list[str]:
    tokens = (token.strip("-") for token in _TOKEN_RE.findall(normalize_text(value)))
    return [token for token in tokens if token]


def exact_name_key(value: str) -> str:
    return " ".join(name_tokens(value))


def stripped_name_key(value: str) -> str:
    tokens = name_tokens(value)
    kept = [token for token in tokens if token not in SUFFIX_TOKENS]
    # A name made only of suffixes ("FC") keeps its tokens.
    return " ".join(kept or tokens)


def compact_name_key(value: str) -> str:
    return _NON_ALNUM_RE.sub("", stripped_name_key(value))


def containment_similarity(left: str, right: str) -> float:
    """Share of the longer compact key covered by the shorter one, if contained.

    Returns 0.0 when neither key contains the other or the shorter key is too
    short to be meaningful.
    """

    if not left or not right:
        return 0.0
    shorter, longer = sorted((left, right), key=len)
    if len(shorter) < MIN_CONTAINMENT_LENGTH or shorter not in longer:
        return 0.0
    return len(shorter) / len(longer)


def _identity_part(value: object) -> str:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.astimezone(IDENTITY_TIMEZONE).date().isoformat()
    if isinstance(value, str):
        return exact_name_key(value)
    return str(value)


def composite_key(
    record: ProviderRecord,
    schema: EntitySchema,
    references: Mapping[str, UUID],
) -> CompositeKey | None:
    """Build the composite identity of ``record`` or None when a part is missing."""

    if schema.identity is not IdentityStrategy.COMPOSITE:
        return None
    parts: list[str] = []
    for part in schema.identity_parts:
        if part in schema.references:
            value: object | None = references.get(part)
        else:
            value = record.attributes.get(part)
        if value is None:
            return None
        parts.append(_identity_part(value))
    return tuple(parts)
