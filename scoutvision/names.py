"""Name normalisation and cross-source name resolution."""

from __future__ import annotations

import math
import re
import unicodedata
from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

from rapidfuzz import fuzz, process

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_name(value: object) -> str:
    """Lower-case, strip accents and punctuation, collapse whitespace."""

    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    text = unicodedata.normalize("NFKD", str(value).lower().strip())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _NON_ALNUM.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def make_id(prefix: str, *parts: object) -> str:
    """Deterministic identifier, e.g. ``player_lionel_messi_inter_miami``."""

    key = normalize_name(" ".join(str(part) for part in parts if part not in (None, "")))
    return f"{prefix}_{key.replace(' ', '_')}"


class NameResolver(ABC):
    """Resolve free-text names coming from one source to entity ids of another.

    Names are registered under their normalised form, optionally together with
    a qualifier (the team for players). Lookups try the bare name first, then
    ``name + qualifier``; subclasses add looser fallbacks.
    """

    def __init__(self) -> None:
        self._by_name: dict[str, str] = {}
        self._by_qualified: dict[str, str] = {}
        self._ambiguous: set[str] = set()

    def register(self, name: object, entity_id: str, qualifier: object = None) -> None:
        key = normalize_name(name)
        if not key:
            return
        existing = self._by_name.get(key)
        if existing is None:
            self._by_name[key] = entity_id
        elif existing != entity_id:
            self._ambiguous.add(key)
        if qualifier not in (None, ""):
            self._by_qualified.setdefault(normalize_name(f"{name} {qualifier}"), entity_id)

    def clear(self) -> None:
        self._by_name.clear()
        self._by_qualified.clear()
        self._ambiguous.clear()

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return normalize_name(name) in self._by_name

    def _exact(self, key: str, qualifier: object) -> Optional[str]:
        if key in self._by_name and key not in self._ambiguous:
            return self._by_name[key]
        if qualifier not in (None, ""):
            qualified = normalize_name(f"{key} {qualifier}")
            if qualified in self._by_qualified:
                return self._by_qualified[qualified]
        # An ambiguous bare name still beats no match at all.
        return self._by_name.get(key)

    def resolve(self, name: object, qualifier: object = None) -> Optional[str]:
        key = normalize_name(name)
        if not key:
            return None
        found = self._exact(key, qualifier)
        if found is not None:
            return found
        return self._fallback(key)

    @abstractmethod
    def _fallback(self, key: str) -> Optional[str]:
        ...


class ExactNameResolver(NameResolver):
    """Only exact normalised matches resolve."""

    def _fallback(self, key: str) -> Optional[str]:
        return None


class SubstringNameResolver(NameResolver):
    """Fall back to a linear containment scan in registration order."""

    def _fallback(self, key: str) -> Optional[str]:
        for registered, entity_id in self._by_name.items():
            if key in registered or registered in key:
                return entity_id
        return None


class FuzzyNameResolver(SubstringNameResolver):
    """Substring scan, then a token-based fuzzy ratio above ``score_threshold``."""

    def __init__(self, score_threshold: float = 88.0) -> None:
        super().__init__()
        self.score_threshold = score_threshold

    def _fallback(self, key: str) -> Optional[str]:
        found = super()._fallback(key)
        if found is not None or not self._by_name:
            return found
        result = process.extractOne(
            key,
            list(self._by_name),
            scorer=fuzz.token_sort_ratio,
            score_cutoff=self.score_threshold,
        )
        if not result:
            return None
        match, _, _ = result
        return self._by_name[match]


RESOLVERS: dict[str, Callable[[], NameResolver]] = {
    "exact": ExactNameResolver,
    "substring": SubstringNameResolver,
    "fuzzy": FuzzyNameResolver,
}

ResolverSpec = Union[str, Callable[[], NameResolver], None]


def make_resolver(spec: ResolverSpec = None) -> NameResolver:
    """Build a fresh resolver from a strategy name or factory."""

    if spec is None:
        return SubstringNameResolver()
    if isinstance(spec, str):
        try:
            return RESOLVERS[spec]()
        except KeyError:
            raise ValueError(
                f"Unknown resolver {spec!r}; expected one of {', '.join(sorted(RESOLVERS))}"
            ) from None
    resolver = spec()
    if not isinstance(resolver, NameResolver):
        raise ValueError(f"Resolver factory returned {type(resolver).__name__}, not a NameResolver")
    return resolver
