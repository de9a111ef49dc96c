from __future__ import annotations
from typing import Iterable, Iterator, Optional, Tuple, Union


class AllergyList:
    """Ordered, deduplicated set of lowercase allergen tokens.

    Parsed from the comma separated string the client sends. Normalizing an
    already normalized list gives the same list back.
    """

    SEPARATOR = ", "

    def __init__(self, tokens: Iterable[str] = ()):
        seen = []
        for token in tokens:
            item = token.strip().lower()
            if item and item not in seen:
                seen.append(item)
        self._tokens: Tuple[str, ...] = tuple(seen)

    @classmethod
    def parse(cls, value: Union[str, Iterable[str], "AllergyList", None]) -> "AllergyList":
        if value is None:
            return cls()
        if isinstance(value, AllergyList):
            return cls(value.tokens)
        if isinstance(value, str):
            return cls(value.split(","))
        parts = []
        for item in value:
            parts.extend(item.split(","))
        return cls(parts)

    @property
    def tokens(self) -> Tuple[str, ...]:
        return self._tokens

    @property
    def serialized(self) -> str:
        return self.SEPARATOR.join(self._tokens)

    def for_template(self) -> str:
        return self.serialized or "None"

    def for_hard_ban(self) -> str:
        return self.serialized or "none"

    def __str__(self) -> str:
        return self.serialized

    def __repr__(self) -> str:
        return f"AllergyList({list(self._tokens)!r})"

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __bool__(self) -> bool:
        return bool(self._tokens)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, str) and item.strip().lower() in self._tokens

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AllergyList):
            return self._tokens == other._tokens
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._tokens)


def normalize_allergies(value: Optional[str]) -> str:
    """Canonical `", "`-joined form of a raw allergy string."""
    return AllergyList.parse(value).serialized
