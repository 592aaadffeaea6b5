# pw_filter.py
from __future__ import annotations

from typing import Iterable, Optional, Tuple


def normalize_terms(terms: Iterable[str]) -> Tuple[str, ...]:
    out = []
    for t in terms:
        s = (t or "").strip().lower()
        if s and s not in out:
            out.append(s)
    return tuple(out)


class IgnoreFilter:
    """
    Case-insensitive substring match of application names against a fixed
    list of terms. "chrome" matches "Google CHROME", "cava" matches "cava".
    """

    def __init__(self, terms: Iterable[str] = ()) -> None:
        self._terms = normalize_terms(terms)

    @property
    def terms(self) -> Tuple[str, ...]:
        return self._terms

    def is_ignored(self, app_name: Optional[str]) -> bool:
        if not app_name or not self._terms:
            return False
        low = app_name.lower()
        return any(t in low for t in self._terms)

    def __repr__(self) -> str:
        return f"IgnoreFilter({list(self._terms)!r})"
