"""Feature registry: selectable feature names and their display labels."""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence

_CAPITAL = re.compile(r"([A-Z])")


def format_feature_name(name: str) -> str:
    """Turn an internal key such as ``camelCaseName`` into ``"Camel Case Name"``.

    A space is inserted before every capital letter and the first character
    is upper-cased.  Keys without capitals only get their first letter
    capitalised (``"energy"`` -> ``"Energy"``).
    """
    spaced = _CAPITAL.sub(r" \1", name)
    if spaced:
        spaced = spaced[0].upper() + spaced[1:]
    return spaced.strip()


def format_value(value: float, kind: str = "number") -> str:
    """Render a feature value for tooltips and cards.

    Parameters
    ----------
    value : float
    kind : str
        ``"percent"`` -> ``"73%"``, ``"decimal"`` -> ``"0.73"``, anything else
        is passed through ``str``.
    """
    if kind == "percent":
        return f"{value * 100:.0f}%"
    if kind == "decimal":
        return f"{value:.2f}"
    return str(value)


class FeatureRegistry:
    """Ordered, read-only view of the features available on a snapshot."""

    def __init__(self, features_used: Iterable[str]) -> None:
        names: List[str] = []
        for name in features_used:
            if name not in names:
                names.append(name)
        self._names = tuple(names)

    @property
    def names(self) -> Sequence[str]:
        return self._names

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self):
        return iter(self._names)

    def label(self, name: str) -> str:
        return format_feature_name(name)

    def options(self) -> list[dict]:
        """Dropdown options ``[{"label": ..., "value": ...}]`` in registry order."""
        return [{"label": self.label(n), "value": n} for n in self._names]

    def default_axes(self, count: int) -> tuple[str, ...]:
        """First *count* features, repeating the first one when too few exist."""
        if not self._names:
            return ()
        return tuple(
            self._names[i] if i < len(self._names) else self._names[0]
            for i in range(count)
        )
