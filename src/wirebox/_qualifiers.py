from __future__ import annotations

from dataclasses import dataclass


DEFAULT = ""
"""Qualifier of the unnamed binding of an abstraction."""

TYPE_ALIAS = "type"
NAME_ALIAS = "name"


def expand_qualifier(raw: str, field_name: str | None = None) -> list[str]:
    """Expand a qualifier string into the ordered lookup candidates.

    - ``""`` selects the default binding only.
    - Segments are comma separated and trimmed; empty segments are dropped.
    - ``"type"`` is an alias of the default qualifier.
    - ``"name"`` is the attribute name when expanding a field annotation.

    Example:
      expand_qualifier("primary, type")  -> ["primary", ""]
      expand_qualifier("name", "cache")  -> ["cache"]

    """
    if not raw:
        return [DEFAULT]

    candidates: list[str] = []
    for segment in raw.split(","):
        segment = segment.strip()
        if not segment:
            continue
        if segment == TYPE_ALIAS:
            candidates.append(DEFAULT)
        elif segment == NAME_ALIAS and field_name is not None:
            candidates.append(field_name)
        else:
            candidates.append(segment)
    return candidates


@dataclass(frozen=True)
class Inject:
    """Marks a class attribute for field injection.

    Used as ``Annotated`` metadata:

      class Handler:
          log: Annotated[Logger, Inject()]
          cache: Annotated[Cache, Inject("name,type")]

    """

    qualifier: str = TYPE_ALIAS

    def candidates(self, field_name: str) -> list[str]:
        return expand_qualifier(self.qualifier, field_name)
