"""Parser for compact mapping target expressions.

Examples::

    dcterms:title
    dcterms:title @fr ^^literal §private
    dcterms:creator ^^resource:item ^^literal | dcterms:contributor
    dcterms:title >media

``@`` sets the language, ``^^`` adds a datatype (tried in order), ``§`` sets
the visibility and ``>`` routes the value to a dependent entity of that kind.
"""

from __future__ import annotations

import re
from typing import Final

from bulkimport.domain.errors import TargetExpressionError
from bulkimport.domain.model.enums import ResourceKind
from bulkimport.domain.model.mapping import Target
from bulkimport.domain.model.values import LITERAL

_COLON_SPACING: Final = re.compile(r"\s*:\s*")
_VISIBILITY: Final[dict[str, bool]] = {"public": True, "private": False}


def parse_target_expression(expression: str) -> tuple[Target, ...]:
    targets: list[Target] = []
    for part in expression.split("|"):
        normalized = _COLON_SPACING.sub(":", part.strip())
        if not normalized:
            continue
        targets.append(_parse_single(normalized, expression))
    if not targets:
        raise TargetExpressionError(f"Empty target expression: {expression!r}")
    return tuple(targets)


def _parse_single(part: str, expression: str) -> Target:
    destination: str | None = None
    datatypes: list[str] = []
    language: str | None = None
    is_public: bool | None = None
    sub_target: ResourceKind | None = None

    for token in part.split():
        if token.startswith("^^"):
            datatype = token[2:]
            if not datatype:
                raise TargetExpressionError(f"Missing datatype in {expression!r}")
            datatypes.append(datatype)
        elif token.startswith("@"):
            language = token[1:] or None
        elif token.startswith("§"):
            visibility = token[1:].lower()
            if visibility not in _VISIBILITY:
                raise TargetExpressionError(f"Unknown visibility {token!r} in {expression!r}")
            is_public = _VISIBILITY[visibility]
        elif token.startswith(">"):
            try:
                sub_target = ResourceKind(token[1:])
            except ValueError as exc:
                raise TargetExpressionError(
                    f"Unknown resource kind {token[1:]!r} in {expression!r}"
                ) from exc
        elif destination is None:
            destination = token
        else:
            raise TargetExpressionError(f"Unexpected token {token!r} in {expression!r}")

    if destination is None:
        raise TargetExpressionError(f"Missing destination in {expression!r}")
    return Target(
        destination=destination,
        datatypes=tuple(datatypes) or (LITERAL,),
        language=language,
        is_public=is_public,
        sub_target=sub_target,
    )
