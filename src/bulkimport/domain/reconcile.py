"""Merge a new draft into the current state of an existing resource.

| action  | singular fields                      | property value lists                  |
|---------|--------------------------------------|---------------------------------------|
| append  | new value wins when present          | current + new, deduplicated           |
| revise  | present fields overwrite             | present lists replace, absent kept    |
| update  | as revise, mapped-but-absent cleared | mapped-but-absent lists cleared       |
| replace | full overwrite                       | full overwrite                        |

Identifier values, attached media and item sets follow their own
sub-action: with ``append`` current entries are never dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING, Final

from bulkimport.domain.dedup import dedup, dedup_ids
from bulkimport.domain.errors import UnsupportedActionError
from bulkimport.domain.model import Action, CollectionAction, ResourceKind, TargetDraft

if TYPE_CHECKING:
    from collections.abc import Sequence

log = getLogger(__name__)

MEDIA_KEY: Final = "o:media"
ITEM_SET_KEY: Final = "o:item_set"
BOOLEAN_FIELDS: Final = frozenset({"o:is_public", "o:is_open"})
# Never written back by an update.
NON_UPDATABLE_FIELDS: Final = frozenset(
    {"o:id", "o:owner", "o:created", "o:item", "o:ingester", "o:source", "o:size"}
)


def _copy(draft: TargetDraft) -> TargetDraft:
    return replace(
        draft,
        attributes=dict(draft.attributes),
        values={term: list(values) for term, values in draft.values.items()},
        item_sets=list(draft.item_sets),
        dependents=list(draft.dependents),
        absent_targets=set(draft.absent_targets),
    )


def remove_empty(draft: TargetDraft) -> TargetDraft:
    """Drop empty fields so that they do not overwrite current data."""

    result = _copy(draft)
    for key, value in list(result.attributes.items()):
        if key in BOOLEAN_FIELDS:
            if not isinstance(value, bool):
                del result.attributes[key]
        elif value is None or value == "" or key in NON_UPDATABLE_FIELDS:
            del result.attributes[key]
    result.values = {term: values for term, values in result.values.items() if values}
    result.absent_targets = set()
    return result


def fill_empty(draft: TargetDraft) -> TargetDraft:
    """Clear every mapped-but-absent target explicitly."""

    result = _copy(draft)
    for destination in draft.absent_targets:
        if destination in BOOLEAN_FIELDS or destination in NON_UPDATABLE_FIELDS:
            continue
        if destination == MEDIA_KEY:
            result.dependents = []
        elif destination == ITEM_SET_KEY:
            result.item_sets = []
        elif ":" in destination and not destination.startswith("o:"):
            result.values.setdefault(destination, [])
        else:
            result.attributes.setdefault(destination, None)
    for key in NON_UPDATABLE_FIELDS:
        result.attributes.pop(key, None)
    return result


@dataclass(slots=True, frozen=True)
class UpdateReconciler:
    """Compute the payload to persist for update-style actions."""

    identifier_names: Sequence[str] = ("o:id",)
    action_identifier: CollectionAction = CollectionAction.APPEND
    action_media: CollectionAction = CollectionAction.APPEND
    action_item_set: CollectionAction = CollectionAction.APPEND

    def merge(self, current: TargetDraft, new: TargetDraft, action: Action) -> TargetDraft:
        match action:
            case Action.APPEND:
                merged = self._append(current, new)
            case Action.REVISE:
                merged = self._overwrite(current, remove_empty(new))
                merged = self._keep_existing(current, new, merged)
            case Action.UPDATE:
                merged = self._overwrite(current, fill_empty(new))
                merged = self._keep_existing(current, new, merged)
            case Action.REPLACE:
                merged = _copy(new)
                merged.identity = current.identity
                merged.parent_id = new.parent_id or current.parent_id
                merged = self._keep_collections(current, merged)
            case _:
                raise UnsupportedActionError(f"Action {action} does not merge resources")
        log.debug("Merged #%s with action %s", current.identity, action)
        return merged

    def _append(self, current: TargetDraft, new: TargetDraft) -> TargetDraft:
        merged = _copy(current)
        for key, value in new.attributes.items():
            if value is not None and key not in NON_UPDATABLE_FIELDS:
                merged.attributes[key] = value
        for term, values in new.values.items():
            merged.values[term] = dedup([*merged.values.get(term, ()), *values])
        merged.item_sets = dedup_ids([*current.item_sets, *new.item_sets])
        merged.dependents = _merge_dependents(current.dependents, new.dependents)
        return merged

    def _overwrite(self, current: TargetDraft, new: TargetDraft) -> TargetDraft:
        merged = _copy(current)
        merged.attributes.update(new.attributes)
        merged.values.update({term: list(values) for term, values in new.values.items()})
        if new.item_sets or ITEM_SET_KEY in new.absent_targets:
            merged.item_sets = list(new.item_sets)
        if new.dependents or MEDIA_KEY in new.absent_targets:
            merged.dependents = list(new.dependents)
        if new.parent_id is not None:
            merged.parent_id = new.parent_id
        return merged

    def _keep_existing(
        self, current: TargetDraft, new: TargetDraft, merged: TargetDraft
    ) -> TargetDraft:
        if self.action_identifier is not CollectionAction.UPDATE:
            self._keep_existing_identifiers(current, new, merged)
        return self._keep_collections(current, merged)

    def _keep_existing_identifiers(
        self, current: TargetDraft, new: TargetDraft, merged: TargetDraft
    ) -> None:
        for name in self.identifier_names:
            if name == "o:id" or name not in current.values:
                continue
            incoming = new.values.get(name, [])
            if incoming:
                merged.values[name] = dedup([*current.values[name], *incoming])
            else:
                merged.values[name] = list(current.values[name])

    def _keep_collections(self, current: TargetDraft, merged: TargetDraft) -> TargetDraft:
        if current.kind is not ResourceKind.ITEMS:
            return merged
        if self.action_media is not CollectionAction.UPDATE:
            merged.dependents = _merge_dependents(current.dependents, merged.dependents)
        if self.action_item_set is not CollectionAction.UPDATE:
            merged.item_sets = dedup_ids([*current.item_sets, *merged.item_sets])
        return merged


def _merge_dependents(
    current: Sequence[TargetDraft], new: Sequence[TargetDraft]
) -> list[TargetDraft]:
    """Current entries first; new ones only when unidentified or unknown."""

    known = {draft.identity for draft in current if draft.identity is not None}
    result = list(current)
    for draft in new:
        if draft.identity is None or draft.identity not in known:
            result.append(draft)
    return result
