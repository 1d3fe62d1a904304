"""Identity resolution of drafts against the target store."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from bulkimport.domain.dedup import dedup_ids
from bulkimport.domain.model import Action, UnidentifiedAction

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bulkimport.domain.model import TargetDraft
    from bulkimport.domain.ports import StoreGateway

log = getLogger(__name__)

INTERNAL_ID = "o:id"


def identifier_candidates(draft: TargetDraft, name: str) -> list[str]:
    """Values of ``draft`` usable to look it up by identifier ``name``."""

    candidates: list[str] = []
    for value in draft.values.get(name, ()):
        if value.literal is not None:
            candidates.append(value.literal)
        elif value.uri is not None:
            candidates.append(value.uri)
    attribute = draft.attributes.get(name)
    if attribute is not None and not isinstance(attribute, dict | list):
        candidates.append(str(attribute))
    return dedup_ids(candidates)


@dataclass(slots=True)
class IdentityResolver:
    """Walks the identifier-name preference list to find existing resources.

    A draft moves from unchecked to checked once; checking again is a no-op
    that reports the earlier outcome.
    """

    store: StoreGateway
    identifier_names: Sequence[str] = (INTERNAL_ID,)
    allow_duplicate_identifiers: bool = False
    action_unidentified: UnidentifiedAction = UnidentifiedAction.SKIP

    def check(self, draft: TargetDraft, action: Action) -> bool:
        """Return whether ``draft`` can be dispatched under ``action``."""

        if draft.identity_checked:
            return not draft.has_error
        draft.identity_checked = True

        if action is Action.CREATE:
            self._check_create(draft)
            return not draft.has_error

        if draft.identity is not None:
            self._check_explicit(draft, draft.identity)
            return not draft.has_error

        if not action.requires_identity:
            return not draft.has_error

        if self.fill_id(draft):
            return not draft.has_error
        if draft.has_error:
            return False

        if self.action_unidentified is UnidentifiedAction.CREATE and action.is_update:
            draft.notice("No existing resource matches: it will be created.")
            return True
        draft.error(f"No existing {draft.kind.label} matches the identifiers: skipped.")
        return False

    def _check_create(self, draft: TargetDraft) -> None:
        """A new resource may not reuse an internal id or an existing identifier.

        With duplicates allowed, the match is dropped and a new resource is
        created anyway.
        """

        if draft.identity is not None:
            if not self.allow_duplicate_identifiers:
                draft.error(f"A new {draft.kind.label} cannot have an id (#{draft.identity}).")
                return
            draft.notice(f"The id #{draft.identity} is ignored: a new resource is created.")
            draft.identity = None

        if all(name == INTERNAL_ID for name in self.identifier_names):
            return
        if not self.fill_id(draft):
            return
        existing = draft.identity
        draft.identity = None
        if self.allow_duplicate_identifiers:
            draft.notice(
                f"The {draft.kind.label} #{existing} has the same identifier: "
                "a new resource is created anyway."
            )
        else:
            draft.error(
                f"The {draft.kind.label} #{existing} has the same identifier: "
                "duplicates are not allowed."
            )

    def _check_explicit(self, draft: TargetDraft, identity: int) -> None:
        kind = self.store.resource_kind_of(identity)
        if kind is None:
            draft.error(f"The resource #{identity} does not exist.")
        elif kind is not draft.kind:
            draft.error(f"The resource #{identity} is a {kind.label}, not a {draft.kind.label}.")

    def fill_id(self, draft: TargetDraft) -> bool:
        """Set ``draft.identity`` from the first identifier name with matches.

        Several matches with duplicates disallowed is an error and stops the
        walk: later identifier names are not tried.
        """

        names = [name for name in self.identifier_names if name != INTERNAL_ID]
        if not names:
            if self.allow_duplicate_identifiers:
                draft.notice("No identifier name is configured besides the internal id.")
            else:
                draft.error("No identifier name is configured besides the internal id.")
            return False

        for name in names:
            candidates = identifier_candidates(draft, name)
            if not candidates:
                continue
            ids = dedup_ids(self.store.find_ids(draft.kind, name, candidates))
            if not ids:
                continue
            if len(ids) > 1:
                listing = ", ".join(f"#{found}" for found in ids)
                draft.warn(f'The identifier "{name}" matches several resources: {listing}.')
                if not self.allow_duplicate_identifiers:
                    draft.error(
                        f'The identifier "{name}" is ambiguous and duplicates are not allowed.'
                    )
                    return False
            draft.identity = ids[0]
            log.debug("Index #%s identified as #%s via %s", draft.source_index, ids[0], name)
            return True
        return False
