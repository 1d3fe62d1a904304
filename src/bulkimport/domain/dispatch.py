"""Per-action code paths for a buffered batch of drafts."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from bulkimport.domain.errors import BulkImportError, StoreValidationError, StructuralError
from bulkimport.domain.fill import log_draft_messages
from bulkimport.domain.model import Action, UnidentifiedAction, entity_type_for

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bulkimport.domain.context import ImportContext
    from bulkimport.domain.fill import ResourceHydrator
    from bulkimport.domain.model import ResourceKind, TargetDraft
    from bulkimport.domain.ports import StoreGateway, WorkingSet
    from bulkimport.domain.reconcile import UpdateReconciler

log = getLogger(__name__)


class ActionDispatcher:
    """Create, update, delete or skip drafts.

    A row rejected by the store, or failing on its own data, is logged and
    counted as an error; the remaining rows of the batch are still
    processed, for every action. Structural errors stop the batch.
    """

    def __init__(
        self,
        *,
        store: StoreGateway,
        working_set: WorkingSet,
        hydrator: ResourceHydrator,
        reconciler: UpdateReconciler,
        context: ImportContext,
        action_unidentified: UnidentifiedAction = UnidentifiedAction.SKIP,
    ) -> None:
        self.store = store
        self.working_set = working_set
        self.hydrator = hydrator
        self.reconciler = reconciler
        self.context = context
        self.action_unidentified = action_unidentified

    def dispatch(self, drafts: Sequence[TargetDraft], action: Action) -> None:
        match action:
            case Action.CREATE:
                for draft in drafts:
                    self._guarded(draft, action)
            case Action.DELETE:
                self._delete(drafts)
            case Action.SKIP:
                self.context.totals.skipped += len(drafts)
                log.info("%d entries skipped by action.", len(drafts))
            case _:
                for draft in drafts:
                    unidentified = draft.identity is None
                    if unidentified and self.action_unidentified is UnidentifiedAction.SKIP:
                        log.info("Index #%s: no existing resource; skipped.", draft.source_index)
                        self.context.totals.skipped += 1
                        continue
                    self._guarded(draft, action)

    def _guarded(self, draft: TargetDraft, action: Action) -> None:
        try:
            if action is Action.CREATE or draft.identity is None:
                self.create(draft)
            else:
                self.update(draft, action)
        except StoreValidationError as exc:
            log_draft_messages(draft)
            log.error("Index #%s: %s", draft.source_index, " ".join(exc.flatten()))
            self.context.totals.errors += 1
            return
        except StructuralError:
            raise
        except (BulkImportError, LookupError, TypeError, ValueError):
            log_draft_messages(draft)
            log.exception("Index #%s: the %s failed.", draft.source_index, draft.kind.label)
            self.context.totals.errors += 1
            return
        log_draft_messages(draft)
        self.context.totals.processed += 1

    def create(self, draft: TargetDraft) -> int:
        entity = entity_type_for(draft.kind)()
        problems = self.hydrator.validate(entity, draft)
        if problems:
            raise StoreValidationError(problems)
        self.hydrator.apply(entity, draft)
        self.working_set.add(entity)
        if entity.id is None:
            raise StoreValidationError([f"The {draft.kind.label} was not assigned an id."])
        if draft.source_id is not None:
            self.context.tables[draft.kind].assign(draft.source_id, entity.id)
        self.context.totals.created[draft.kind] += 1
        log.info("Index #%s: %s #%s created.", draft.source_index, draft.kind.label, entity.id)
        return entity.id

    def update(self, draft: TargetDraft, action: Action) -> None:
        identity = draft.identity
        entity = None if identity is None else self.working_set.get(draft.kind, identity)
        if identity is None or entity is None:
            raise StoreValidationError([f"The {draft.kind.label} #{identity} does not exist."])
        current = self.hydrator.snapshot(entity)
        merged = self.reconciler.merge(current, draft, action)
        problems = self.hydrator.validate(entity, merged)
        if problems:
            raise StoreValidationError(problems)
        self.hydrator.apply(entity, merged, sync_children=True)
        self.working_set.add(entity)
        if draft.source_id is not None:
            self.context.tables[draft.kind].assign(draft.source_id, identity)
        self.context.totals.updated[draft.kind] += 1
        log.info(
            "Index #%s: %s #%s updated (%s).",
            draft.source_index,
            draft.kind.label,
            identity,
            action,
        )

    def _delete(self, drafts: Sequence[TargetDraft]) -> None:
        by_kind: dict[ResourceKind, list[int]] = {}
        for draft in drafts:
            if draft.identity is None:
                log.info("Index #%s: nothing to delete; skipped.", draft.source_index)
                self.context.totals.skipped += 1
                continue
            by_kind.setdefault(draft.kind, []).append(draft.identity)
        for kind, ids in by_kind.items():
            ids = list(dict.fromkeys(ids))
            deleted = set(self.store.delete(kind, ids, continue_on_error=True))
            failed = [identity for identity in ids if identity not in deleted]
            for identity in failed:
                log.warning("The %s #%s could not be deleted.", kind.label, identity)
            self.context.totals.errors += len(failed)
            self.context.totals.processed += len(deleted)
            self.context.totals.deleted[kind] += len(deleted)
            log.info("%d %s resources deleted.", len(deleted), kind.label)
