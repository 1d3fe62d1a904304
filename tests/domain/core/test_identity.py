from __future__ import annotations

from typing import TYPE_CHECKING

from bulkimport.domain.identity import IdentityResolver, identifier_candidates
from bulkimport.domain.model import (
    Action,
    Item,
    ItemSet,
    ResourceKind,
    TargetDraft,
    UnidentifiedAction,
    Value,
    ValueAssignment,
)
from tests.helpers.store import FakeStoreGateway, InMemoryTargetStore

if TYPE_CHECKING:
    from collections.abc import Sequence


def _item_with(store: InMemoryTargetStore, term: str, literal: str) -> Item:
    property_id = store.properties[term].id
    assert property_id is not None
    return store.add_resource(Item(values=[Value(property_id=property_id, value=literal)]))


def _draft(**values: str) -> TargetDraft:
    draft = TargetDraft(kind=ResourceKind.ITEMS, source_index=1)
    for term, literal in values.items():
        draft.add_value(ValueAssignment.of_literal(term.replace("_", ":", 1), literal))
    return draft


class RecordingGateway(FakeStoreGateway):
    def __init__(self, store: InMemoryTargetStore) -> None:
        super().__init__(store)
        self.lookups: list[str] = []

    def find_ids(
        self, kind: ResourceKind, identifier_name: str, candidates: Sequence[str]
    ) -> list[int]:
        self.lookups.append(identifier_name)
        return super().find_ids(kind, identifier_name, candidates)


def test_ambiguous_identifier_is_an_error_and_stops_the_walk() -> None:
    store = InMemoryTargetStore()
    _item_with(store, "dcterms:identifier", "dup")
    _item_with(store, "dcterms:identifier", "dup")
    _item_with(store, "bibo:isbn", "978")
    gateway = RecordingGateway(store)
    resolver = IdentityResolver(
        store=gateway, identifier_names=("dcterms:identifier", "bibo:isbn")
    )
    draft = _draft(dcterms_identifier="dup", bibo_isbn="978")

    assert not resolver.check(draft, Action.UPDATE)

    assert draft.has_error
    assert draft.identity is None
    assert gateway.lookups == ["dcterms:identifier"]


def test_duplicates_allowed_takes_the_first_match_with_a_warning() -> None:
    store = InMemoryTargetStore()
    first = _item_with(store, "dcterms:identifier", "dup")
    _item_with(store, "dcterms:identifier", "dup")
    resolver = IdentityResolver(
        store=FakeStoreGateway(store),
        identifier_names=("dcterms:identifier",),
        allow_duplicate_identifiers=True,
    )
    draft = _draft(dcterms_identifier="dup")

    assert resolver.check(draft, Action.UPDATE)

    assert draft.identity == first.id
    assert draft.messages.warnings


def test_next_identifier_name_is_tried_when_the_first_has_no_match() -> None:
    store = InMemoryTargetStore()
    target = _item_with(store, "bibo:isbn", "978")
    resolver = IdentityResolver(
        store=FakeStoreGateway(store),
        identifier_names=("o:id", "dcterms:identifier", "bibo:isbn"),
    )
    draft = _draft(dcterms_identifier="nope", bibo_isbn="978")

    assert resolver.check(draft, Action.REVISE)
    assert draft.identity == target.id


def test_explicit_id_of_another_kind_is_rejected() -> None:
    store = InMemoryTargetStore()
    item_set = store.add_resource(ItemSet())
    resolver = IdentityResolver(store=FakeStoreGateway(store))
    draft = TargetDraft(kind=ResourceKind.ITEMS, identity=item_set.id)

    assert not resolver.check(draft, Action.UPDATE)
    assert "is a item set, not a item" in draft.messages.errors[0]


def test_unidentified_entry_can_be_created_on_update() -> None:
    store = InMemoryTargetStore()
    resolver = IdentityResolver(
        store=FakeStoreGateway(store),
        identifier_names=("dcterms:identifier",),
        action_unidentified=UnidentifiedAction.CREATE,
    )
    draft = _draft(dcterms_identifier="new")

    assert resolver.check(draft, Action.UPDATE)
    assert draft.identity is None
    assert draft.messages.notices


def test_unidentified_entry_is_an_error_by_default() -> None:
    resolver = IdentityResolver(
        store=FakeStoreGateway(InMemoryTargetStore()), identifier_names=("dcterms:identifier",)
    )
    draft = _draft(dcterms_identifier="new")

    assert not resolver.check(draft, Action.DELETE)
    assert draft.has_error


def test_create_needs_no_identity_and_checking_twice_is_stable() -> None:
    resolver = IdentityResolver(store=FakeStoreGateway(InMemoryTargetStore()))
    draft = _draft(dcterms_title="T")

    assert resolver.check(draft, Action.CREATE)
    assert draft.identity_checked
    assert resolver.check(draft, Action.CREATE)


def test_identifier_candidates_deduplicate_values_and_attribute() -> None:
    draft = _draft(dcterms_identifier="a")
    draft.add_value(ValueAssignment.of_literal("dcterms:identifier", "a"))
    draft.add_value(ValueAssignment.of_uri("dcterms:identifier", "https://id.example/b"))

    assert identifier_candidates(draft, "dcterms:identifier") == ["a", "https://id.example/b"]


def test_create_rejects_an_explicit_id_unless_duplicates_are_allowed() -> None:
    store = InMemoryTargetStore()
    existing = _item_with(store, "dcterms:title", "Kept")
    strict = IdentityResolver(store=FakeStoreGateway(store))
    lenient = IdentityResolver(store=FakeStoreGateway(store), allow_duplicate_identifiers=True)
    rejected = _draft(dcterms_title="New")
    rejected.identity = existing.id
    dropped = _draft(dcterms_title="New")
    dropped.identity = existing.id

    assert not strict.check(rejected, Action.CREATE)
    assert "cannot have an id" in rejected.messages.errors[0]
    assert lenient.check(dropped, Action.CREATE)
    assert dropped.identity is None
    assert dropped.messages.notices


def test_create_rejects_an_identifier_that_already_exists() -> None:
    store = InMemoryTargetStore()
    existing = _item_with(store, "dcterms:identifier", "a")
    gateway = RecordingGateway(store)
    resolver = IdentityResolver(store=gateway, identifier_names=("o:id", "dcterms:identifier"))
    duplicate = _draft(dcterms_identifier="a")
    fresh = _draft(dcterms_identifier="b")

    assert not resolver.check(duplicate, Action.CREATE)
    assert f"#{existing.id} has the same identifier" in duplicate.messages.errors[0]
    assert duplicate.identity is None
    assert resolver.check(fresh, Action.CREATE)
    assert fresh.identity is None
    assert gateway.lookups == ["dcterms:identifier", "dcterms:identifier"]


def test_create_with_duplicates_allowed_keeps_the_new_resource() -> None:
    store = InMemoryTargetStore()
    _item_with(store, "dcterms:identifier", "a")
    resolver = IdentityResolver(
        store=FakeStoreGateway(store),
        identifier_names=("dcterms:identifier",),
        allow_duplicate_identifiers=True,
    )
    draft = _draft(dcterms_identifier="a")

    assert resolver.check(draft, Action.CREATE)
    assert draft.identity is None
    assert "a new resource is created anyway" in draft.messages.notices[0]
