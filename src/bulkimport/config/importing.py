"""Import run settings, overridable through ``BULKIMPORT_*`` variables."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from bulkimport.domain.model import Action, CollectionAction, ProcessingMode, UnidentifiedAction

from .env import env_bool, env_int, env_list, env_str
from .errors import ConfigurationError

DEFAULT_IDENTIFIER_NAMES = ("o:id",)


@dataclass(frozen=True, slots=True)
class ImportSettings:
    action: Action = Action.CREATE
    action_unidentified: UnidentifiedAction = UnidentifiedAction.SKIP
    identifier_names: tuple[str, ...] = DEFAULT_IDENTIFIER_NAMES
    allow_duplicate_identifiers: bool = False
    action_identifier: CollectionAction = CollectionAction.APPEND
    action_media: CollectionAction = CollectionAction.APPEND
    action_item_set: CollectionAction = CollectionAction.APPEND
    entries_by_batch: int = 1
    fill_chunk_size: int = 100
    record_id_batch_size: int = 10_000
    reservation_ceiling: int = 10_000_000
    entries_to_skip: int = 0
    entries_max: int = 0
    processing: ProcessingMode = ProcessingMode.CONTINUE_ON_ERROR
    value_datatype_literal: bool = False
    owner_id: int | None = None
    modules: tuple[str, ...] = ()


def parse_choice[E: StrEnum](enum_type: type[E], raw: str, *, setting: str) -> E:
    """Return the member of ``enum_type`` named ``raw`` (case and dashes ignored)."""

    normalized = raw.strip().lower().replace("-", "_")
    try:
        return enum_type(normalized)
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_type)
        raise ConfigurationError(f"{setting} must be one of {choices}, got {raw!r}") from exc


def _env_choice[E: StrEnum](name: str, enum_type: type[E], default: E) -> E:
    raw = env_str(name)
    return default if raw is None else parse_choice(enum_type, raw, setting=name)


def get_import_settings() -> ImportSettings:
    defaults = ImportSettings()
    owner_id = env_int("BULKIMPORT_OWNER_ID", 0, minimum=0)
    return ImportSettings(
        action=_env_choice("BULKIMPORT_ACTION", Action, defaults.action),
        action_unidentified=_env_choice(
            "BULKIMPORT_ACTION_UNIDENTIFIED", UnidentifiedAction, defaults.action_unidentified
        ),
        identifier_names=env_list("BULKIMPORT_IDENTIFIER_NAMES") or defaults.identifier_names,
        allow_duplicate_identifiers=env_bool(
            "BULKIMPORT_ALLOW_DUPLICATE_IDENTIFIERS", defaults.allow_duplicate_identifiers
        ),
        action_identifier=_env_choice(
            "BULKIMPORT_ACTION_IDENTIFIER", CollectionAction, defaults.action_identifier
        ),
        action_media=_env_choice(
            "BULKIMPORT_ACTION_MEDIA", CollectionAction, defaults.action_media
        ),
        action_item_set=_env_choice(
            "BULKIMPORT_ACTION_ITEM_SET", CollectionAction, defaults.action_item_set
        ),
        entries_by_batch=env_int(
            "BULKIMPORT_ENTRIES_BY_BATCH", defaults.entries_by_batch, minimum=1
        ),
        fill_chunk_size=env_int("BULKIMPORT_FILL_CHUNK_SIZE", defaults.fill_chunk_size, minimum=1),
        record_id_batch_size=env_int(
            "BULKIMPORT_RECORD_ID_BATCH_SIZE", defaults.record_id_batch_size, minimum=1
        ),
        reservation_ceiling=env_int(
            "BULKIMPORT_RESERVATION_CEILING", defaults.reservation_ceiling, minimum=1
        ),
        entries_to_skip=env_int("BULKIMPORT_ENTRIES_TO_SKIP", defaults.entries_to_skip),
        entries_max=env_int("BULKIMPORT_ENTRIES_MAX", defaults.entries_max),
        processing=_env_choice("BULKIMPORT_PROCESSING", ProcessingMode, defaults.processing),
        value_datatype_literal=env_bool(
            "BULKIMPORT_VALUE_DATATYPE_LITERAL", defaults.value_datatype_literal
        ),
        owner_id=owner_id or None,
        modules=env_list("BULKIMPORT_MODULES") or defaults.modules,
    )
