"""Omeka S JSON API source configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_int, env_str, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig

OMEKA_TIMEOUT_SECONDS = 30.0
DEFAULT_PER_PAGE = 100
OMEKA_HEADERS = {"Accept": "application/json"}


def is_cacheable_payload(payload: object) -> bool:
    """Omeka reports failures as a JSON object with an ``errors`` key."""

    return not (isinstance(payload, dict) and "errors" in payload)


@dataclass(frozen=True)
class OmekaSourceConfig:
    """Endpoint of a remote Omeka S site read as a migration source."""

    endpoint: str
    key_identity: str | None
    key_credential: str | None
    per_page: int
    resilience: ResilienceConfig

    @property
    def api_url(self) -> str:
        return self.endpoint.rstrip("/") + "/"

    def credentials(self) -> dict[str, str]:
        if self.key_identity is None or self.key_credential is None:
            return {}
        return {"key_identity": self.key_identity, "key_credential": self.key_credential}


def get_omeka_config(
    *,
    endpoint: str | None = None,
    resilience: ResilienceConfig | None = None,
) -> OmekaSourceConfig:
    """Read ``OMEKA_ENDPOINT`` and the optional API keys from the environment."""

    if endpoint is None:
        endpoint = require_env_vars(("OMEKA_ENDPOINT",))["OMEKA_ENDPOINT"]
    base_url = endpoint.rstrip("/") + "/"
    return OmekaSourceConfig(
        endpoint=endpoint,
        key_identity=env_str("OMEKA_KEY_IDENTITY"),
        key_credential=env_str("OMEKA_KEY_CREDENTIAL"),
        per_page=env_int("OMEKA_PER_PAGE", DEFAULT_PER_PAGE, minimum=1),
        resilience=resilience
        or ResilienceConfig(
            name="omeka",
            base_url=base_url,
            timeout_seconds=OMEKA_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
            cache=CacheConfig(backend="memory", should_cache=is_cacheable_payload),
            default_headers=OMEKA_HEADERS,
        ),
    )
