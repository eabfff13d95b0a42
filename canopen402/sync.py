"""Sync producer settings for a CANopen chain."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from canopen402.config import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SYNC_ID = 0x80
MAX_OVERFLOW = 240


@dataclass(frozen=True)
class SyncSettings:
    """Validated sync and update cycle settings."""

    interval_ms: int
    update_ms: int
    overflow: int = 0
    sync_id: int = DEFAULT_SYNC_ID

    @property
    def enabled(self) -> bool:
        """Whether a sync producer is to be run."""
        return self.interval_ms > 0

    @property
    def update_period(self) -> float:
        """The update cycle in seconds."""
        return self.update_ms / 1000.0


def _int_param(params: Mapping[str, Any], key: str) -> Optional[int]:
    value = params.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def parse_sync_settings(
    params: Optional[Mapping[str, Any]], update_ms: Optional[int] = None
) -> SyncSettings:
    """Validate the ``sync`` parameters of a chain.

    ``update_ms`` is the chain's update interval, used only while sync is
    disabled. Raises ConfigError for invalid intervals or overflow values.
    """
    params = params or {}
    if not isinstance(params, Mapping):
        raise ConfigError("sync parameters must be a struct")

    sync_ms = _int_param(params, "interval_ms")
    if sync_ms is None:
        logger.warning(
            "Sync interval was not specified, so sync is disabled per default"
        )
        sync_ms = 0

    if sync_ms < 0:
        raise ConfigError(f"Sync interval  {sync_ms} is invalid")

    update = sync_ms
    if sync_ms == 0 and update_ms is not None:
        update = update_ms
    if update == 0:
        raise ConfigError(f"Update interval  {sync_ms} is invalid")

    overflow = 0
    sync_id = DEFAULT_SYNC_ID
    if sync_ms:
        given = _int_param(params, "overflow")
        if given is None:
            logger.warning(
                "Sync overflow was not specified, so overflow is disabled per default"
            )
        else:
            overflow = given
        if overflow == 1 or overflow > MAX_OVERFLOW:
            raise ConfigError(f"Sync overflow  {overflow} is invalid")
        if params.get("silence_us", 0) != 0:
            logger.warning("silence_us is not supported anymore")
        given_id = _int_param(params, "sync_id")
        if given_id is not None:
            sync_id = given_id

    return SyncSettings(
        interval_ms=sync_ms, update_ms=update, overflow=overflow, sync_id=sync_id
    )


def join(items: Iterable[Any], delim: str) -> str:
    """Join the text forms of ``items`` with ``delim`` between them."""
    return delim.join(str(item) for item in items)