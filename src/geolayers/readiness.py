"""Readiness gate — flips loading to ready once every expected layer is on
the map.

The gate tracks the configured sources, not the toggle registry: a source
counts as settled when its layers have been derived or when it failed. Only
after every source has settled and every derived layer id is present on the
surface does the gate open. Once open it stays open for the session.
"""

from __future__ import annotations

from typing import Iterable

from loguru import logger

from geolayers.surface import MapSurface


class ReadinessGate:
    """Loading -> Ready barrier over the configured data sources."""

    def __init__(self, source_ids: Iterable[str]) -> None:
        self._pending: set[str] = set(source_ids)
        self._failed: set[str] = set()
        self._expected: list[str] = []
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def expected(self) -> list[str]:
        return list(self._expected)

    @property
    def pending_sources(self) -> set[str]:
        return set(self._pending)

    @property
    def failed_sources(self) -> set[str]:
        return set(self._failed)

    def expect(self, layer_id: str) -> None:
        """Add a derived layer id to the set the gate waits on."""
        if layer_id not in self._expected:
            self._expected.append(layer_id)

    def withdraw(self, layer_id: str) -> None:
        """Stop waiting on a layer whose source failed before adding it."""
        if layer_id in self._expected:
            self._expected.remove(layer_id)

    def source_settled(self, source_id: str, ok: bool = True) -> None:
        """Record that a source finished loading, successfully or not."""
        self._pending.discard(source_id)
        if not ok:
            self._failed.add(source_id)

    def missing(self, surface: MapSurface) -> list[str]:
        """Expected layer ids the surface does not have yet."""
        return [lid for lid in self._expected if surface.get_layer(lid) is None]

    def check(self, surface: MapSurface) -> bool:
        """Re-evaluate against the surface. Returns the (possibly new) state."""
        if self._ready:
            return True
        if self._pending:
            return False
        if self.missing(surface):
            return False
        self._ready = True
        logger.info(
            f"Map ready: {len(self._expected)} layers"
            + (f", failed sources: {sorted(self._failed)}" if self._failed else "")
        )
        return True
