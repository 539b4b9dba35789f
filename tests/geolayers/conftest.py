"""Fixtures for the layer sync tests."""

from __future__ import annotations

import pytest

from geolayers.colors import ColorAllocator
from geolayers.surface import HeadlessMapSurface


@pytest.fixture
def surface():
    """A loaded headless surface at the default home view."""
    s = HeadlessMapSurface(center=(-76.045441, 36.745131), zoom=10)
    s.load()
    return s


@pytest.fixture
def allocator():
    return ColorAllocator()
