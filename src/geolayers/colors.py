"""Deterministic color allocation for derived layers.

Colors come from a cursor that walks the 24-bit RGB space with a fixed
stride. The same seed and call order always give the same colors, so a map
looks identical on every run.

    DEFAULT_SEED   = 12000
    DEFAULT_STRIDE = 24213
    COLOR_SPACE    = 2 ** 24

The stride is odd and the color space is a power of two, so the two are
coprime and the cursor visits every color once before repeating.
"""

from __future__ import annotations

DEFAULT_SEED = 12000
DEFAULT_STRIDE = 24213
COLOR_SPACE = 2 ** 24


class ColorAllocator:
    """Seeded color cursor owned by one engine instance.

    Usage:
        colors = ColorAllocator()
        colors.next_color()  # "#008d75"
        colors.next_color()  # "#00ec0a"
    """

    def __init__(
        self,
        seed: int = DEFAULT_SEED,
        stride: int = DEFAULT_STRIDE,
        modulus: int = COLOR_SPACE,
    ) -> None:
        if modulus <= 0 or modulus > COLOR_SPACE:
            raise ValueError(f"modulus must be in 1..{COLOR_SPACE}, got {modulus}")
        self.seed = seed
        self.stride = stride
        self.modulus = modulus
        self.value = seed % modulus

    def next_color(self) -> str:
        """Advance the cursor by one stride and return the color as ``#rrggbb``."""
        self.value = (self.value + self.stride) % self.modulus
        return f"#{self.value:06x}"

    def reset(self) -> None:
        """Rewind the cursor to its seed."""
        self.value = self.seed % self.modulus
