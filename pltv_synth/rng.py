# pltv_synth/rng.py

"""
Seeded Park-Miller LCG. Every stochastic choice in the generator reads from one
SeededRandom instance so a fixed seed reproduces the output byte for byte; the
GBT scorer owns a second, separately seeded instance.
"""

# Import libraries and modules
from __future__ import annotations
from math import cos, floor, log, pi, sqrt
from typing import MutableSequence, Sequence, TypeVar

T = TypeVar("T")

_MULTIPLIER = 16807
_MODULUS = 2147483647

GENERATION_SEED = 42
GBT_SEED = 777

class SeededRandom:
    def __init__(self, seed: int = GENERATION_SEED):
        self.reset(seed)

    def reset(self, seed: int) -> None:
        seed = int(seed) % _MODULUS
        # 0 is a fixed point of the recurrence
        self._seed = seed if seed > 0 else 1

    @property
    def state(self) -> int:
        return self._seed

    def next(self) -> float:
        """Uniform float in [0, 1)."""
        self._seed = (self._seed * _MULTIPLIER) % _MODULUS
        return (self._seed - 1) / (_MODULUS - 1)

    def int(self, lo: int, hi: int) -> int:
        """Uniform integer in [lo, hi], both ends inclusive."""
        return int(floor(self.next() * (hi - lo + 1))) + lo

    def float(self, lo: float, hi: float) -> float:
        return self.next() * (hi - lo) + lo

    def pick(self, seq: Sequence[T]) -> T:
        if len(seq) == 0:
            raise ValueError("pick() from an empty sequence")
        return seq[int(floor(self.next() * len(seq)))]

    def normal(self) -> float:
        """Standard normal deviate (Box-Muller)."""
        u1 = max(1e-12, self.next())
        u2 = self.next()
        return sqrt(-2.0 * log(u1)) * cos(2.0 * pi * u2)

    def chance(self, p: float) -> bool:
        return self.next() < p

    def shuffle(self, items: MutableSequence[T]) -> None:
        """In-place Fisher-Yates, walking from the last index down."""
        for i in range(len(items) - 1, 0, -1):
            j = int(floor(self.next() * (i + 1)))
            items[i], items[j] = items[j], items[i]
