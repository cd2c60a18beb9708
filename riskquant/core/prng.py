"""
Seeded PRNG — mulberry32, sequential and counter-addressed.

mulberry32 advances a 32-bit state by a fixed increment and bit-mixes it:

    state += 0x6D2B79F5
    t = (state ^ state >> 15) * (state | 1)
    t ^= t + (t ^ t >> 7) * (t | 61)
    u = (t ^ t >> 14) / 2**32

Because the state after k draws is just seed + k * 0x6D2B79F5, any draw can
be computed directly from its index. The Monte Carlo engine uses that to give
every (iteration, risk, slot) its own draw, so chunks can run in any order or
on any worker and still reproduce the sequential stream.
"""

from __future__ import annotations

import numpy as np

MASK32 = 0xFFFFFFFF
INCREMENT = 0x6D2B79F5
TWO_POW_32 = 4294967296.0


class Mulberry32:
    """Sequential generator. Matches the reference JavaScript mulberry32 bit for bit."""

    def __init__(self, seed: int) -> None:
        self._state = seed & MASK32

    def next(self) -> float:
        self._state = (self._state + INCREMENT) & MASK32
        t = self._state
        t = ((t ^ (t >> 15)) * (t | 1)) & MASK32
        t ^= (t + ((t ^ (t >> 7)) * (t | 61))) & MASK32
        return ((t ^ (t >> 14)) & MASK32) / TWO_POW_32

    def __iter__(self):
        return self

    def __next__(self) -> float:
        return self.next()


def draws_at(seed: int, counters: np.ndarray) -> np.ndarray:
    """
    Uniform [0, 1) draws for 1-based draw indices.

    draws_at(seed, [1, 2, 3]) equals the first three values of Mulberry32(seed).
    Works on any array shape; the result has the same shape as counters.
    """
    k = np.asarray(counters, dtype=np.uint64)
    # uint64 wraps modulo 2**64, which keeps the low 32 bits exact
    state = (np.uint64(seed & MASK32) + k * np.uint64(INCREMENT)) & np.uint64(MASK32)
    t = state.astype(np.uint32)

    t = (t ^ (t >> np.uint32(15))) * (t | np.uint32(1))
    t = t ^ (t + (t ^ (t >> np.uint32(7))) * (t | np.uint32(61)))
    t = t ^ (t >> np.uint32(14))
    return t.astype(np.float64) / TWO_POW_32
