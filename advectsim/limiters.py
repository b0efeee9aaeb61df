"""
Flux limiters for the second-order advection scheme.

Each limiter is a function phi(r) of the ratio of consecutive differences,
r = (upwind difference) / (local difference). All of them lie in Sweby's
second-order TVD region, 0 <= phi(r) <= min(2r, 2), which keeps the limited
Lax-Wendroff update a convex combination of neighbouring values.
"""

from __future__ import annotations

from typing import Callable

import numpy as np
from numpy.typing import NDArray

Limiter = Callable[[NDArray[np.float64]], NDArray[np.float64]]


def minmod(a: NDArray, b: NDArray) -> NDArray:
    """
    Minmod function: returns the value with smaller magnitude if same sign, else 0.
    """
    return np.where(
        a * b > 0,
        np.sign(a) * np.minimum(np.abs(a), np.abs(b)),
        0.0
    )


def minmod_limiter(r: NDArray[np.float64]) -> NDArray[np.float64]:
    """phi(r) = max(0, min(1, r)); the most diffusive TVD limiter."""
    return minmod(np.ones_like(r), r)


def superbee_limiter(r: NDArray[np.float64]) -> NDArray[np.float64]:
    """Roe's superbee: phi(r) = max(0, min(2r, 1), min(r, 2))."""
    return np.maximum(0.0, np.maximum(np.minimum(2.0 * r, 1.0), np.minimum(r, 2.0)))


def van_leer_limiter(r: NDArray[np.float64]) -> NDArray[np.float64]:
    """van Leer: phi(r) = (r + |r|) / (1 + |r|)."""
    return (r + np.abs(r)) / (1.0 + np.abs(r))


def mc_limiter(r: NDArray[np.float64]) -> NDArray[np.float64]:
    """Monotonized central: phi(r) = max(0, min(2r, (1 + r) / 2, 2))."""
    return np.maximum(0.0, np.minimum(np.minimum(2.0 * r, 0.5 * (1.0 + r)), 2.0))


LIMITERS: dict[str, Limiter] = {
    "minmod": minmod_limiter,
    "superbee": superbee_limiter,
    "van_leer": van_leer_limiter,
    "mc": mc_limiter,
}


def get_limiter(name: str) -> Limiter:
    """Look up a flux limiter by name."""
    if name not in LIMITERS:
        available = ", ".join(sorted(LIMITERS))
        raise KeyError(f"Unknown limiter: '{name}'. Available: {available}")
    return LIMITERS[name]


def limited_difference(
    limiter: Limiter,
    upwind_diff: NDArray[np.float64],
    local_diff: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    phi(r) * local_diff with r = upwind_diff / local_diff.

    Zero where local_diff is zero (phi is bounded, so the product vanishes).
    """
    flat = local_diff == 0.0
    r = upwind_diff / np.where(flat, 1.0, local_diff)
    return np.where(flat, 0.0, limiter(r) * local_diff)
