"""
Statistics primitives shared by the simulator, scorer and pattern detector.

Randomness always comes from an injected numpy Generator so that a seeded
generator reproduces a simulation exactly.
"""

import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from wealthcast.errors import InvalidParameterError

# Abramowitz & Stegun 26.2.17 coefficients (|error| < 7.5e-8)
_AS_P = 0.2316419
_AS_B = (0.319381530, -0.356563782, 1.781477937, -1.821255978, 1.330274429)
_INV_SQRT_2PI = 1.0 / math.sqrt(2.0 * math.pi)


def quantile(sorted_sample: Sequence[float], q: float) -> float:
    """
    Linear-interpolated quantile of a pre-sorted sample.

    Args:
        sorted_sample: Values in ascending order
        q: Quantile in [0, 1]

    Returns:
        Interpolated value at position q * (n - 1)

    Raises:
        InvalidParameterError: If the sample is empty or q is outside [0, 1]
    """
    n = len(sorted_sample)
    if n == 0:
        raise InvalidParameterError("Cannot take a quantile of an empty sample")
    if not 0.0 <= q <= 1.0:
        raise InvalidParameterError(f"Quantile must be in [0, 1], got {q}")
    if n == 1:
        return float(sorted_sample[0])

    position = (n - 1) * q
    lower = int(math.floor(position))
    upper = min(lower + 1, n - 1)
    fraction = position - lower
    low_value = float(sorted_sample[lower])
    return low_value + (float(sorted_sample[upper]) - low_value) * fraction


def standard_normal_sample(
    rng: np.random.Generator, size: Optional[int] = None
) -> Union[float, NDArray[np.float64]]:
    """
    Draw N(0, 1) samples with the Box-Muller transform.

    Each sample consumes two uniform(0, 1) draws from ``rng``.

    Args:
        rng: Injected random generator
        size: Number of samples; None returns a single float

    Returns:
        One float, or an array of ``size`` samples
    """
    # 1 - U keeps the log argument in (0, 1]
    u1 = 1.0 - rng.random(size)
    u2 = rng.random(size)
    z = np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)
    if size is None:
        return float(z)
    return z


def standard_normal_cdf(z: float) -> float:
    """Standard normal CDF via the Abramowitz-Stegun rational approximation."""
    t = 1.0 / (1.0 + _AS_P * abs(z))
    poly = t * (_AS_B[0] + t * (_AS_B[1] + t * (_AS_B[2] + t * (_AS_B[3] + t * _AS_B[4]))))
    tail = _INV_SQRT_2PI * math.exp(-z * z / 2.0) * poly
    return 1.0 - tail if z >= 0 else tail


def mean_and_std(values: Sequence[float]) -> Tuple[float, float]:
    """Mean and population standard deviation; (0, 0) for an empty sequence."""
    if len(values) == 0:
        return 0.0, 0.0
    arr = np.asarray(values, dtype=float)
    return float(np.mean(arr)), float(np.std(arr))


def coefficient_of_variation(values: Sequence[float]) -> float:
    """
    Coefficient of variation sigma / mu.

    Returns 0 for fewer than two values or a non-positive mean.
    """
    if len(values) < 2:
        return 0.0
    mean, std = mean_and_std(values)
    if mean <= 0:
        return 0.0
    return std / mean
