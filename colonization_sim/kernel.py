"""Hybrid dispersal kernel: uniform core + Pareto tail.

Distance distribution with boundary radius r, short-range mass p and tail
exponent mu:

    f(x) = p / r                           0 <= x <= r
    f(x) = (1 - p) mu r^mu x^-(mu + 1)     x > r

CDF:
    F(x) = p x / r                         0 <= x <= r
    F(x) = 1 - (1 - p) (r / x)^mu          x > r

Sampling is by inverse transform, branching on the uniform variate u:
    u <= p:  d = u r / p
    u >  p:  d = ((p - 1) r^mu / (u - 1))^(1 / mu)

With p = 0 every draw takes the tail branch (and u = 0 maps to d = r).
For small mu the tail exceeds the float range as u -> 1; those draws come
back as inf and callers decide how to place them.
"""

from __future__ import annotations

from typing import Union

import numpy as np

ArrayOrFloat = Union[float, np.ndarray]


def check_kernel_params(mu: float, p: float, r: float) -> None:
    """Raise ValueError for an invalid kernel parameterisation."""
    if mu <= 0:
        raise ValueError(f"tail exponent mu must be > 0, got {mu}")
    if not (0.0 <= p < 1.0):
        raise ValueError(f"short-range probability p must be in [0, 1), got {p}")
    if r <= 0:
        raise ValueError(f"boundary radius r must be > 0, got {r}")


def sample_dispersal_distance(
    u: ArrayOrFloat,
    mu: float,
    p: float,
    r: float,
) -> ArrayOrFloat:
    """Map uniform variate(s) u ∈ [0, 1) to dispersal distance(s).

    Pure function: the same u always gives the same distance.

    Args:
        u: Uniform variate, scalar or array.
        mu: Tail exponent (> 0).
        p: Probability mass of the uniform branch, in [0, 1).
        r: Boundary radius (> 0).

    Returns:
        Non-negative distance(s), same shape as u (float for scalar u).
        inf where the tail distance overflows float64.

    Raises:
        ValueError: On invalid kernel parameters or u outside [0, 1).
    """
    check_kernel_params(mu, p, r)
    scalar = np.ndim(u) == 0
    u_arr = np.atleast_1d(np.asarray(u, dtype=np.float64))
    if np.any((u_arr < 0.0) | (u_arr >= 1.0)):
        raise ValueError("uniform variates must lie in [0, 1)")

    d = np.empty_like(u_arr)
    short = (u_arr <= p) if p > 0 else np.zeros(u_arr.shape, dtype=bool)
    tail = ~short

    d[short] = u_arr[short] * r / p
    with np.errstate(over='ignore'):
        d[tail] = ((p - 1.0) * r**mu / (u_arr[tail] - 1.0)) ** (1.0 / mu)

    if scalar:
        return float(d[0])
    return d


def kernel_cdf(d: ArrayOrFloat, mu: float, p: float, r: float) -> ArrayOrFloat:
    """Analytic CDF of the dispersal distance."""
    check_kernel_params(mu, p, r)
    scalar = np.ndim(d) == 0
    d_arr = np.atleast_1d(np.asarray(d, dtype=np.float64))
    out = np.zeros_like(d_arr)

    core = (d_arr >= 0.0) & (d_arr <= r)
    tail = d_arr > r
    out[core] = p * d_arr[core] / r
    out[tail] = 1.0 - (1.0 - p) * (r / d_arr[tail]) ** mu

    if scalar:
        return float(out[0])
    return out


def draw_dispersal(
    n: int,
    mu: float,
    p: float,
    r: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Draw n dispersal distances from the run's random stream."""
    return sample_dispersal_distance(rng.random(n), mu, p, r)
