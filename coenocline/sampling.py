"""
Stochastic observation models layered on a deterministic response.

Two modes:

negbinom
    Counts from a Poisson-Gamma mixture. Each row gets a multiplier
    g ~ Gamma(shape=alpha, rate=alpha), which has mean 1 and variance
    1/alpha, and the count is y ~ Poisson(mu * g). Marginally y is
    negative binomial with E[y] = mu and Var[y] = mu + mu^2 / alpha.
    Small alpha means strong overdispersion; alpha -> inf recovers a
    plain Poisson.

binomial
    Presence/absence: one Bernoulli draw per row with success
    probability mu (which must lie in [0, 1]).

The mixture is drawn as two explicit steps rather than through a
negative binomial sampler, so the dispersion mechanism stays visible
and the key is split exactly once (gamma key, poisson key).

Expectation-only runs never reach this module: the simulation drivers
return the deterministic surface directly and no key is consumed.
"""

import logging

import jax.numpy as jnp
import jax.random as jr
from jax import Array
from jax.typing import ArrayLike

from coenocline.errors import InvalidParameter

logger = logging.getLogger(__name__)

MODES = ("negbinom", "binomial")


def check_alpha(alpha: float | None) -> float:
    """Return alpha as a float, raising InvalidParameter unless alpha > 0."""
    if alpha is None:
        raise InvalidParameter("alpha is required for negative binomial sampling")
    alpha = float(alpha)
    if not alpha > 0:
        raise InvalidParameter(f"alpha must be positive, got {alpha}")
    return alpha


def check_key(key: Array | None) -> Array:
    if key is None:
        raise InvalidParameter("A PRNG key is required to draw samples")
    return key


def check_mode(mode: str) -> str:
    if mode not in MODES:
        raise InvalidParameter(f"Unknown sampling mode: {mode}. Use one of {MODES}.")
    return mode


def check_probability(p: Array) -> None:
    if bool(jnp.any(~((p >= 0) & (p <= 1)))):
        raise InvalidParameter("Probabilities must lie in [0, 1]")


def negbinom_sample(key: Array, mu: ArrayLike, alpha: float) -> Array:
    """
    Draw negative binomial counts as a Poisson-Gamma mixture.

    Counts are stored in the default integer dtype, so means at or above
    its maximum are rejected. A row whose mean is in range but whose
    Gamma-scaled rate overshoots the maximum saturates at that maximum.

    Args:
        key: JAX random key
        mu: Mean response per row (nonnegative)
        alpha: Dispersion parameter (> 0)

    Returns:
        Integer counts with the same shape as mu

    Raises:
        InvalidParameter: For a bad alpha, a missing key, or a mean that
            is negative or beyond the integer range
    """
    alpha = check_alpha(alpha)
    key = check_key(key)
    mu = jnp.asarray(mu, dtype=jnp.result_type(float))
    if bool(jnp.any(~(mu >= 0))):
        raise InvalidParameter("Mean response must be nonnegative")
    max_count = jnp.iinfo(jnp.result_type(int)).max
    if bool(jnp.any(mu >= max_count)):
        raise InvalidParameter(
            f"Mean response exceeds the largest representable count ({max_count})"
        )

    gamma_key, poisson_key = jr.split(key)
    # jr.gamma has unit rate; dividing by alpha gives rate alpha
    multiplier = jr.gamma(gamma_key, alpha, shape=mu.shape, dtype=mu.dtype) / alpha
    return jr.poisson(poisson_key, mu * multiplier, shape=mu.shape)


def bernoulli_sample(key: Array, p: ArrayLike) -> Array:
    """
    Draw presence (1) / absence (0) with probability p per row.

    Args:
        key: JAX random key
        p: Occurrence probability per row, in [0, 1]

    Returns:
        int32 0/1 outcomes with the same shape as p
    """
    key = check_key(key)
    p = jnp.asarray(p, dtype=jnp.result_type(float))
    check_probability(p)
    return jr.bernoulli(key, p, shape=p.shape).astype(jnp.int32)


def sample(
    key: Array,
    mu: ArrayLike,
    mode: str,
    alpha: float | None = None,
) -> Array:
    """
    Draw observations from a response surface.

    Args:
        key: JAX random key
        mu: Deterministic response (mean or probability) per row
        mode: "negbinom" for counts, "binomial" for occurrence
        alpha: Dispersion, required for "negbinom"

    Returns:
        int32 observations with the same shape as mu
    """
    mode = check_mode(mode)
    logger.debug("Sampling %s observations for %d rows", mode, jnp.size(mu))
    if mode == "negbinom":
        return negbinom_sample(key, mu, alpha)
    return bernoulli_sample(key, mu)
