"""
Simulation drivers: gradients + species -> sites x species matrices.

Each driver runs the same pipeline:

1. Validate every input (lengths, tolerances, alpha, corr, key)
2. Expand sites against species (expand_gauss)
3. Evaluate the Gaussian or bivariate Gaussian response
4. Either return the expectation or sample observations
5. Fold the flat result into an (n_sites, n_species) matrix

All validation happens before the first pseudorandom draw. With
expectation=True no jax.random function is called at all and the key
may be omitted.
"""

import logging

import jax.numpy as jnp
import jax.random as jr
from jax import Array
from jax.typing import ArrayLike

from coenocline import sampling
from coenocline.config import SurveyConfig
from coenocline.errors import DimensionMismatch, InvalidParameter
from coenocline.expand import as_vector, check_equal_lengths, expand_gauss, to_matrix
from coenocline.response import bi_gaussian_response, check_correlation, gaussian_response

logger = logging.getLogger(__name__)


def _two_gradient_surface(
    x1: ArrayLike,
    x2: ArrayLike,
    opt1: ArrayLike,
    tol1: ArrayLike,
    opt2: ArrayLike,
    tol2: ArrayLike,
    h: ArrayLike,
    corr: float,
) -> tuple[Array, int, int]:
    """Expand both gradients and evaluate the bivariate response."""
    x1 = as_vector("x1", x1)
    x2 = as_vector("x2", x2)
    if x1.shape[0] != x2.shape[0]:
        raise DimensionMismatch(
            f"Gradients must have the same number of sites: "
            f"x1={x1.shape[0]}, x2={x2.shape[0]}"
        )
    opt1 = as_vector("opt1", opt1)
    tol1 = as_vector("tol1", tol1)
    opt2 = as_vector("opt2", opt2)
    tol2 = as_vector("tol2", tol2)
    h = as_vector("h", h)
    num_species = check_equal_lengths(
        opt1=opt1, tol1=tol1, opt2=opt2, tol2=tol2, h=h
    )
    num_sites = int(x1.shape[0])

    # Height is shared, so the second grid's h column is ignored
    ex1 = expand_gauss(x1, opt1, tol1, h)
    ex2 = expand_gauss(x2, opt2, tol2, h)
    mu = bi_gaussian_response(
        x1=ex1.x,
        opt1=ex1.opt,
        tol1=ex1.tol,
        x2=ex2.x,
        opt2=ex2.opt,
        tol2=ex2.tol,
        h=ex1.h,
        corr=corr,
    )
    return mu, num_sites, num_species


def sim1d_negbinom(
    x: ArrayLike,
    opt: ArrayLike,
    tol: ArrayLike,
    h: ArrayLike,
    alpha: float | None = None,
    expectation: bool = False,
    *,
    key: Array | None = None,
) -> Array:
    """
    Simulate negative binomial counts along a single gradient.

    Args:
        x: Site positions on the gradient, shape (n,)
        opt: Species optima, shape (k,)
        tol: Species tolerances, shape (k,)
        h: Species abundance at the optimum, shape (k,)
        alpha: Negative binomial dispersion (> 0); unused for expectations
        expectation: Return the mean response instead of sampled counts
        key: JAX random key, required unless expectation=True

    Returns:
        Matrix of shape (n, k): int32 counts, or floats for expectations
    """
    x = as_vector("x", x)
    opt = as_vector("opt", opt)
    num_sites = int(x.shape[0])
    num_species = int(opt.shape[0])
    if not expectation:
        alpha = sampling.check_alpha(alpha)
        key = sampling.check_key(key)

    ex = expand_gauss(x, opt, tol, h)
    logger.debug(
        "1D count simulation: %d sites x %d species (%d rows)",
        num_sites,
        num_species,
        ex.num_rows,
    )
    mu = gaussian_response(x=ex.x, opt=ex.opt, tol=ex.tol, h=ex.h)

    if expectation:
        sim = mu
    else:
        sim = sampling.sample(key, mu, "negbinom", alpha=alpha)
    return to_matrix(sim, num_sites, num_species)


def sim2d_negbinom(
    x1: ArrayLike,
    x2: ArrayLike,
    opt1: ArrayLike,
    tol1: ArrayLike,
    opt2: ArrayLike,
    tol2: ArrayLike,
    h: ArrayLike,
    corr: float = 0.0,
    alpha: float | None = None,
    expectation: bool = False,
    *,
    key: Array | None = None,
) -> Array:
    """
    Simulate negative binomial counts along two, possibly correlated, gradients.

    Args:
        x1: Site positions on gradient 1, shape (n,)
        x2: Site positions on gradient 2, shape (n,)
        opt1: Species optima on gradient 1, shape (k,)
        tol1: Species tolerances on gradient 1, shape (k,)
        opt2: Species optima on gradient 2, shape (k,)
        tol2: Species tolerances on gradient 2, shape (k,)
        h: Species abundance at the joint optimum, shape (k,)
        corr: Correlation between the gradients, in (-1, 1)
        alpha: Negative binomial dispersion (> 0); unused for expectations
        expectation: Return the mean response instead of sampled counts
        key: JAX random key, required unless expectation=True

    Returns:
        Matrix of shape (n, k): int32 counts, or floats for expectations

    Raises:
        DimensionMismatch: If len(x1) != len(x2) or species arrays differ
        InvalidParameter: For bad tolerances, corr, alpha or a missing key
    """
    corr = check_correlation(corr)
    if not expectation:
        alpha = sampling.check_alpha(alpha)
        key = sampling.check_key(key)

    mu, num_sites, num_species = _two_gradient_surface(
        x1, x2, opt1, tol1, opt2, tol2, h, corr
    )
    logger.debug("2D count simulation: %d sites x %d species", num_sites, num_species)

    if expectation:
        sim = mu
    else:
        sim = sampling.sample(key, mu, "negbinom", alpha=alpha)
    return to_matrix(sim, num_sites, num_species)


def sim2d_binom(
    x1: ArrayLike,
    x2: ArrayLike,
    opt1: ArrayLike,
    tol1: ArrayLike,
    opt2: ArrayLike,
    tol2: ArrayLike,
    h: ArrayLike,
    corr: float = 0.0,
    expectation: bool = False,
    *,
    key: Array | None = None,
) -> Array:
    """
    Simulate species occurrence along two, possibly correlated, gradients.

    The bivariate Gaussian response is read as a probability of
    presence, so heights must lie in [0, 1].

    Args:
        x1: Site positions on gradient 1, shape (n,)
        x2: Site positions on gradient 2, shape (n,)
        opt1: Species optima on gradient 1, shape (k,)
        tol1: Species tolerances on gradient 1, shape (k,)
        opt2: Species optima on gradient 2, shape (k,)
        tol2: Species tolerances on gradient 2, shape (k,)
        h: Probability of occurrence at the joint optimum, shape (k,)
        corr: Correlation between the gradients, in (-1, 1)
        expectation: Return occurrence probabilities instead of 0/1 draws
        key: JAX random key, required unless expectation=True

    Returns:
        Matrix of shape (n, k): int32 0/1, or probabilities for expectations
    """
    corr = check_correlation(corr)
    heights = as_vector("h", h)
    if bool(jnp.any(~((heights >= 0) & (heights <= 1)))):
        raise InvalidParameter("Occurrence heights must lie in [0, 1]")
    if not expectation:
        key = sampling.check_key(key)

    prob, num_sites, num_species = _two_gradient_surface(
        x1, x2, opt1, tol1, opt2, tol2, heights, corr
    )
    logger.debug(
        "2D occurrence simulation: %d sites x %d species", num_sites, num_species
    )

    if expectation:
        sim = prob
    else:
        sim = sampling.sample(key, prob, "binomial")
    return to_matrix(sim, num_sites, num_species)


def simulate_survey(
    config: SurveyConfig,
    key: Array | None = None,
    expectation: bool = False,
) -> tuple[Array, Array]:
    """
    Run a configured survey end to end.

    Site positions come from the config's gradient designs; the key is
    split into one sub-key per gradient plus one for sampling.

    Args:
        config: Survey configuration
        key: JAX random key (needed for uniform sites or sampling)
        expectation: Return mean response instead of observations

    Returns:
        Tuple of (sites, matrix). sites has shape (n,) for one gradient
        or (n, 2) for two; matrix has shape (n, num_species).
    """
    if key is not None:
        site_key1, site_key2, sample_key = jr.split(key, 3)
    else:
        site_key1 = site_key2 = sample_key = None

    species1 = config.species1()
    x1 = config.gradient1.sites(site_key1)
    logger.debug(
        "Survey: %d sites x %d species, %s",
        config.num_sites,
        species1.num_species,
        "two gradients" if config.is_two_gradient else "one gradient",
    )

    if not config.is_two_gradient:
        matrix = sim1d_negbinom(
            x1,
            species1.opt,
            species1.tol,
            species1.h,
            alpha=config.alpha,
            expectation=expectation,
            key=sample_key,
        )
        return x1, matrix

    species2 = config.species2()
    x2 = config.gradient2.sites(site_key2)
    sites = jnp.stack([x1, x2], axis=1)

    if config.occurrence:
        matrix = sim2d_binom(
            x1,
            x2,
            species1.opt,
            species1.tol,
            species2.opt,
            species2.tol,
            species1.h,
            corr=config.corr,
            expectation=expectation,
            key=sample_key,
        )
    else:
        matrix = sim2d_negbinom(
            x1,
            x2,
            species1.opt,
            species1.tol,
            species2.opt,
            species2.tol,
            species1.h,
            corr=config.corr,
            alpha=config.alpha,
            expectation=expectation,
            key=sample_key,
        )
    return sites, matrix
