"""
Diagnostics for simulated community data.

Utilities to check that sampled counts have the dispersion the model
promises, and to summarise a simulated sites x species matrix. Key
relationship for the Poisson-Gamma mixture:

    Var[y] = mu + mu^2 / alpha

so the dispersion index Var/Mean is 1 + mu/alpha, approaching 1
(Poisson) as alpha grows.
"""

import jax.numpy as jnp
import jax.random as jr
import numpy as np
from jax import Array
from jax.typing import ArrayLike
from scipy import stats

from coenocline import sampling
from coenocline.errors import InvalidParameter


def expected_variance(mu: float, alpha: float) -> float:
    """Variance of the Poisson-Gamma mixture with mean mu."""
    return mu + mu**2 / alpha


def sample_negbinom_draws(
    key: Array,
    mu: float,
    alpha: float,
    num_draws: int = 10000,
) -> Array:
    """
    Draw repeated counts at a fixed mean.

    Returns:
        int32 array of shape (num_draws,)
    """
    return sampling.negbinom_sample(key, jnp.full((num_draws,), mu), alpha)


def dispersion_report(
    key: Array,
    mu: float = 10.0,
    alphas: tuple[float, ...] = (0.5, 1.0, 2.0, 10.0, 100.0),
    num_draws: int = 20000,
) -> dict[str, dict[str, float]]:
    """
    Compare empirical and theoretical moments across dispersion values.

    Args:
        key: JAX random key
        mu: Fixed mean response
        alphas: Dispersion values to test
        num_draws: Draws per alpha

    Returns:
        Nested dict: {"alpha=<a>": {metric_name: value}}
    """
    keys = jr.split(key, len(alphas))
    report = {}
    for subkey, alpha in zip(keys, alphas):
        draws = sample_negbinom_draws(subkey, mu, alpha, num_draws)
        draws = np.asarray(draws, dtype=np.float64)
        mean = float(draws.mean())
        variance = float(draws.var(ddof=1))
        report[f"alpha={alpha:g}"] = {
            "alpha": float(alpha),
            "mean": mean,
            "variance": variance,
            "expected_variance": expected_variance(mu, alpha),
            "dispersion_index": variance / mean if mean > 0 else float("nan"),
        }
    return report


def dispersion_index_test(counts: ArrayLike) -> dict[str, float]:
    """
    Index-of-dispersion test against a Poisson null.

    Under Poisson sampling (n - 1) * Var/Mean follows a chi-squared
    distribution with n - 1 degrees of freedom. A small upper-tail
    p-value indicates overdispersion.

    Args:
        counts: 1-D array of counts

    Returns:
        Dict with index, statistic, dof and p_value
    """
    counts = np.asarray(counts, dtype=np.float64).ravel()
    n = counts.size
    if n < 2:
        raise InvalidParameter("Need at least two counts")
    mean = counts.mean()
    if mean <= 0:
        raise InvalidParameter("Counts must have a positive mean")
    index = counts.var(ddof=1) / mean
    dof = n - 1
    statistic = dof * index
    return {
        "index": float(index),
        "statistic": float(statistic),
        "dof": float(dof),
        "p_value": float(stats.chi2.sf(statistic, dof)),
    }


def community_summary(matrix: ArrayLike) -> dict[str, np.ndarray | float | int]:
    """
    Summarise a sites x species matrix.

    Returns a dictionary with:
    - species_totals: Total abundance per species
    - occupancy: Fraction of sites where each species is present
    - richness: Number of species present per site
    - total_abundance: Sum over the whole matrix
    - mean_richness: Average richness per site
    - empty_sites: Number of sites with no species present
    """
    m = np.asarray(matrix, dtype=np.float64)
    if m.ndim != 2:
        raise InvalidParameter(f"Expected a 2-D matrix, got shape {m.shape}")
    present = m > 0
    richness = present.sum(axis=1)
    num_sites = m.shape[0]
    return {
        "species_totals": m.sum(axis=0),
        "occupancy": present.mean(axis=0) if num_sites else np.zeros(m.shape[1]),
        "richness": richness,
        "total_abundance": float(m.sum()),
        "mean_richness": float(richness.mean()) if num_sites else 0.0,
        "empty_sites": int((richness == 0).sum()),
    }


def print_dispersion_report(report: dict[str, dict[str, float]]) -> None:
    """Pretty-print a dispersion report."""
    print("\n" + "=" * 60)
    print("DISPERSION REPORT - Poisson-Gamma counts")
    print("=" * 60)
    print(f"{'Alpha':<10} {'Mean':>8} {'Var':>10} {'E[Var]':>10} {'Index':>8}")
    print("-" * 60)

    for metrics in report.values():
        print(
            f"{metrics['alpha']:<10g} "
            f"{metrics['mean']:>8.3f} "
            f"{metrics['variance']:>10.3f} "
            f"{metrics['expected_variance']:>10.3f} "
            f"{metrics['dispersion_index']:>8.3f}"
        )

    print("=" * 60)
    print("Index = Var/Mean; 1.0 is Poisson, larger is overdispersed")
    print()
