"""
Cross-product expansion of sites and species.

Every response evaluation works on flat, equal-length arrays: one row
per (site, species) pair. This module builds those rows from per-site
gradient coordinates and per-species parameters, and folds flat results
back into a sites x species matrix.

Row convention: site index varies fastest. Row r = j * n + i holds
site i paired with species j, so the flat array is a stack of k blocks
of n sites each. to_matrix undoes exactly this ordering.
"""

from typing import NamedTuple

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from coenocline.errors import DimensionMismatch


class ExpandedGrid(NamedTuple):
    """Site x species parameter grid, one row per pair."""

    x: Array  # Site coordinate
    opt: Array  # Species optimum
    tol: Array  # Species tolerance
    h: Array  # Species height

    @property
    def num_rows(self) -> int:
        return int(self.x.shape[0])


def as_vector(name: str, values: ArrayLike) -> Array:
    """
    Coerce input to a one-dimensional floating point array.

    Scalars become length-1 arrays.

    Raises:
        DimensionMismatch: If the input has more than one dimension
    """
    arr = jnp.atleast_1d(jnp.asarray(values, dtype=jnp.result_type(float)))
    if arr.ndim != 1:
        raise DimensionMismatch(
            f"{name} must be one-dimensional, got shape {arr.shape}"
        )
    return arr


def check_equal_lengths(**arrays: Array) -> int:
    """
    Check that all named arrays share one length.

    Returns:
        The common length

    Raises:
        DimensionMismatch: Listing every length when they disagree
    """
    lengths = {name: int(arr.shape[0]) for name, arr in arrays.items()}
    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"{name}={n}" for name, n in lengths.items())
        raise DimensionMismatch(f"Lengths must be equal: {detail}")
    return next(iter(lengths.values()), 0)


def expand_gauss(
    x: ArrayLike,
    opt: ArrayLike,
    tol: ArrayLike,
    h: ArrayLike,
) -> ExpandedGrid:
    """
    Expand site coordinates against species parameters.

    Produces the full outer product: n sites x k species = n*k rows.
    An empty site or species set gives an empty grid.

    Args:
        x: Site coordinates, shape (n,)
        opt: Species optima, shape (k,)
        tol: Species tolerances, shape (k,)
        h: Species heights, shape (k,)

    Returns:
        ExpandedGrid with n*k rows, site index varying fastest

    Raises:
        DimensionMismatch: If opt, tol and h differ in length
    """
    x = as_vector("x", x)
    opt = as_vector("opt", opt)
    tol = as_vector("tol", tol)
    h = as_vector("h", h)
    check_equal_lengths(opt=opt, tol=tol, h=h)

    num_sites = x.shape[0]
    num_species = opt.shape[0]
    return ExpandedGrid(
        x=jnp.tile(x, num_species),
        opt=jnp.repeat(opt, num_sites),
        tol=jnp.repeat(tol, num_sites),
        h=jnp.repeat(h, num_sites),
    )


def to_matrix(values: Array, num_sites: int, num_species: int) -> Array:
    """
    Fold flat grid values into a (num_sites, num_species) matrix.

    Inverse of the expand_gauss row ordering: each consecutive block of
    num_sites values becomes one column.
    """
    return jnp.reshape(values, (num_species, num_sites)).T
