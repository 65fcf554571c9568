"""
Gaussian species response models.

The classical unimodal response of a species along a gradient:

    mu(x) = h * exp(-0.5 * ((x - opt) / tol)^2)

and its two-gradient extension with correlated gradients:

    z1 = (x1 - opt1) / tol1,  z2 = (x2 - opt2) / tol2
    mu = h * exp(-(z1^2 + z2^2 - 2 * corr * z1 * z2) / (2 * (1 - corr^2)))

The bivariate exponent is evaluated in the equivalent conditional form

    (z1 - corr * z2)^2 / (1 - corr^2) + z2^2

which stays nonnegative in floating point even as corr approaches +-1.

Both evaluate elementwise over already-expanded grids. Inputs broadcast
with numpy rules, so scalars may be mixed with arrays.

Properties:
- mu is in [0, h] and equals h exactly at the optimum
- mu decreases monotonically with distance from the optimum
- With corr = 0 the bivariate response is the product of two
  univariate responses
"""

import equinox as eqx
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from coenocline.errors import DimensionMismatch, InvalidParameter


def broadcast_inputs(**values: ArrayLike) -> dict[str, Array]:
    """
    Convert inputs to float arrays and check they broadcast together.

    Raises:
        DimensionMismatch: If the shapes are incompatible
    """
    arrays = {
        name: jnp.asarray(v, dtype=jnp.result_type(float))
        for name, v in values.items()
    }
    try:
        jnp.broadcast_shapes(*(a.shape for a in arrays.values()))
    except ValueError as err:
        detail = ", ".join(f"{name}{a.shape}" for name, a in arrays.items())
        raise DimensionMismatch(f"Incompatible shapes: {detail}") from err
    return arrays


def check_tolerance(name: str, tol: Array) -> None:
    """Raise InvalidParameter unless every tolerance is strictly positive."""
    # Written as not(tol > 0) so NaN is rejected too
    if bool(jnp.any(~(tol > 0))):
        raise InvalidParameter(f"{name} must be strictly positive")


def check_correlation(corr: float) -> float:
    """Return corr as a float, raising InvalidParameter outside (-1, 1)."""
    corr = float(corr)
    if not -1.0 < corr < 1.0:
        raise InvalidParameter(
            f"corr must lie strictly between -1 and 1, got {corr}"
        )
    return corr


@eqx.filter_jit
def _gaussian(x: Array, opt: Array, tol: Array, h: Array) -> Array:
    return h * jnp.exp(-0.5 * ((x - opt) / tol) ** 2)


@eqx.filter_jit
def _bi_gaussian(
    x1: Array,
    opt1: Array,
    tol1: Array,
    x2: Array,
    opt2: Array,
    tol2: Array,
    h: Array,
    corr: Array,
    one_minus_corr_sq: Array,
) -> Array:
    z1 = (x1 - opt1) / tol1
    z2 = (x2 - opt2) / tol2
    # Conditional form: a sum of squares, so the exponent never turns positive
    quad = (z1 - corr * z2) ** 2 / one_minus_corr_sq + z2**2
    return h * jnp.exp(-0.5 * quad)


def gaussian_response(
    x: ArrayLike,
    opt: ArrayLike,
    tol: ArrayLike,
    h: ArrayLike,
) -> Array:
    """
    Gaussian response along a single gradient.

    mu = h * exp(-0.5 * ((x - opt) / tol)^2)

    Args:
        x: Gradient positions
        opt: Species optima
        tol: Species tolerances (must be > 0)
        h: Response heights at the optimum

    Returns:
        Expected response, same shape as the broadcast inputs

    Raises:
        DimensionMismatch: If the inputs do not broadcast
        InvalidParameter: If any tolerance is not positive
    """
    a = broadcast_inputs(x=x, opt=opt, tol=tol, h=h)
    check_tolerance("tol", a["tol"])
    return _gaussian(a["x"], a["opt"], a["tol"], a["h"])


def bi_gaussian_response(
    x1: ArrayLike,
    opt1: ArrayLike,
    tol1: ArrayLike,
    x2: ArrayLike,
    opt2: ArrayLike,
    tol2: ArrayLike,
    h: ArrayLike,
    corr: float = 0.0,
) -> Array:
    """
    Bivariate Gaussian response along two, possibly correlated, gradients.

    The response surface is a bivariate normal kernel scaled to peak at
    h. Positive corr stretches the surface along the x1 = x2 diagonal
    (in standardized units), negative corr along the anti-diagonal.

    Args:
        x1: Positions on gradient 1
        opt1: Optima on gradient 1
        tol1: Tolerances on gradient 1 (must be > 0)
        x2: Positions on gradient 2
        opt2: Optima on gradient 2
        tol2: Tolerances on gradient 2 (must be > 0)
        h: Response heights at the joint optimum
        corr: Correlation between gradients, in (-1, 1)

    Returns:
        Expected response, same shape as the broadcast inputs

    Raises:
        DimensionMismatch: If the inputs do not broadcast
        InvalidParameter: For non-positive tolerances or |corr| >= 1
    """
    corr = check_correlation(corr)
    a = broadcast_inputs(
        x1=x1, opt1=opt1, tol1=tol1, x2=x2, opt2=opt2, tol2=tol2, h=h
    )
    check_tolerance("tol1", a["tol1"])
    check_tolerance("tol2", a["tol2"])
    dtype = a["h"].dtype
    # 1 - corr^2 is formed in double precision before the cast, so corr
    # values that round to +-1 in float32 still give a positive scale
    one_minus_corr_sq = jnp.asarray((1.0 - corr) * (1.0 + corr), dtype=dtype)
    if not bool(one_minus_corr_sq > 0):
        raise InvalidParameter(
            f"corr is too close to +-1 for {dtype} precision, got {corr}"
        )
    return _bi_gaussian(
        a["x1"],
        a["opt1"],
        a["tol1"],
        a["x2"],
        a["opt2"],
        a["tol2"],
        a["h"],
        jnp.asarray(corr, dtype=dtype),
        one_minus_corr_sq,
    )
