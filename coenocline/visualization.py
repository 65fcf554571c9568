"""
Plotting helpers for simulated communities.

plot_response_curves draws one line per species against a single
gradient (the classic coenocline picture). plot_response_surface shows
one species over two gradients as a scatter coloured by response.
"""

import matplotlib.pyplot as plt
import numpy as np
from jax.typing import ArrayLike

from coenocline.errors import DimensionMismatch


def plot_response_curves(
    x: ArrayLike,
    y: ArrayLike,
    title: str = "Species Response Curves",
    ax=None,
):
    """
    Plot each species' response against one gradient.

    Sites are sorted by gradient position first so lines do not
    zig-zag when the sites were sampled at random.

    Args:
        x: Site positions, shape (n,)
        y: Sites x species matrix, shape (n, k)
        title: Plot title
        ax: Matplotlib axis (optional, creates new figure if None)

    Returns:
        Matplotlib axis
    """
    x = np.asarray(x)
    y = np.asarray(y)
    if y.ndim != 2 or y.shape[0] != x.shape[0]:
        raise DimensionMismatch(
            f"y must have shape ({x.shape[0]}, k), got {y.shape}"
        )

    if ax is None:
        _, ax = plt.subplots(figsize=(8, 5))

    order = np.argsort(x)
    for j in range(y.shape[1]):
        ax.plot(x[order], y[order, j], linewidth=1.5, label=f"Species {j + 1}")

    ax.set_xlabel("Gradient")
    ax.set_ylabel("Response")
    ax.set_title(title)
    if y.shape[1] <= 10:
        ax.legend(loc="upper right", fontsize=8)
    ax.grid(True, alpha=0.3)

    return ax


def plot_response_surface(
    x1: ArrayLike,
    x2: ArrayLike,
    values: ArrayLike,
    species: int = 0,
    title: str | None = None,
    ax=None,
):
    """
    Plot one species' response over two gradients.

    Args:
        x1: Site positions on gradient 1, shape (n,)
        x2: Site positions on gradient 2, shape (n,)
        values: Sites x species matrix, shape (n, k)
        species: Column of values to plot
        title: Plot title (defaults to the species number)
        ax: Matplotlib axis (optional, creates new figure if None)

    Returns:
        Matplotlib axis
    """
    x1 = np.asarray(x1)
    x2 = np.asarray(x2)
    values = np.asarray(values)
    if x1.shape != x2.shape or values.ndim != 2 or values.shape[0] != x1.shape[0]:
        raise DimensionMismatch("x1, x2 and the rows of values must align")

    if ax is None:
        _, ax = plt.subplots(figsize=(7, 6))

    sc = ax.scatter(x1, x2, c=values[:, species], cmap="viridis", s=20)
    plt.colorbar(sc, ax=ax, label="Response")

    ax.set_xlabel("Gradient 1")
    ax.set_ylabel("Gradient 2")
    ax.set_title(title if title is not None else f"Species {species + 1}")

    return ax
