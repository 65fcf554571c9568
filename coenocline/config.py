"""
Configuration and type definitions for community simulation.

Species are described by three index-aligned parameter arrays:
    opt: Optimum, the gradient position of peak response
    tol: Tolerance, the width of the response curve (> 0)
    h:   Height, the expected response at the optimum

Surveys are described by one or two gradient designs (where the sites
sit along each environmental axis) plus the species set and the
sampling parameters (dispersion alpha, gradient correlation corr).
"""

from dataclasses import dataclass
from typing import NamedTuple

import jax.numpy as jnp
import jax.random as jr
from jax import Array

from coenocline.errors import InvalidParameter


class SpeciesParams(NamedTuple):
    """
    Gaussian response parameters for a set of species.

    Element i of each array belongs to species i.
    """

    opt: Array  # Optima
    tol: Array  # Tolerances
    h: Array  # Heights at the optimum

    @classmethod
    def evenly_spaced(
        cls,
        num_species: int,
        lower: float,
        upper: float,
        tol: float = 0.25,
        h: float = 20.0,
    ) -> "SpeciesParams":
        """Species with optima spread evenly over [lower, upper].

        All species share the same tolerance and height, which is the
        classic "packed coenocline" used to benchmark ordination methods.

        Args:
            num_species: Number of species
            lower: Optimum of the first species
            upper: Optimum of the last species
            tol: Common tolerance
            h: Common height
        """
        return cls(
            opt=jnp.linspace(lower, upper, num_species),
            tol=jnp.full((num_species,), tol),
            h=jnp.full((num_species,), h),
        )

    @property
    def num_species(self) -> int:
        return int(jnp.shape(self.opt)[0])


SPACINGS = ("regular", "uniform")


@dataclass(frozen=True)
class GradientDesign:
    """
    Placement of survey sites along one environmental gradient.

    regular: sites evenly spaced from lower to upper (inclusive)
    uniform: sites drawn uniformly at random in [lower, upper)
    """

    lower: float
    upper: float
    num_sites: int
    spacing: str = "regular"

    def __post_init__(self) -> None:
        if self.num_sites < 0:
            raise InvalidParameter("num_sites must be nonnegative")
        if self.upper < self.lower:
            raise InvalidParameter("upper must not be below lower")
        if self.spacing not in SPACINGS:
            raise InvalidParameter(
                f"Unknown spacing: {self.spacing}. Use one of {SPACINGS}."
            )

    def sites(self, key: Array | None = None) -> Array:
        """
        Generate site coordinates along this gradient.

        Args:
            key: JAX random key, required for uniform spacing

        Returns:
            Array of shape (num_sites,)
        """
        if self.spacing == "regular":
            return jnp.linspace(self.lower, self.upper, self.num_sites)
        if key is None:
            raise InvalidParameter("uniform spacing requires a random key")
        return jr.uniform(
            key, (self.num_sites,), minval=self.lower, maxval=self.upper
        )


@dataclass(frozen=True)
class SurveyConfig:
    """
    Complete description of a simulated survey.

    Species optima are spread evenly over each gradient's range. A
    survey with gradient2 set is a two-gradient survey; occurrence
    surveys must have two gradients and a height in [0, 1].
    """

    gradient1: GradientDesign
    num_species: int = 5
    tol1: float = 0.25
    h: float = 20.0
    alpha: float | None = 1.1  # None is allowed for expectation-only runs
    gradient2: GradientDesign | None = None
    tol2: float = 1.0
    corr: float = 0.0
    occurrence: bool = False

    def __post_init__(self) -> None:
        if self.num_species < 0:
            raise InvalidParameter("num_species must be nonnegative")
        if self.tol1 <= 0 or self.tol2 <= 0:
            raise InvalidParameter("Tolerances must be positive")
        if self.alpha is not None and self.alpha <= 0:
            raise InvalidParameter("alpha must be positive")
        if not self.h >= 0:
            raise InvalidParameter(f"Height must be nonnegative, got {self.h}")
        if not -1.0 < self.corr < 1.0:
            raise InvalidParameter("corr must lie strictly between -1 and 1")
        if self.gradient2 is not None and (
            self.gradient2.num_sites != self.gradient1.num_sites
        ):
            raise InvalidParameter("Both gradients must have the same num_sites")
        if self.occurrence:
            if self.gradient2 is None:
                raise InvalidParameter("Occurrence surveys need two gradients")
            if not 0.0 <= self.h <= 1.0:
                raise InvalidParameter("Occurrence height must lie in [0, 1]")

    @property
    def num_sites(self) -> int:
        return self.gradient1.num_sites

    @property
    def is_two_gradient(self) -> bool:
        return self.gradient2 is not None

    def species1(self) -> SpeciesParams:
        """Species parameters on gradient 1."""
        return SpeciesParams.evenly_spaced(
            self.num_species,
            self.gradient1.lower,
            self.gradient1.upper,
            tol=self.tol1,
            h=self.h,
        )

    def species2(self) -> SpeciesParams:
        """Species parameters on gradient 2 (height shared with gradient 1)."""
        if self.gradient2 is None:
            raise InvalidParameter("Survey has no second gradient")
        return SpeciesParams.evenly_spaced(
            self.num_species,
            self.gradient2.lower,
            self.gradient2.upper,
            tol=self.tol2,
            h=self.h,
        )

    @classmethod
    def single_gradient(cls) -> "SurveyConfig":
        """100 evenly spaced sites on [4, 6] with 5 species."""
        return cls(
            gradient1=GradientDesign(lower=4.0, upper=6.0, num_sites=100),
            num_species=5,
            tol1=0.25,
            h=20.0,
            alpha=1.1,
        )

    @classmethod
    def two_gradient(cls) -> "SurveyConfig":
        """300 random sites on [4, 6] x [2, 20] with correlated gradients."""
        return cls(
            gradient1=GradientDesign(
                lower=4.0, upper=6.0, num_sites=300, spacing="uniform"
            ),
            gradient2=GradientDesign(
                lower=2.0, upper=20.0, num_sites=300, spacing="uniform"
            ),
            num_species=5,
            tol1=0.25,
            tol2=1.0,
            h=20.0,
            corr=0.5,
            alpha=1.1,
        )

    @classmethod
    def occurrence_survey(cls) -> "SurveyConfig":
        """Presence/absence version of the two-gradient survey."""
        return cls(
            gradient1=GradientDesign(
                lower=4.0, upper=6.0, num_sites=300, spacing="uniform"
            ),
            gradient2=GradientDesign(
                lower=2.0, upper=20.0, num_sites=300, spacing="uniform"
            ),
            num_species=5,
            tol1=0.25,
            tol2=1.0,
            h=0.9,
            corr=0.5,
            alpha=None,
            occurrence=True,
        )
