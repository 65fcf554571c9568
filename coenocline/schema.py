"""
Request/response schemata for config-driven simulation runs.

A request carries plain lists and scalars (e.g. parsed from JSON) and
knows how to run itself through the matching simulation driver. The
"kind" field selects the driver when a raw dict is passed to
run_request.

pydantic only coerces types here. Domain checks (lengths, tolerances,
alpha, corr) stay with the drivers so the same DimensionMismatch and
InvalidParameter errors surface whichever way a simulation is called.
"""

from typing import Annotated, Any, Literal, Union

import jax.random as jr
import numpy as np
from jax import Array
from pydantic import BaseModel, Field, TypeAdapter

from coenocline.simulate import sim1d_negbinom, sim2d_binom, sim2d_negbinom


def _make_key(seed: int | None) -> Array | None:
    return None if seed is None else jr.PRNGKey(seed)


#
# Schemata
#


class SimulationResult(BaseModel):
    """Simulated sites x species matrix."""

    values: list[list[float]] = Field(description="Rows = sites, columns = species")
    shape: tuple[int, int] = Field(description="(num_sites, num_species)")
    dtype: str = Field(description="dtype of the simulated matrix")

    @classmethod
    def from_array(cls, matrix: Array) -> "SimulationResult":
        arr = np.asarray(matrix)
        return cls(values=arr.tolist(), shape=arr.shape, dtype=str(arr.dtype))

    def to_array(self) -> np.ndarray:
        return np.asarray(self.values, dtype=self.dtype).reshape(self.shape)


class SingleGradientRequest(BaseModel):
    """Negative binomial counts along one gradient."""

    kind: Literal["single_gradient"] = "single_gradient"
    x: list[float] = Field(description="Site positions on the gradient")
    opt: list[float] = Field(description="Species optima")
    tol: list[float] = Field(description="Species tolerances")
    h: list[float] = Field(description="Species abundance at the optimum")
    alpha: float | None = Field(default=None, description="Dispersion (> 0)")
    expectation: bool = Field(default=False, description="Return mean response")
    seed: int | None = Field(default=None, description="PRNG seed for sampling")

    def run(self) -> SimulationResult:
        matrix = sim1d_negbinom(
            self.x,
            self.opt,
            self.tol,
            self.h,
            alpha=self.alpha,
            expectation=self.expectation,
            key=_make_key(self.seed),
        )
        return SimulationResult.from_array(matrix)


class _TwoGradientFields(BaseModel):
    x1: list[float] = Field(description="Site positions on gradient 1")
    x2: list[float] = Field(description="Site positions on gradient 2")
    opt1: list[float] = Field(description="Species optima on gradient 1")
    tol1: list[float] = Field(description="Species tolerances on gradient 1")
    opt2: list[float] = Field(description="Species optima on gradient 2")
    tol2: list[float] = Field(description="Species tolerances on gradient 2")
    h: list[float] = Field(description="Species response at the joint optimum")
    corr: float = Field(default=0.0, description="Gradient correlation in (-1, 1)")
    expectation: bool = Field(default=False, description="Return mean response")
    seed: int | None = Field(default=None, description="PRNG seed for sampling")


class TwoGradientRequest(_TwoGradientFields):
    """Negative binomial counts along two gradients."""

    kind: Literal["two_gradient"] = "two_gradient"
    alpha: float | None = Field(default=None, description="Dispersion (> 0)")

    def run(self) -> SimulationResult:
        matrix = sim2d_negbinom(
            self.x1,
            self.x2,
            self.opt1,
            self.tol1,
            self.opt2,
            self.tol2,
            self.h,
            corr=self.corr,
            alpha=self.alpha,
            expectation=self.expectation,
            key=_make_key(self.seed),
        )
        return SimulationResult.from_array(matrix)


class OccurrenceRequest(_TwoGradientFields):
    """Presence/absence along two gradients."""

    kind: Literal["occurrence"] = "occurrence"

    def run(self) -> SimulationResult:
        matrix = sim2d_binom(
            self.x1,
            self.x2,
            self.opt1,
            self.tol1,
            self.opt2,
            self.tol2,
            self.h,
            corr=self.corr,
            expectation=self.expectation,
            key=_make_key(self.seed),
        )
        return SimulationResult.from_array(matrix)


SimulationRequest = Annotated[
    Union[SingleGradientRequest, TwoGradientRequest, OccurrenceRequest],
    Field(discriminator="kind"),
]

_request_adapter = TypeAdapter(SimulationRequest)


def parse_request(
    payload: dict[str, Any],
) -> SingleGradientRequest | TwoGradientRequest | OccurrenceRequest:
    """Validate a raw dict into the request type named by its "kind"."""
    return _request_adapter.validate_python(payload)


def run_request(payload: dict[str, Any]) -> SimulationResult:
    """Parse and run a raw request dict."""
    return parse_request(payload).run()
