"""
Coenocline Simulation Module

Synthetic community survey data under a Gaussian response model:
species abundance or occurrence observed at sites along one or two
environmental gradients, with optional negative binomial or Bernoulli
sampling noise.

Modules:
    config: Species parameters, gradient designs and survey presets
    errors: DimensionMismatch and InvalidParameter
    expand: Site x species cross-product grids
    response: Gaussian and bivariate Gaussian response surfaces
    sampling: Poisson-Gamma and Bernoulli observation models
    simulate: Simulation drivers returning sites x species matrices
    diagnostics: Dispersion checks and community summaries
    schema: pydantic request models for config-driven runs
    visualization: Response curve and surface plots
"""

from coenocline.config import GradientDesign, SpeciesParams, SurveyConfig
from coenocline.diagnostics import (
    community_summary,
    dispersion_index_test,
    dispersion_report,
    print_dispersion_report,
)
from coenocline.errors import DimensionMismatch, InvalidParameter, SimulationError
from coenocline.expand import ExpandedGrid, expand_gauss, to_matrix
from coenocline.logging_config import setup_logging
from coenocline.response import bi_gaussian_response, gaussian_response
from coenocline.sampling import bernoulli_sample, negbinom_sample, sample
from coenocline.schema import (
    OccurrenceRequest,
    SimulationResult,
    SingleGradientRequest,
    TwoGradientRequest,
    run_request,
)
from coenocline.simulate import (
    sim1d_negbinom,
    sim2d_binom,
    sim2d_negbinom,
    simulate_survey,
)

__all__ = [
    # Config
    "GradientDesign",
    "SpeciesParams",
    "SurveyConfig",
    # Errors
    "DimensionMismatch",
    "InvalidParameter",
    "SimulationError",
    # Grid expansion
    "ExpandedGrid",
    "expand_gauss",
    "to_matrix",
    # Response models
    "bi_gaussian_response",
    "gaussian_response",
    # Sampling
    "bernoulli_sample",
    "negbinom_sample",
    "sample",
    # Simulation
    "sim1d_negbinom",
    "sim2d_binom",
    "sim2d_negbinom",
    "simulate_survey",
    # Diagnostics
    "community_summary",
    "dispersion_index_test",
    "dispersion_report",
    "print_dispersion_report",
    # Requests
    "OccurrenceRequest",
    "SimulationResult",
    "SingleGradientRequest",
    "TwoGradientRequest",
    "run_request",
    # Logging
    "setup_logging",
]
