"""
Tests for the simulation drivers.

Includes the expectation contract: with expectation=True no jax.random
function may be called, which is checked by replacing them with
functions that fail on use.
"""

import logging
import math

import jax.numpy as jnp
import jax.random as jr
import pytest

from coenocline import simulate
from coenocline.config import GradientDesign, SurveyConfig
from coenocline.errors import DimensionMismatch, InvalidParameter
from coenocline.response import bi_gaussian_response, gaussian_response

RANDOM_FUNCTIONS = ("split", "gamma", "poisson", "bernoulli", "uniform")


@pytest.fixture
def no_random(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make every jax.random sampler raise if called."""

    def forbidden(*args, **kwargs):
        raise AssertionError("pseudorandom draw attempted")

    for name in RANDOM_FUNCTIONS:
        monkeypatch.setattr(jr, name, forbidden)


@pytest.fixture
def random_calls(monkeypatch: pytest.MonkeyPatch) -> dict[str, int]:
    """Count calls to jax.random samplers while still running them."""
    counts = {name: 0 for name in RANDOM_FUNCTIONS}

    def counted(name, fn):
        def wrapper(*args, **kwargs):
            counts[name] += 1
            return fn(*args, **kwargs)

        return wrapper

    for name in RANDOM_FUNCTIONS:
        monkeypatch.setattr(jr, name, counted(name, getattr(jr, name)))
    return counts


def two_gradient_inputs() -> dict:
    return {
        "x1": jnp.linspace(4.0, 6.0, 30),
        "x2": jnp.linspace(2.0, 20.0, 30),
        "opt1": jnp.array([4.0, 5.0, 6.0]),
        "tol1": jnp.array([0.25, 0.5, 0.25]),
        "opt2": jnp.array([2.0, 11.0, 20.0]),
        "tol2": jnp.array([1.0, 2.0, 1.0]),
    }


class TestSim1dNegbinom:
    """Tests for single-gradient count simulation."""

    def test_expectation_example(self) -> None:
        """Three sites around one species' optimum."""
        result = simulate.sim1d_negbinom(
            [4.0, 5.0, 6.0], [5.0], [1.0], [20.0], alpha=1.1, expectation=True
        )
        expected = jnp.array([[20.0 * math.exp(-0.5)], [20.0], [20.0 * math.exp(-0.5)]])
        assert result.shape == (3, 1)
        assert jnp.allclose(result, expected)

    def test_matrix_entries_match_response(self) -> None:
        """Entry [i, j] is the response of species j at site i."""
        x = jnp.array([0.0, 1.0, 2.0, 3.5])
        opt = jnp.array([0.0, 2.0])
        tol = jnp.array([1.0, 0.5])
        h = jnp.array([1.0, 10.0])
        result = simulate.sim1d_negbinom(x, opt, tol, h, expectation=True)
        for i in range(4):
            for j in range(2):
                ref = gaussian_response(x[i], opt[j], tol[j], h[j])
                assert jnp.isclose(result[i, j], ref)

    def test_expectation_makes_no_random_draws(self, no_random: None) -> None:
        """No key needed and no jax.random call is made."""
        result = simulate.sim1d_negbinom(
            jnp.linspace(4.0, 6.0, 10), [4.5, 5.5], [0.25, 0.25], [20.0, 20.0],
            expectation=True,
        )
        assert result.shape == (10, 2)

    def test_sampling_draws_gamma_then_poisson(
        self, random_calls: dict[str, int]
    ) -> None:
        """Sampling splits the key once and draws gamma and poisson once each."""
        simulate.sim1d_negbinom(
            jnp.linspace(4.0, 6.0, 10), [5.0], [0.5], [20.0],
            alpha=1.1, key=jr.PRNGKey(0),
        )
        assert random_calls["split"] == 1
        assert random_calls["gamma"] == 1
        assert random_calls["poisson"] == 1
        assert random_calls["bernoulli"] == 0

    def test_counts_are_integers(self) -> None:
        """Sampled output is an integer matrix."""
        result = simulate.sim1d_negbinom(
            jnp.linspace(4.0, 6.0, 100),
            jnp.linspace(4.0, 6.0, 5),
            jnp.full((5,), 0.25),
            jnp.full((5,), 20.0),
            alpha=1.1,
            key=jr.PRNGKey(1),
        )
        assert result.shape == (100, 5)
        assert jnp.issubdtype(result.dtype, jnp.integer)
        assert jnp.all(result >= 0)

    def test_key_reproducibility(self) -> None:
        """Same key, same counts; different key, different counts."""
        args = (jnp.linspace(4.0, 6.0, 100), [4.5, 5.0, 5.5], [0.3] * 3, [20.0] * 3)
        a = simulate.sim1d_negbinom(*args, alpha=1.1, key=jr.PRNGKey(5))
        b = simulate.sim1d_negbinom(*args, alpha=1.1, key=jr.PRNGKey(5))
        c = simulate.sim1d_negbinom(*args, alpha=1.1, key=jr.PRNGKey(6))
        assert jnp.array_equal(a, b)
        assert not jnp.array_equal(a, c)

    def test_missing_alpha_raises(self, no_random: None) -> None:
        """Counts need a dispersion parameter."""
        with pytest.raises(InvalidParameter, match="alpha"):
            simulate.sim1d_negbinom([1.0], [1.0], [1.0], [1.0], key=jr.PRNGKey(0))

    def test_missing_key_raises(self) -> None:
        """Counts need a key."""
        with pytest.raises(InvalidParameter, match="key"):
            simulate.sim1d_negbinom([1.0], [1.0], [1.0], [1.0], alpha=1.0)

    def test_invalid_tolerance_raises_before_drawing(self, no_random: None) -> None:
        """Bad tolerances fail without touching the key."""
        with pytest.raises(InvalidParameter, match="tol"):
            simulate.sim1d_negbinom(
                [1.0, 2.0], [1.0, 2.0], [1.0, 0.0], [1.0, 1.0],
                alpha=1.0, key=jr.PRNGKey(0),
            )

    def test_species_length_mismatch_raises(self, no_random: None) -> None:
        """opt, tol and h must line up."""
        with pytest.raises(DimensionMismatch):
            simulate.sim1d_negbinom(
                [1.0, 2.0], [1.0, 2.0], [1.0], [1.0, 1.0],
                alpha=1.0, key=jr.PRNGKey(0),
            )

    def test_huge_mean_raises_before_drawing(self, random_calls: dict[str, int]) -> None:
        """An abundance too large to count fails without touching the key."""
        with pytest.raises(InvalidParameter, match="largest representable count"):
            simulate.sim1d_negbinom(
                [5.0, 5.0], [5.0], [1.0], [5e9], alpha=100.0, key=jr.PRNGKey(0)
            )
        assert random_calls["split"] == 0
        assert random_calls["poisson"] == 0

    def test_no_species(self) -> None:
        """Zero species gives an (n, 0) matrix."""
        result = simulate.sim1d_negbinom([1.0, 2.0, 3.0], [], [], [], expectation=True)
        assert result.shape == (3, 0)


class TestSim2dNegbinom:
    """Tests for two-gradient count simulation."""

    def test_expectation_matches_bivariate_response(self) -> None:
        """Entry [i, j] is the bivariate response of species j at site i."""
        inputs = two_gradient_inputs()
        h = jnp.array([20.0, 10.0, 5.0])
        result = simulate.sim2d_negbinom(**inputs, h=h, corr=0.3, expectation=True)
        assert result.shape == (30, 3)
        for i in (0, 7, 15, 29):
            for j in range(3):
                ref = bi_gaussian_response(
                    inputs["x1"][i], inputs["opt1"][j], inputs["tol1"][j],
                    inputs["x2"][i], inputs["opt2"][j], inputs["tol2"][j],
                    h[j], corr=0.3,
                )
                assert jnp.isclose(result[i, j], ref)

    def test_mismatched_gradients_raise_without_drawing(self, no_random: None) -> None:
        """len(x1) != len(x2) fails before any draw."""
        inputs = two_gradient_inputs()
        inputs["x2"] = inputs["x2"][:-1]
        with pytest.raises(DimensionMismatch, match="same number of sites"):
            simulate.sim2d_negbinom(
                **inputs, h=jnp.full((3,), 20.0), alpha=1.1, key=jr.PRNGKey(0)
            )

    def test_species_length_mismatch_raises(self, no_random: None) -> None:
        """All five species arrays must line up."""
        inputs = two_gradient_inputs()
        with pytest.raises(DimensionMismatch, match="Lengths must be equal"):
            simulate.sim2d_negbinom(
                **inputs, h=jnp.full((2,), 20.0), alpha=1.1, key=jr.PRNGKey(0)
            )

    @pytest.mark.parametrize("corr", [1.0, -1.0, 2.0])
    def test_invalid_correlation_raises(self, corr: float, no_random: None) -> None:
        """corr outside (-1, 1) fails before any draw."""
        with pytest.raises(InvalidParameter, match="corr"):
            simulate.sim2d_negbinom(
                **two_gradient_inputs(),
                h=jnp.full((3,), 20.0),
                corr=corr,
                alpha=1.1,
                key=jr.PRNGKey(0),
            )

    def test_expectation_makes_no_random_draws(self, no_random: None) -> None:
        """Expectation needs neither key nor alpha."""
        result = simulate.sim2d_negbinom(
            **two_gradient_inputs(), h=jnp.full((3,), 20.0), corr=0.5, expectation=True
        )
        assert result.shape == (30, 3)

    def test_sampled_counts(self) -> None:
        """Sampling gives nonnegative integers of the right shape."""
        result = simulate.sim2d_negbinom(
            **two_gradient_inputs(),
            h=jnp.full((3,), 20.0),
            corr=0.5,
            alpha=1.1,
            key=jr.PRNGKey(3),
        )
        assert result.shape == (30, 3)
        assert jnp.issubdtype(result.dtype, jnp.integer)
        assert jnp.all(result >= 0)


class TestSim2dBinom:
    """Tests for two-gradient occurrence simulation."""

    def test_certain_presence_at_optimum(self) -> None:
        """h = 1 at the joint optimum is present at every site."""
        result = simulate.sim2d_binom(
            jnp.full((50,), 5.0), jnp.full((50,), 10.0),
            [5.0], [1.0], [10.0], [2.0], [1.0],
            corr=0.7, key=jr.PRNGKey(0),
        )
        assert result.shape == (50, 1)
        assert jnp.all(result == 1)

    def test_zero_height_never_present(self) -> None:
        """h = 0 means the species is never observed."""
        result = simulate.sim2d_binom(
            **two_gradient_inputs(), h=jnp.zeros(3), key=jr.PRNGKey(1)
        )
        assert jnp.all(result == 0)

    def test_outcomes_are_binary(self) -> None:
        """Sampled output contains only 0 and 1."""
        result = simulate.sim2d_binom(
            **two_gradient_inputs(), h=jnp.full((3,), 0.8), corr=-0.3,
            key=jr.PRNGKey(2),
        )
        assert result.shape == (30, 3)
        assert jnp.issubdtype(result.dtype, jnp.integer)
        assert jnp.all((result == 0) | (result == 1))

    def test_expectation_returns_probabilities(self, no_random: None) -> None:
        """Expectations lie in [0, 1] and make no draws."""
        result = simulate.sim2d_binom(
            **two_gradient_inputs(), h=jnp.full((3,), 0.9), expectation=True
        )
        assert jnp.all(result >= 0.0)
        assert jnp.all(result <= 0.9)

    def test_near_unit_correlation_draws(self) -> None:
        """corr just below 1 still yields valid probabilities."""
        x1 = jnp.linspace(0.0, 3.0, 40)
        result = simulate.sim2d_binom(
            x1, x1 + 1e-4, [0.0], [1.0], [0.0], [1.0], [1.0],
            corr=0.99999999, key=jr.PRNGKey(3),
        )
        assert result.shape == (40, 1)
        assert jnp.all((result == 0) | (result == 1))

    def test_height_above_one_raises(self, no_random: None) -> None:
        """Occurrence heights are probabilities."""
        with pytest.raises(InvalidParameter, match="heights"):
            simulate.sim2d_binom(
                **two_gradient_inputs(), h=jnp.array([0.5, 1.5, 0.5]),
                key=jr.PRNGKey(0),
            )

    def test_mismatched_gradients_raise(self, no_random: None) -> None:
        """len(x1) != len(x2) is a dimension error."""
        inputs = two_gradient_inputs()
        inputs["x1"] = inputs["x1"][:10]
        with pytest.raises(DimensionMismatch):
            simulate.sim2d_binom(**inputs, h=jnp.full((3,), 0.5), key=jr.PRNGKey(0))


class TestOutputShape:
    """Output is always (sites, species) whichever model is used."""

    @pytest.mark.parametrize("n, k", [(1, 1), (7, 3), (40, 12), (0, 4)])
    def test_shapes(self, n: int, k: int) -> None:
        x1 = jnp.linspace(0.0, 1.0, n)
        x2 = jnp.linspace(1.0, 2.0, n)
        opt = jnp.linspace(0.0, 2.0, k)
        tol = jnp.ones(k)
        key = jr.PRNGKey(n * 100 + k)

        assert simulate.sim1d_negbinom(
            x1, opt, tol, jnp.full(k, 5.0), expectation=True
        ).shape == (n, k)
        assert simulate.sim2d_negbinom(
            x1, x2, opt, tol, opt, tol, jnp.full(k, 5.0), alpha=2.0, key=key
        ).shape == (n, k)
        assert simulate.sim2d_binom(
            x1, x2, opt, tol, opt, tol, jnp.full(k, 0.5), key=key
        ).shape == (n, k)


class TestSimulateSurvey:
    """Tests for running configured surveys."""

    def test_single_gradient_expectation_needs_no_key(self, no_random: None) -> None:
        """Regular sites with expectation=True are fully deterministic."""
        sites, matrix = simulate.simulate_survey(
            SurveyConfig.single_gradient(), expectation=True
        )
        assert sites.shape == (100,)
        assert matrix.shape == (100, 5)
        # Species optima sit on the first and last sites
        assert jnp.isclose(matrix[0, 0], 20.0)
        assert jnp.isclose(matrix[-1, -1], 20.0)

    def test_two_gradient_survey(self) -> None:
        """Two-gradient surveys return (n, 2) sites."""
        sites, matrix = simulate.simulate_survey(
            SurveyConfig.two_gradient(), key=jr.PRNGKey(0)
        )
        assert sites.shape == (300, 2)
        assert matrix.shape == (300, 5)
        assert jnp.all((sites[:, 0] >= 4.0) & (sites[:, 0] <= 6.0))
        assert jnp.all((sites[:, 1] >= 2.0) & (sites[:, 1] <= 20.0))

    def test_occurrence_survey(self) -> None:
        """Occurrence presets give binary matrices."""
        _, matrix = simulate.simulate_survey(
            SurveyConfig.occurrence_survey(), key=jr.PRNGKey(1)
        )
        assert matrix.shape == (300, 5)
        assert jnp.all((matrix == 0) | (matrix == 1))

    def test_uniform_sites_need_key(self) -> None:
        """Random site placement cannot run without a key."""
        with pytest.raises(InvalidParameter, match="key"):
            simulate.simulate_survey(SurveyConfig.two_gradient(), expectation=True)

    def test_same_key_reproduces(self) -> None:
        """A survey is a pure function of its key."""
        config = SurveyConfig(
            gradient1=GradientDesign(0.0, 10.0, 25, spacing="uniform"),
            num_species=4,
            tol1=1.0,
            h=8.0,
            alpha=2.0,
        )
        a = simulate.simulate_survey(config, key=jr.PRNGKey(9))
        b = simulate.simulate_survey(config, key=jr.PRNGKey(9))
        assert jnp.array_equal(a[0], b[0])
        assert jnp.array_equal(a[1], b[1])

    def test_logs_grid_dimensions(self, caplog: pytest.LogCaptureFixture) -> None:
        """Debug logs report sites, species and expanded rows."""
        caplog.set_level(logging.DEBUG, logger="coenocline")
        simulate.simulate_survey(SurveyConfig.single_gradient(), expectation=True)
        messages = [record.getMessage() for record in caplog.records]
        assert "Survey: 100 sites x 5 species, one gradient" in messages
        assert "1D count simulation: 100 sites x 5 species (500 rows)" in messages
