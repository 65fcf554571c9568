"""
Exception types for the community simulator.

All errors are raised eagerly, before any pseudorandom draw is made,
so a failed call never reaches the random number generator.
"""


class SimulationError(ValueError):
    """Base class for invalid simulation inputs."""


class DimensionMismatch(SimulationError):
    """Index-aligned inputs have incompatible lengths."""


class InvalidParameter(SimulationError):
    """A parameter lies outside its valid domain."""
