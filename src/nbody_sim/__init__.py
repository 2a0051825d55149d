"""
nbody-sim: Gravitational n-body simulation with Barnes-Hut approximation.

This package simulates point masses in 2D over discrete time steps. Forces
are evaluated either exactly (all pairs) or with a mass quadtree that
treats distant clusters as single bodies.

Available components:
- spatial: Bounding boxes and the mass quadtree / Barnes-Hut traversal
- force: Direct and Barnes-Hut force evaluators
- simulation: Fixed-capacity simulation with black-hole recycling
- generators: Galaxy and satellite initial conditions
- metrics: Conservation and accuracy diagnostics
- export: JSON body lists
"""

__version__ = "0.1.0"

# Base class for force evaluators
from .base import ForceEvaluator

# Force evaluation strategies
from .force import BarnesHutForce, CutoffPolicy, DirectForce

# Initial conditions
from .generators import SatelliteGenerator, generate_blackhole, generate_galaxy

# Diagnostics
from .metrics import (
    center_of_mass,
    kinetic_energy,
    linear_momentum,
    max_relative_error,
    potential_energy,
    simulation_summary,
    total_mass,
)

# Simulation
from .simulation import Simulation

# Spatial data structures
from .spatial import MERGE_EPSILON, BoundingBox, MassQuadtree, QuadtreeIterator, QuadtreeNode
from .types import (
    Body,
    Event,
    EventType,
    Snapshot,
    Vector,
)

# Validation utilities
from .validation import (
    CapacityError,
    ConfigurationError,
    InvalidBodyError,
    InvalidBoundsError,
    RecyclingFallbackWarning,
    ValidationError,
)

__all__ = [
    # Version
    "__version__",
    # Shared types
    "Vector",
    "Body",
    "Snapshot",
    "EventType",
    "Event",
    # Spatial data structures
    "BoundingBox",
    "MassQuadtree",
    "QuadtreeIterator",
    "QuadtreeNode",
    "MERGE_EPSILON",
    # Force evaluation
    "ForceEvaluator",
    "DirectForce",
    "BarnesHutForce",
    "CutoffPolicy",
    # Simulation
    "Simulation",
    # Generators
    "SatelliteGenerator",
    "generate_galaxy",
    "generate_blackhole",
    # Metrics
    "total_mass",
    "center_of_mass",
    "linear_momentum",
    "kinetic_energy",
    "potential_energy",
    "max_relative_error",
    "simulation_summary",
    # Validation
    "ValidationError",
    "ConfigurationError",
    "InvalidBoundsError",
    "InvalidBodyError",
    "CapacityError",
    "RecyclingFallbackWarning",
]
