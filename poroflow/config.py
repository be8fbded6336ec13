from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from poroflow.discretization.boundary import validate_boundary_tables
from poroflow.errors import ConfigurationError


class PoroelasticProperties(BaseModel):
    shear_modulus:      float = Field(gt=0, description="Shear modulus G [Pa]")
    bulk_modulus:       float = Field(gt=0, description="Drained bulk modulus K [Pa]")
    solid_bulk_modulus: float = Field(gt=0, description="Grain bulk modulus K_s [Pa]")
    solid_density:      float = Field(gt=0, description="Grain density [kg/m³]")
    fluid_bulk_modulus: float = Field(gt=0, description="Fluid bulk modulus K_f [Pa]")
    fluid_density:      float = Field(gt=0, description="Fluid density [kg/m³]")
    fluid_viscosity:    float = Field(gt=0, description="Dynamic viscosity [Pa·s]")
    porosity:           float = Field(gt=0, lt=1, description="Pore (matrix) porosity")
    permeability:       float = Field(gt=0, description="Pore (matrix) permeability [m²]")

    macro_porosity:     Optional[float] = Field(default=None, gt=0, lt=1,
                                                description="Fracture porosity")
    macro_permeability: Optional[float] = Field(default=None, gt=0,
                                                description="Fracture permeability [m²]")

    @model_validator(mode="after")
    def check_grain_stiffness(self):
        if self.solid_bulk_modulus <= self.bulk_modulus:
            raise ValueError("Grain bulk modulus must exceed the drained bulk modulus")
        if self.macro_porosity is not None and self.porosity + self.macro_porosity >= 1:
            raise ValueError("Pore and fracture porosities must sum to less than one")
        return self

    @property
    def has_macro(self):
        return self.macro_porosity is not None and self.macro_permeability is not None


class BoundaryTables(BaseModel):
    """Boundary types and values, rows north/west/south/east, columns u, v, p (, pm)."""

    types:  List[List[int]]
    values: List[List[float]]

    @model_validator(mode="after")
    def check_tables(self):
        validate_boundary_tables(self.types, self.values)
        return self

    @property
    def n_quantities(self):
        return len(self.types[0])

    def arrays(self):
        return validate_boundary_tables(self.types, self.values)


class GridConfig(BaseModel):
    nx:          int   = Field(gt=0, description="Columns")
    ny:          int   = Field(gt=0, description="Rows")
    nt:          int   = Field(ge=2, description="Time levels (nt - 1 steps)")
    lx:          float = Field(gt=0, description="Domain width [m]")
    ly:          float = Field(gt=0, description="Domain height [m]")
    total_time:  float = Field(gt=0, description="Simulated time [s]")
    grid_type:     str = "staggered"
    interp_scheme: str = "NA"
    polygon: Optional[List[List[float]]] = None

    @field_validator("polygon")
    @classmethod
    def check_polygon(cls, v):
        if v is not None and any(len(vertex) != 2 for vertex in v):
            raise ValueError("Polygon vertices must be (x, y) pairs")
        return v


class SolverConfig(BaseModel):
    backend: str = "scipy"
    export_steps: Optional[List[int]] = None

    @field_validator("backend")
    @classmethod
    def check_backend(cls, v):
        if v.lower() not in ("scipy", "petsc"):
            raise ValueError(f"Unknown linear solver backend '{v}'")
        return v.lower()


class RunConfig(BaseModel):
    description: str = "[none]"
    gravity:     float = Field(default=0.0, ge=0)
    grid:        GridConfig
    properties:  PoroelasticProperties
    boundary:    BoundaryTables
    solver:      SolverConfig = SolverConfig()
    strip_size:  Optional[int] = Field(default=None, ge=0)
    strip_load:  float = 0.0
    shape_factor: float = Field(default=0.0, ge=0,
                                description="Inter-porosity shape factor [1/m²]")

    model_config = {"extra": "forbid"}


def load_config(path):
    """Read a YAML run configuration and validate it."""
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")
    with open(path, "r") as f:
        raw = yaml.safe_load(f)
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} does not contain a mapping")
    try:
        return RunConfig(**raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {path}:\n{exc}") from exc
