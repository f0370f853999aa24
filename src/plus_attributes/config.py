"""A pydantic basemodel for setting PlusConfig defaults"""

from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import BaseModel, Field, model_validator
from pyprojroot import here

from plus_attributes._version import __version__
from plus_attributes.network.schedule import DEFAULT_LARGE_BASIN_THRESHOLD


class PlusConfig(BaseModel):
    """A config validation class for network attribute build settings"""

    network_path: Path | None = Field(
        default=None,
        description="The parquet or csv file holding the input network (id, toid, length_km, area_sqkm, ...)",
    )

    output_dir: Path = Field(
        default=here() / "data/",
        description="The directory for output files to be saved from the network attribute build",
    )

    output_name: Path = Field(
        default=f"plus_attributes_{__version__}.parquet", description="The output file name"
    )

    output_file_path: Path = Field(
        default_factory=lambda data: data["output_dir"] / data["output_name"],
        description="The full output file path",
    )

    override_factor: float = Field(
        default=5.0,
        gt=0,
        description="Weight ratio above which the heaviest upstream segment beats a same-named one",
    )

    cores: int = Field(
        default=0,
        ge=0,
        description="Number of processes for parallel levelpath computation. 0 runs sequentially",
    )

    large_basin_threshold: int = Field(
        default=DEFAULT_LARGE_BASIN_THRESHOLD,
        gt=0,
        description="Basins with more segments than this are processed one at a time using all cores",
    )

    split_cache_path: Path | None = Field(
        default=None,
        description="Optional parquet file caching the basin partition. Read if it exists, else written",
    )

    status: bool = Field(default=True, description="Decides if progress bars are shown")

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """An internal method to read a config from a YAML file

        Parameters
        ----------
        path : str | Path
            The path to the provided YAML file

        Returns
        -------
        PlusConfig
            A configuration object validated
        """
        with open(path) as f:
            data = yaml.safe_load(f)

        return cls(**(data or {}))

    @model_validator(mode="after")
    def check_cache_path(self: Any) -> Self:  # type: ignore[misc,type-var]
        """Make sure the split cache does not overwrite the output"""
        if self.split_cache_path is not None and self.split_cache_path == self.output_file_path:
            raise ValueError("split_cache_path must differ from the output file path")
        return self
