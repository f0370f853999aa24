"""Shared network fixtures for the network attribute tests."""

from pathlib import Path

import polars as pl
import pytest

from plus_attributes.config import PlusConfig
from plus_attributes.network.attributes import prepare_network
from plus_attributes.task_instance import TaskInstance


@pytest.fixture
def task_instance() -> TaskInstance:
    """Fixture providing a TaskInstance."""
    return TaskInstance()


@pytest.fixture
def linear_network() -> pl.DataFrame:
    """A chain 1 -> 2 -> 3 -> outlet and an independent outlet 4."""
    return pl.DataFrame(
        {
            "id": [1, 2, 3, 4],
            "toid": [2, 3, 0, 0],
            "name_id": ["A", "A", "A", ""],
            "length_km": [1.0, 2.0, 3.0, 4.0],
            "area_sqkm": [1.0, 2.0, 3.0, 4.0],
        }
    )


@pytest.fixture
def branching_network() -> pl.DataFrame:
    """A single basin with two confluences.

    Network structure:
        1 (A) \\
               -> 3 (A) \\
        2 (B) /          -> 5 (A, outlet)
                  4 ( ) /
    """
    return pl.DataFrame(
        {
            "id": [1, 2, 3, 4, 5],
            "toid": [3, 3, 5, 5, 0],
            "name_id": ["A", "B", "A", "", "A"],
            "length_km": [1.0, 3.0, 1.0, 0.5, 1.0],
            "area_sqkm": [2.0, 3.0, 1.5, 4.0, 5.0],
        }
    )


@pytest.fixture
def sample_network() -> pl.DataFrame:
    """Three basins: a branching basin (outlet 5), a small tree (outlet 12), and a lone outlet (20).

    Rows are deliberately not in topological order.
    """
    return pl.DataFrame(
        {
            "id": [12, 1, 2, 20, 3, 4, 10, 11, 13, 5],
            "toid": [None, 3, 3, 0, 5, 5, 11, 12, 11, 0],
            "name_id": [None, "A", "B", None, "A", None, "C", "C", None, "A"],
            "length_km": [2.0, 1.0, 3.0, 1.5, 1.0, 0.5, 1.2, 0.8, 0.4, 1.0],
            "area_sqkm": [1.0, 2.0, 3.0, 6.0, 1.5, 4.0, 2.5, 1.0, 0.5, 5.0],
            "gnis_name": ["c", "a", "b", "d", "a", "e", "c", "c", "f", "a"],
        }
    )


@pytest.fixture
def prepared_sample_network(sample_network: pl.DataFrame) -> pl.DataFrame:
    """The sample network with defaults filled in and arbolate sum weights."""
    return prepare_network(sample_network)


@pytest.fixture
def cyclic_network() -> pl.DataFrame:
    """Segments 7 and 8 drain into each other; 1 -> 2 is well formed."""
    return pl.DataFrame(
        {
            "id": [1, 2, 7, 8],
            "toid": [2, 0, 8, 7],
            "name_id": ["", "", "", ""],
            "length_km": [1.0, 1.0, 1.0, 1.0],
            "area_sqkm": [1.0, 1.0, 1.0, 1.0],
        }
    )


@pytest.fixture
def sample_config(tmp_path: Path, sample_network: pl.DataFrame) -> PlusConfig:
    """Fixture providing a sample PlusConfig pointing at a parquet copy of the sample network."""
    network_path = tmp_path / "network.parquet"
    sample_network.write_parquet(network_path)
    return PlusConfig(
        network_path=network_path,
        output_dir=tmp_path / "output",
        split_cache_path=tmp_path / "split.parquet",
        status=False,
    )
