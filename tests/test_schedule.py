"""Tests for the sequential and parallel levelpath scheduler."""

import polars as pl
import pytest

from plus_attributes.exceptions import WorkerFailureError
from plus_attributes.network.graph import split_network
from plus_attributes.network.levelpaths import get_levelpaths
from plus_attributes.network.schedule import _validate_levelpaths, run_levelpaths


@pytest.fixture
def subnetworks(prepared_sample_network: pl.DataFrame) -> dict[int, pl.DataFrame]:
    """The sample network split into its three basins."""
    return split_network(prepared_sample_network, status=False)


@pytest.fixture
def cyclic_subnetworks(subnetworks: dict[int, pl.DataFrame]) -> dict[int, pl.DataFrame]:
    """The sample basins plus a basin whose segments loop back on themselves."""
    broken = pl.DataFrame(
        {"id": [30, 31, 32], "toid": [31, 30, 0], "name_id": ["", "", ""], "weight": [1.0, 1.0, 1.0]}
    )
    return {**subnetworks, 32: broken}


class TestRunLevelpaths:
    """Tests for run_levelpaths."""

    def test_sequential(self, subnetworks: dict[int, pl.DataFrame]) -> None:
        """Every basin gets a result keyed by its outlet."""
        results = run_levelpaths(subnetworks, cores=0, status=False)

        assert list(results) == [12, 20, 5]
        hydroseq = dict(results[12].select("id", "hydroseq").iter_rows())
        assert hydroseq == {12: 1, 11: 2, 10: 3, 13: 4}
        assert results[20].rows() == [(20, 1, 1)]

    def test_parallel_matches_sequential(self, subnetworks: dict[int, pl.DataFrame]) -> None:
        """The worker pool gives the same answer as a sequential run."""
        sequential = run_levelpaths(subnetworks, cores=None, status=False)
        parallel = run_levelpaths(subnetworks, cores=2, status=False)

        assert list(parallel) == list(sequential)
        for outlet in sequential:
            assert parallel[outlet].sort("id").equals(sequential[outlet].sort("id"))

    def test_results_follow_partition_order(self, subnetworks: dict[int, pl.DataFrame]) -> None:
        """Mixing large and small basins does not reorder the results."""
        results = run_levelpaths(subnetworks, cores=2, large_basin_threshold=3, status=False)

        assert list(results) == [12, 20, 5]

    def test_large_basins_get_cores(self, subnetworks: dict[int, pl.DataFrame]) -> None:
        """Basins above the threshold run in-process with every core."""
        seen: dict[int, int | None] = {}

        def recording_levelpaths(
            subnetwork: pl.DataFrame, override_factor: float, cores: int | None = None
        ) -> pl.DataFrame:
            seen[subnetwork.height] = cores
            return get_levelpaths(subnetwork, override_factor, cores)

        run_levelpaths(
            subnetworks, levelpath_fn=recording_levelpaths, cores=3, large_basin_threshold=0, status=False
        )

        assert seen == {4: 3, 1: 3, 5: 3}

    def test_sequential_gets_no_cores(self, subnetworks: dict[int, pl.DataFrame]) -> None:
        """A sequential run never hands cores to the levelpath function."""
        seen: list[int | None] = []

        def recording_levelpaths(
            subnetwork: pl.DataFrame, override_factor: float, cores: int | None = None
        ) -> pl.DataFrame:
            seen.append(cores)
            return get_levelpaths(subnetwork, override_factor, cores)

        run_levelpaths(subnetworks, levelpath_fn=recording_levelpaths, cores=0, status=False)

        assert seen == [None, None, None]

    def test_override_factor_is_forwarded(self, subnetworks: dict[int, pl.DataFrame]) -> None:
        """The override factor reaches the levelpath function."""
        results = run_levelpaths(subnetworks, override_factor=2.0, cores=0, status=False)

        hydroseq = dict(results[5].select("id", "hydroseq").iter_rows())
        assert hydroseq[2] == 3

    def test_empty(self) -> None:
        """No basins, no results."""
        assert run_levelpaths({}, cores=2, status=False) == {}

    def test_negative_cores(self, subnetworks: dict[int, pl.DataFrame]) -> None:
        """A negative degree of parallelism is rejected."""
        with pytest.raises(ValueError, match="cores"):
            run_levelpaths(subnetworks, cores=-1, status=False)


class TestWorkerFailures:
    """Tests for failures raised while computing a basin."""

    def test_sequential_failure_names_outlet(self, cyclic_subnetworks: dict[int, pl.DataFrame]) -> None:
        """A failing basin is reported with its outlet id."""
        with pytest.raises(WorkerFailureError) as exc_info:
            run_levelpaths(cyclic_subnetworks, cores=0, status=False)

        assert exc_info.value.outlet_id == 32
        assert "cycle" in str(exc_info.value)

    def test_parallel_failure_names_outlet(self, cyclic_subnetworks: dict[int, pl.DataFrame]) -> None:
        """A failure inside a worker process surfaces with its outlet id."""
        with pytest.raises(WorkerFailureError) as exc_info:
            run_levelpaths(cyclic_subnetworks, cores=2, status=False)

        assert exc_info.value.outlet_id == 32

    def test_large_basin_failure(self, cyclic_subnetworks: dict[int, pl.DataFrame]) -> None:
        """A failing large basin stops the run."""
        with pytest.raises(WorkerFailureError) as exc_info:
            run_levelpaths(cyclic_subnetworks, cores=2, large_basin_threshold=2, status=False)

        assert exc_info.value.outlet_id == 32

    def test_missing_segments_rejected(self, subnetworks: dict[int, pl.DataFrame]) -> None:
        """A result that drops a segment is a worker failure."""

        def truncated_levelpaths(
            subnetwork: pl.DataFrame, override_factor: float, cores: int | None = None
        ) -> pl.DataFrame:
            return get_levelpaths(subnetwork, override_factor).head(1)

        with pytest.raises(WorkerFailureError, match="does not match"):
            run_levelpaths(subnetworks, levelpath_fn=truncated_levelpaths, cores=0, status=False)


class TestValidateLevelpaths:
    """Tests for _validate_levelpaths."""

    subnetwork = pl.DataFrame({"id": [1, 2], "toid": [2, 0], "name_id": ["", ""], "weight": [1.0, 2.0]})

    def test_missing_column(self) -> None:
        """Results must carry id, hydroseq and levelpath."""
        result = pl.DataFrame({"id": [1, 2], "hydroseq": [2, 1]})

        with pytest.raises(WorkerFailureError, match="missing columns"):
            _validate_levelpaths(2, self.subnetwork, result)

    def test_null_values(self) -> None:
        """Null attributes are rejected."""
        result = pl.DataFrame({"id": [1, 2], "hydroseq": [2, 1], "levelpath": [None, 1]})

        with pytest.raises(WorkerFailureError, match="null"):
            _validate_levelpaths(2, self.subnetwork, result)

    def test_extra_columns_dropped(self) -> None:
        """Only the levelpath columns are kept, cast to integers."""
        result = pl.DataFrame(
            {"id": [1, 2], "hydroseq": [2.0, 1.0], "levelpath": [1, 1], "extra": ["x", "y"]}
        )

        validated = _validate_levelpaths(2, self.subnetwork, result)

        assert validated.columns == ["id", "hydroseq", "levelpath"]
        assert validated.schema["hydroseq"] == pl.Int64
