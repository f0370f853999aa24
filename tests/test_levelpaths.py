"""Tests for hydrosequence and levelpath assignment within one basin."""

import polars as pl
import pytest

from plus_attributes.network.accumulate import calculate_arbolate_sum
from plus_attributes.network.levelpaths import _choose_mainstem_upstream, get_levelpaths


@pytest.fixture
def branching_subnetwork(branching_network: pl.DataFrame) -> pl.DataFrame:
    """The branching network projected to a subnetwork with arbolate sum weights."""
    return branching_network.with_columns(calculate_arbolate_sum(branching_network).alias("weight")).select(
        "id", "toid", "name_id", "weight"
    )


def _as_dict(levelpaths: pl.DataFrame) -> dict[int, tuple[int, int]]:
    return {row["id"]: (row["hydroseq"], row["levelpath"]) for row in levelpaths.iter_rows(named=True)}


class TestChooseMainstemUpstream:
    """Tests for the confluence rule."""

    names = ["A", "B", "", "A"]
    ids = [10, 20, 30, 40]

    def test_same_name_preferred(self) -> None:
        """A same-named upstream segment wins over a heavier one within the override factor."""
        weights = [1.0, 3.0, 0.0, 0.0]
        assert _choose_mainstem_upstream([0, 1], "A", self.names, weights, self.ids, 5.0) == 0

    def test_override_factor(self) -> None:
        """A much heavier upstream segment wins over the same-named one."""
        weights = [1.0, 6.0, 0.0, 0.0]
        assert _choose_mainstem_upstream([0, 1], "A", self.names, weights, self.ids, 5.0) == 1

    def test_unnamed_takes_heaviest(self) -> None:
        """Without a name the heaviest upstream segment wins."""
        weights = [1.0, 3.0, 2.0, 0.0]
        assert _choose_mainstem_upstream([0, 1, 2], "", self.names, weights, self.ids, 5.0) == 1

    def test_no_matching_name_takes_heaviest(self) -> None:
        """A name that no upstream segment shares falls back to weight."""
        weights = [1.0, 3.0, 2.0, 0.0]
        assert _choose_mainstem_upstream([0, 1, 2], "Z", self.names, weights, self.ids, 5.0) == 1

    def test_heaviest_named_among_several(self) -> None:
        """When several upstream segments share the name, the heaviest of them wins."""
        weights = [1.0, 0.0, 0.0, 2.0]
        assert _choose_mainstem_upstream([0, 3], "A", self.names, weights, self.ids, 5.0) == 3

    def test_weight_tie_is_deterministic(self) -> None:
        """Ties on weight are broken by segment id."""
        weights = [1.0, 1.0, 0.0, 0.0]
        assert _choose_mainstem_upstream([0, 1], "", self.names, weights, self.ids, 5.0) == 1
        assert _choose_mainstem_upstream([1, 0], "", self.names, weights, self.ids, 5.0) == 1


class TestGetLevelpaths:
    """Tests for get_levelpaths."""

    def test_branching_basin(self, branching_subnetwork: pl.DataFrame) -> None:
        """The named branch continues the mainstem and other branches start new levelpaths."""
        result = _as_dict(get_levelpaths(branching_subnetwork, override_factor=5.0))

        assert result == {5: (1, 1), 3: (2, 1), 1: (3, 1), 2: (4, 4), 4: (5, 5)}

    def test_override_switches_mainstem(self, branching_subnetwork: pl.DataFrame) -> None:
        """A low override factor lets the heavier branch take over the mainstem."""
        result = _as_dict(get_levelpaths(branching_subnetwork, override_factor=2.0))

        assert result[2] == (3, 1)
        assert result[1][1] != 1

    def test_hydroseq_increases_upstream(self, branching_subnetwork: pl.DataFrame) -> None:
        """Every segment's hydroseq is larger than its downstream segment's."""
        result = _as_dict(get_levelpaths(branching_subnetwork))
        toids = dict(branching_subnetwork.select("id", "toid").iter_rows())

        for seg_id, (hydroseq, _) in result.items():
            if toids[seg_id] != 0:
                assert hydroseq > result[toids[seg_id]][0]

    def test_hydroseq_is_unique(self, branching_subnetwork: pl.DataFrame) -> None:
        """Hydroseq values are 1..n."""
        result = get_levelpaths(branching_subnetwork)

        assert sorted(result["hydroseq"].to_list()) == [1, 2, 3, 4, 5]

    def test_levelpath_is_outlet_hydroseq_of_path(self, branching_subnetwork: pl.DataFrame) -> None:
        """A levelpath is identified by the smallest hydroseq along it."""
        result = get_levelpaths(branching_subnetwork)

        per_path = result.group_by("levelpath").agg(pl.col("hydroseq").min().alias("min_hydroseq"))
        for levelpath, min_hydroseq in per_path.iter_rows():
            assert levelpath == min_hydroseq

    def test_single_segment(self) -> None:
        """A lone outlet is its own levelpath."""
        subnetwork = pl.DataFrame({"id": [20], "toid": [0], "name_id": [""], "weight": [1.5]})

        result = _as_dict(get_levelpaths(subnetwork))

        assert result == {20: (1, 1)}

    def test_outlet_draining_outside_the_basin(self) -> None:
        """A basin whose bottom segment points outside the subnetwork is still rooted there."""
        subnetwork = pl.DataFrame({"id": [1, 2], "toid": [2, 500], "name_id": ["", ""], "weight": [1.0, 2.0]})

        result = _as_dict(get_levelpaths(subnetwork))

        assert result == {2: (1, 1), 1: (2, 1)}

    def test_empty_subnetwork(self) -> None:
        """An empty subnetwork gives an empty, typed result."""
        subnetwork = pl.DataFrame(
            schema={"id": pl.Int64, "toid": pl.Int64, "name_id": pl.Utf8, "weight": pl.Float64}
        )

        result = get_levelpaths(subnetwork)

        assert result.height == 0
        assert result.columns == ["id", "hydroseq", "levelpath"]

    def test_cycle_raises(self) -> None:
        """A cycle inside a basin is an error."""
        subnetwork = pl.DataFrame(
            {"id": [1, 2, 3], "toid": [2, 1, 0], "name_id": ["", "", ""], "weight": [1.0, 1.0, 1.0]}
        )

        with pytest.raises(ValueError, match="cycle"):
            get_levelpaths(subnetwork)

    def test_multiple_outlets_raise(self, linear_network: pl.DataFrame) -> None:
        """A subnetwork must drain to one outlet."""
        subnetwork = linear_network.with_columns(pl.lit(1.0).alias("weight"))

        with pytest.raises(ValueError, match="exactly one outlet"):
            get_levelpaths(subnetwork)

    def test_result_is_deterministic(self, branching_subnetwork: pl.DataFrame) -> None:
        """Row order of the input does not change the assignment."""
        forward = _as_dict(get_levelpaths(branching_subnetwork))
        reverse = _as_dict(get_levelpaths(branching_subnetwork.reverse()))

        assert forward == reverse
