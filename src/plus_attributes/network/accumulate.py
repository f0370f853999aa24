"""Network accumulations: arbolate sum, total drainage area, and path length"""

import logging

import numpy as np
import polars as pl
import rustworkx as rx

from plus_attributes.exceptions import MalformedNetworkError
from plus_attributes.network.graph import _build_rustworkx_object, _find_cycle_segment, _find_cyclic_nodes
from plus_attributes.schemas.network import OUTLET_TOID

logger = logging.getLogger(__name__)

_OUTLET = -1
_UNRESOLVED = -2


def _downstream_positions(toids: list[int], node_indices: dict[int, int]) -> np.ndarray:
    """Row position of each segment's downstream segment.

    Parameters
    ----------
    toids : list[int]
        Downstream segment ids in row order
    node_indices : dict[int, int]
        Mapping of segment ids to node indices (row positions)

    Returns
    -------
    np.ndarray
        Downstream row positions. -1 for outlets, -2 where the downstream segment is not in the network
    """
    down = np.full(len(toids), _OUTLET, dtype=np.int64)
    for pos, toid in enumerate(toids):
        if toid != OUTLET_TOID:
            down[pos] = node_indices.get(toid, _UNRESOLVED)
    return down


def _topological_order(graph: rx.PyDiGraph) -> list[int]:
    """Upstream-first ordering of the graph nodes"""
    try:
        return list(rx.topological_sort(graph))
    except rx.DAGHasCycle as e:
        raise MalformedNetworkError(_find_cycle_segment(graph), "segment is part of a cycle") from e


def _accumulate_upstream(network: pl.DataFrame, column: str) -> np.ndarray:
    """Sums a column over every segment upstream of, and including, each segment.

    Parameters
    ----------
    network : pl.DataFrame
        Network with ``id``, ``toid`` and ``column``
    column : str
        The column to accumulate

    Returns
    -------
    np.ndarray
        Accumulated values in row order
    """
    ids: list[int] = network["id"].to_list()
    toids: list[int] = network["toid"].fill_null(OUTLET_TOID).to_list()
    graph, node_indices = _build_rustworkx_object(ids, toids)
    down = _downstream_positions(toids, node_indices)

    totals = network[column].cast(pl.Float64).fill_null(0.0).to_numpy().copy()
    for pos in _topological_order(graph):
        if down[pos] >= 0:
            totals[down[pos]] += totals[pos]
    return totals


def calculate_arbolate_sum(network: pl.DataFrame) -> pl.Series:
    """Calculates the arbolate sum (total upstream length) of each segment.

    Parameters
    ----------
    network : pl.DataFrame
        Network with ``id``, ``toid``, and ``length_km`` columns

    Returns
    -------
    pl.Series
        The arbolate sum in row order
    """
    return pl.Series("arbolate_sum", _accumulate_upstream(network, "length_km"))


def calculate_total_drainage_area(network: pl.DataFrame) -> pl.Series:
    """Calculates the total upstream drainage area of each segment.

    Parameters
    ----------
    network : pl.DataFrame
        Network with ``id``, ``toid``, and ``area_sqkm`` columns

    Returns
    -------
    pl.Series
        The total drainage area in row order
    """
    return pl.Series("total_da_sqkm", _accumulate_upstream(network, "area_sqkm"))


def get_pathlength(network: pl.DataFrame) -> pl.DataFrame:
    """Calculates the distance from the bottom of each segment to its outlet.

    The outlet has a path length of 0. Every other segment's path length is the path length
    of its downstream segment plus that segment's length. Segments that do not drain to an
    outlet, because of a cycle or a missing downstream segment, get a null path length.

    Parameters
    ----------
    network : pl.DataFrame
        Network with ``id``, ``toid``, and ``length_km`` columns

    Returns
    -------
    pl.DataFrame
        ``id`` and ``path_length`` columns in row order
    """
    ids: list[int] = network["id"].to_list()
    toids: list[int] = network["toid"].fill_null(OUTLET_TOID).to_list()
    graph, node_indices = _build_rustworkx_object(ids, toids)
    down = _downstream_positions(toids, node_indices)
    lengths = network["length_km"].cast(pl.Float64).fill_null(0.0).to_numpy()

    cyclic = _find_cyclic_nodes(graph)
    if cyclic:
        logger.warning(f"get_pathlength: {len(cyclic)} segments are part of a cycle")
        graph.remove_nodes_from(list(cyclic))

    path_length = np.full(len(ids), np.nan)
    for pos in reversed(_topological_order(graph)):
        dn_pos = down[pos]
        if dn_pos == _OUTLET:
            path_length[pos] = 0.0
        elif dn_pos >= 0:
            path_length[pos] = path_length[dn_pos] + lengths[dn_pos]

    pathlength_df = pl.DataFrame(
        {"id": ids, "path_length": path_length}, schema={"id": pl.Int64, "path_length": pl.Float64}
    )
    return pathlength_df.with_columns(pl.col("path_length").fill_nan(None))
