"""A file for all graph related functions: graph construction, validation, and outlet partitioning"""

import logging
from pathlib import Path
from typing import Any

import polars as pl
import rustworkx as rx
from tqdm import tqdm

from plus_attributes.exceptions import MalformedNetworkError, MissingColumnError
from plus_attributes.schemas.network import OUTLET_TOID, SUBNETWORK_COLUMNS

logger = logging.getLogger(__name__)


def _build_rustworkx_object(ids: list[int], toids: list[int]) -> tuple[rx.PyDiGraph, dict[int, int]]:
    """Build a RustWorkX directed graph with an edge from each segment to its downstream segment.

    Node indices follow row order, so node ``i`` is the segment in row ``i``. Downstream
    references that are the outlet sentinel or that point outside the network produce no edge.

    Parameters
    ----------
    ids : list[int]
        Segment ids in row order
    toids : list[int]
        Downstream segment ids in row order

    Returns
    -------
    tuple[rx.PyDiGraph, dict[int, int]]
        The network in graph form and the node index for each segment id
    """
    graph = rx.PyDiGraph()
    node_indices: dict[int, int] = dict(zip(ids, graph.add_nodes_from(ids), strict=True))

    edges: list[tuple[int, int, Any]] = []
    for from_idx, toid in enumerate(toids):
        if toid == OUTLET_TOID or toid not in node_indices:
            continue
        edges.append((from_idx, node_indices[toid], None))
    graph.add_edges_from(edges)
    return graph, node_indices


def _find_cyclic_nodes(graph: rx.PyDiGraph) -> set[int]:
    """Find every node index that sits on a cycle, including self-loops.

    Parameters
    ----------
    graph : rx.PyDiGraph
        The DiGraph object

    Returns
    -------
    set[int]
        Node indices that belong to a cycle
    """
    cyclic: set[int] = set()
    for component in rx.strongly_connected_components(graph):
        if len(component) > 1:
            cyclic.update(component)
    for src_idx, tgt_idx in graph.edge_list():
        if src_idx == tgt_idx:
            cyclic.add(src_idx)
    return cyclic


def _find_cycle_segment(graph: rx.PyDiGraph) -> Any:
    """Returns the smallest segment id that is part of a cycle, or None for an acyclic graph"""
    cyclic = _find_cyclic_nodes(graph)
    if not cyclic:
        return None
    return min(graph[node_idx] for node_idx in cyclic)


def _detect_malformed(
    ids: list[int], toids: list[int], graph: rx.PyDiGraph, node_indices: dict[int, int]
) -> None:
    """Validate that the network is a rooted, outlet-terminated forest.

    Parameters
    ----------
    ids : list[int]
        Segment ids in row order
    toids : list[int]
        Downstream segment ids in row order
    graph : rx.PyDiGraph
        The graph built by ``_build_rustworkx_object``
    node_indices : dict[int, int]
        Mapping of segment ids to node indices

    Raises
    ------
    MalformedNetworkError
        If an id repeats, a segment drains into itself, a downstream id does not exist,
        or the downstream references form a cycle
    """
    if len(node_indices) != len(ids):
        seen: set[int] = set()
        for seg_id in ids:
            if seg_id in seen:
                raise MalformedNetworkError(seg_id, "segment id is not unique")
            seen.add(seg_id)

    for seg_id, toid in zip(ids, toids, strict=True):
        if toid == OUTLET_TOID:
            continue
        if toid == seg_id:
            raise MalformedNetworkError(seg_id, "segment drains into itself")
        if toid not in node_indices:
            raise MalformedNetworkError(seg_id, f"downstream segment {toid} does not exist in the network")

    if not rx.is_directed_acyclic_graph(graph):
        raise MalformedNetworkError(_find_cycle_segment(graph), "segment is part of a cycle")


def build_network_graph(network: pl.DataFrame) -> tuple[rx.PyDiGraph, dict[int, int]]:
    """Builds and validates the downstream graph of a network.

    Parameters
    ----------
    network : pl.DataFrame
        Network with ``id`` and ``toid`` columns. ``toid == 0`` marks an outlet

    Returns
    -------
    tuple[rx.PyDiGraph, dict[int, int]]
        The graph and the node index for each segment id

    Raises
    ------
    MalformedNetworkError
        If the network is not a rooted forest
    """
    ids: list[int] = network["id"].to_list()
    toids: list[int] = network["toid"].to_list()
    graph, node_indices = _build_rustworkx_object(ids, toids)
    _detect_malformed(ids, toids, graph, node_indices)
    return graph, node_indices


def find_outlets(network: pl.DataFrame) -> list[int]:
    """Find the outlets of the network, in row order.

    Parameters
    ----------
    network : pl.DataFrame
        The network

    Returns
    -------
    list[int]
        All segment ids with no downstream segment
    """
    return network.filter(pl.col("toid") == OUTLET_TOID)["id"].to_list()


def _extract_outlet_ids(outlet: int, graph: rx.PyDiGraph, node_indices: dict[int, int]) -> set[int]:
    """Collect the outlet and every segment that drains into it.

    Parameters
    ----------
    outlet : int
        Outlet segment id
    graph : rx.PyDiGraph
        Full network graph
    node_indices : dict[int, int]
        Mapping of segment ids to node indices in the full graph

    Returns
    -------
    set[int]
        Segment ids of this outlet's basin
    """
    start_node = node_indices[outlet]
    upstream_nodes: set[int] = rx.ancestors(graph, start_node)
    upstream_nodes.add(start_node)
    return {graph[node_idx] for node_idx in upstream_nodes}


def _group_by_outlet(labelled: pl.DataFrame, outlets: list[int]) -> dict[int, pl.DataFrame]:
    """Splits a frame with an ``outlet_id`` column into one frame per outlet, in outlet order"""
    groups = labelled.partition_by("outlet_id", as_dict=True, include_key=False, maintain_order=True)
    return {outlet: groups[(outlet,)] for outlet in outlets}


def _partition_all_outlet_subnetworks(
    outlets: list[int],
    graph: rx.PyDiGraph,
    node_indices: dict[int, int],
    network: pl.DataFrame,
    status: bool = True,
) -> dict[int, pl.DataFrame]:
    """Partition the network into one subnetwork per outlet.

    Each outlet's basin is found by reverse reachability. The basin rows are projected
    to ``id``, ``toid``, ``name_id`` and ``weight`` with ``name_id`` cast to text.

    Parameters
    ----------
    outlets : list[int]
        Outlet segment ids
    graph : rx.PyDiGraph
        Full network graph
    node_indices : dict[int, int]
        Mapping of segment ids to node indices in the full graph
    network : pl.DataFrame
        The full network
    status : bool, optional
        Show a progress bar, by default True

    Returns
    -------
    dict[int, pl.DataFrame]
        Subnetworks keyed by outlet id, in outlet order

    Raises
    ------
    MalformedNetworkError
        If a segment belongs to no basin or to more than one
    """
    if network.height == 0:
        return {}

    basin_of: dict[int, int] = {}
    for outlet in tqdm(outlets, desc="Partitioning basins", disable=not status):
        for seg_id in _extract_outlet_ids(outlet, graph, node_indices):
            if seg_id in basin_of:
                raise MalformedNetworkError(
                    seg_id, f"segment drains to both outlet {basin_of[seg_id]} and outlet {outlet}"
                )
            basin_of[seg_id] = outlet

    if len(basin_of) != network.height:
        unassigned = network.filter(~pl.col("id").is_in(list(basin_of)))["id"][0]
        raise MalformedNetworkError(unassigned, "segment does not drain to any outlet")

    labelled = network.select(SUBNETWORK_COLUMNS).with_columns(
        pl.col("name_id").cast(pl.Utf8),
        pl.col("id").replace_strict(basin_of, return_dtype=pl.Int64).alias("outlet_id"),
    )
    return _group_by_outlet(labelled, outlets)


def _read_partition_cache(cache_path: Path) -> dict[int, pl.DataFrame]:
    """Reads a partition snapshot written by ``_write_partition_cache``"""
    cached = pl.read_parquet(cache_path)
    outlets: list[int] = cached["outlet_id"].unique(maintain_order=True).to_list()
    return _group_by_outlet(cached, outlets)


def _write_partition_cache(subnetworks: dict[int, pl.DataFrame], cache_path: Path) -> None:
    """Writes the partition to a single parquet file with an ``outlet_id`` column"""
    frames = [
        subnetwork.with_columns(pl.lit(outlet, dtype=pl.Int64).alias("outlet_id"))
        for outlet, subnetwork in subnetworks.items()
    ]
    if frames:
        snapshot = pl.concat(frames)
    else:
        snapshot = pl.DataFrame(
            schema={
                "id": pl.Int64,
                "toid": pl.Int64,
                "name_id": pl.Utf8,
                "weight": pl.Float64,
                "outlet_id": pl.Int64,
            }
        )
    cache_path.parent.mkdir(parents=True, exist_ok=True)
    snapshot.write_parquet(cache_path)


def _covers_network(subnetworks: dict[int, pl.DataFrame], network: pl.DataFrame) -> bool:
    """Checks that the subnetworks hold exactly the network's ids"""
    cached_ids: set[int] = set()
    for subnetwork in subnetworks.values():
        cached_ids.update(subnetwork["id"].to_list())
    n_rows = sum(subnetwork.height for subnetwork in subnetworks.values())
    return n_rows == len(cached_ids) and cached_ids == set(network["id"].to_list())


def split_network(
    network: pl.DataFrame, cache_path: str | Path | None = None, status: bool = True
) -> dict[int, pl.DataFrame]:
    """Splits a network into independent outlet-rooted subnetworks.

    Parameters
    ----------
    network : pl.DataFrame
        Network with ``id``, ``toid``, ``name_id``, and ``weight`` columns
    cache_path : str | Path | None, optional
        Parquet file holding a previously computed partition. Read when it exists and
        matches the network, otherwise written after partitioning. By default None
    status : bool, optional
        Show a progress bar, by default True

    Returns
    -------
    dict[int, pl.DataFrame]
        Subnetworks keyed by outlet id, in outlet order

    Raises
    ------
    MissingColumnError
        If the network lacks one of the subnetwork columns
    MalformedNetworkError
        If the network is not a rooted forest
    """
    for column in SUBNETWORK_COLUMNS:
        if column not in network.columns:
            raise MissingColumnError(column)

    if cache_path is not None:
        cache_path = Path(cache_path)
        if cache_path.exists():
            logger.info(f"split_network: Reading subnetworks from {cache_path}")
            cached = _read_partition_cache(cache_path)
            if _covers_network(cached, network):
                return cached
            logger.warning(f"split_network: {cache_path} does not match the network. Rebuilding partition")

    logger.info("split_network: Building network graph")
    graph, node_indices = build_network_graph(network)

    outlets = find_outlets(network)
    logger.info(f"split_network: Partitioning {network.height} segments into {len(outlets)} basins")
    subnetworks = _partition_all_outlet_subnetworks(outlets, graph, node_indices, network, status=status)

    if cache_path is not None:
        logger.info(f"split_network: Writing subnetworks to {cache_path}")
        _write_partition_cache(subnetworks, cache_path)

    return subnetworks
