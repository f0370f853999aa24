"""Mainstem (levelpath) and hydrosequence assignment for a single basin"""

import logging
from typing import Protocol

import polars as pl
import rustworkx as rx

from plus_attributes.network.graph import _build_rustworkx_object
from plus_attributes.schemas.network import LEVELPATH_SCHEMA, OUTLET_TOID

logger = logging.getLogger(__name__)


class LevelpathFunction(Protocol):
    """Assigns ``hydroseq`` and ``levelpath`` to the segments of one basin.

    Implementations receive the basin's ``id``, ``toid``, ``name_id`` and ``weight`` columns
    and return one row per segment with ``id``, ``hydroseq`` and ``levelpath``. They must be
    picklable (a module-level function) to run in worker processes.
    """

    def __call__(
        self, subnetwork: pl.DataFrame, override_factor: float, cores: int | None = None
    ) -> pl.DataFrame: ...


def _choose_mainstem_upstream(
    candidates: list[int],
    name_id: str,
    names: list[str],
    weights: list[float],
    ids: list[int],
    override_factor: float,
) -> int:
    """Pick the upstream segment that continues the current levelpath.

    An upstream segment with the same non-empty name is preferred unless the heaviest
    upstream segment outweighs it by more than ``override_factor``.

    Parameters
    ----------
    candidates : list[int]
        Row positions of the upstream segments
    name_id : str
        Name of the current segment
    names : list[str]
        Segment names in row order
    weights : list[float]
        Segment weights in row order
    ids : list[int]
        Segment ids in row order, used to break weight ties
    override_factor : float
        Weight ratio above which the heaviest segment wins over the named one

    Returns
    -------
    int
        Row position of the chosen upstream segment
    """
    heaviest = max(candidates, key=lambda pos: (weights[pos], ids[pos]))
    if not name_id:
        return heaviest

    named = [pos for pos in candidates if names[pos] == name_id]
    if not named:
        return heaviest

    named_heaviest = max(named, key=lambda pos: (weights[pos], ids[pos]))
    if weights[heaviest] > override_factor * weights[named_heaviest]:
        return heaviest
    return named_heaviest


def get_levelpaths(
    subnetwork: pl.DataFrame, override_factor: float = 5.0, cores: int | None = None
) -> pl.DataFrame:
    """Assign hydrosequence and levelpath identifiers to a basin.

    Levelpaths are traced upstream from the outlet. At each confluence the path follows
    the upstream segment chosen by ``_choose_mainstem_upstream`` and every other upstream
    segment begins a new levelpath. Hydrosequence numbers are handed out depth first along
    the levelpaths, starting at 1 on the outlet, so each segment's ``hydroseq`` is larger than
    its downstream segment's. A levelpath is identified by the ``hydroseq`` of its most
    downstream segment.

    Parameters
    ----------
    subnetwork : pl.DataFrame
        One basin with ``id``, ``toid``, ``name_id``, and ``weight`` columns
    override_factor : float, optional
        Weight ratio above which the heaviest upstream segment wins over a same-named one,
        by default 5.0
    cores : int | None, optional
        Accepted for interface compatibility. This implementation runs on one core

    Returns
    -------
    pl.DataFrame
        ``id``, ``hydroseq`` and ``levelpath`` for every segment in the basin

    Raises
    ------
    ValueError
        If the basin does not have exactly one outlet or contains a cycle
    """
    if subnetwork.height == 0:
        return pl.DataFrame(schema=LEVELPATH_SCHEMA)

    ids: list[int] = subnetwork["id"].to_list()
    toids: list[int] = subnetwork["toid"].fill_null(OUTLET_TOID).to_list()
    names: list[str] = subnetwork["name_id"].cast(pl.Utf8).fill_null("").to_list()
    weights: list[float] = subnetwork["weight"].cast(pl.Float64).fill_null(0.0).to_list()

    graph, node_indices = _build_rustworkx_object(ids, toids)
    if not rx.is_directed_acyclic_graph(graph):
        raise ValueError(f"Basin containing {ids[0]} has a cycle")

    outlets = [pos for pos, toid in enumerate(toids) if toid == OUTLET_TOID or toid not in node_indices]
    if len(outlets) != 1:
        raise ValueError(f"Basin must have exactly one outlet, found {len(outlets)}")

    hydroseq = [0] * len(ids)
    levelpath = [0] * len(ids)
    counter = 0

    # (row position, levelpath of the segment downstream, or None to start a new levelpath)
    stack: list[tuple[int, int | None]] = [(outlets[0], None)]
    while stack:
        pos, path_id = stack.pop()
        counter += 1
        hydroseq[pos] = counter
        levelpath[pos] = counter if path_id is None else path_id

        upstream = [src_idx for src_idx, _, _ in graph.in_edges(pos)]
        if not upstream:
            continue

        mainstem = _choose_mainstem_upstream(upstream, names[pos], names, weights, ids, override_factor)
        tributaries = sorted(
            (idx for idx in upstream if idx != mainstem), key=lambda idx: (weights[idx], ids[idx])
        )
        stack.extend((idx, None) for idx in tributaries)
        stack.append((mainstem, levelpath[pos]))

    if counter != len(ids):
        raise ValueError(f"{len(ids) - counter} segments do not drain to outlet {ids[outlets[0]]}")

    return pl.DataFrame({"id": ids, "hydroseq": hydroseq, "levelpath": levelpath}, schema=LEVELPATH_SCHEMA)
