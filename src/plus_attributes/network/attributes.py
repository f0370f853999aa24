"""Adds NHDPlus network attributes to a river network"""

import logging
import warnings
from pathlib import Path

import pandas as pd
import polars as pl

from plus_attributes.exceptions import MalformedNetworkError, MissingColumnError, UndefinedPathLengthWarning
from plus_attributes.network.accumulate import (
    calculate_arbolate_sum,
    calculate_total_drainage_area,
    get_pathlength,
)
from plus_attributes.network.combine import combine_networks
from plus_attributes.network.graph import split_network
from plus_attributes.network.levelpaths import LevelpathFunction, get_levelpaths
from plus_attributes.network.schedule import DEFAULT_LARGE_BASIN_THRESHOLD, run_levelpaths
from plus_attributes.schemas.network import OUTLET_TOID, REQUIRED_COLUMNS, AttributeColumns

logger = logging.getLogger(__name__)


def prepare_network(network: pl.DataFrame) -> pl.DataFrame:
    """Validate and normalize an input network.

    Ids are cast to integers and null ``toid`` values become the outlet sentinel. A missing
    ``name_id`` is filled with empty names and a missing ``weight`` is computed as the
    arbolate sum.

    Parameters
    ----------
    network : pl.DataFrame
        Network with ``id``, ``toid``, ``length_km``, ``area_sqkm`` and optionally
        ``name_id`` and ``weight`` columns

    Returns
    -------
    pl.DataFrame
        The normalized network

    Raises
    ------
    MissingColumnError
        If a required column is absent
    MalformedNetworkError
        If an id is null or uses the outlet sentinel
    """
    for column in REQUIRED_COLUMNS:
        if column not in network.columns:
            raise MissingColumnError(column)

    if network["id"].null_count() > 0:
        raise MalformedNetworkError(None, "segment ids must not be null")

    network = network.with_columns(
        pl.col("id").cast(pl.Int64),
        pl.col("toid").cast(pl.Int64).fill_null(OUTLET_TOID),
        pl.col("length_km").cast(pl.Float64),
        pl.col("area_sqkm").cast(pl.Float64),
    )
    if (network["id"] == OUTLET_TOID).any():
        raise MalformedNetworkError(OUTLET_TOID, "segment id is reserved for outlets")

    if "name_id" in network.columns:
        network = network.with_columns(pl.col("name_id").cast(pl.Utf8).fill_null(""))
    else:
        network = network.with_columns(pl.lit("").alias("name_id"))

    if "weight" in network.columns:
        network = network.with_columns(pl.col("weight").cast(pl.Float64))
    else:
        logger.info("prepare_network: No weight provided, using arbolate sum")
        network = network.with_columns(calculate_arbolate_sum(network).alias("weight"))

    return network


def _join_downstream(network: pl.DataFrame, column: str, alias: str) -> pl.DataFrame:
    """Left joins the downstream segment's ``column`` as ``alias``, 0 where there is none"""
    downstream = network.select(pl.col("id").alias("toid"), pl.col(column).alias(alias))
    return network.join(downstream, on="toid", how="left").with_columns(pl.col(alias).fill_null(0))


def derive_network_attributes(network: pl.DataFrame, combined: pl.DataFrame) -> pl.DataFrame:
    """Derive the network attributes from the combined levelpaths.

    Parameters
    ----------
    network : pl.DataFrame
        A prepared network
    combined : pl.DataFrame
        ``id``, ``hydroseq``, ``levelpath``, ``terminal_path`` from ``combine_networks``

    Returns
    -------
    pl.DataFrame
        The network with ``terminal_path``, ``hydroseq``, ``levelpath``, ``path_length``,
        ``dn_levelpath``, ``dn_hydroseq``, ``total_da_sqkm``, and ``terminal_flag``

    Raises
    ------
    ValueError
        If any segment is missing from ``combined`` or the joins change the row count
    """
    n_segments = network.height
    existing = [column for column in AttributeColumns if column in network.columns]
    if existing:
        logger.info(f"derive_network_attributes: Replacing existing columns {existing}")
        network = network.drop(existing)

    network = network.join(
        combined.select("id", "terminal_path", "hydroseq", "levelpath"), on="id", how="left"
    )
    unassigned = network.filter(pl.col("hydroseq").is_null())
    if unassigned.height > 0:
        raise ValueError(
            f"{unassigned.height} segments were not assigned a hydroseq, "
            f"e.g. {unassigned['id'].head(5).to_list()}"
        )

    pathlength = get_pathlength(network.select("id", "toid", "length_km"))
    undefined = pathlength.filter(pl.col("path_length").is_null())
    if undefined.height > 0:
        message = (
            f"Path length is undefined for {undefined.height} segments, "
            f"e.g. {undefined['id'].head(5).to_list()}"
        )
        logger.warning(f"derive_network_attributes: {message}")
        warnings.warn(message, UndefinedPathLengthWarning, stacklevel=2)
    network = network.join(
        pathlength.filter(pl.col("path_length").is_not_null()).unique("id"), on="id", how="left"
    )

    network = _join_downstream(network, "levelpath", "dn_levelpath")
    network = _join_downstream(network, "hydroseq", "dn_hydroseq")

    network = network.with_columns(
        calculate_total_drainage_area(network.select("id", "toid", "area_sqkm")).alias("total_da_sqkm")
    )

    network = network.with_columns(
        pl.when(pl.col("hydroseq") == pl.col("hydroseq").min().over("terminal_path"))
        .then(1)
        .otherwise(0)
        .cast(pl.Int32)
        .alias("terminal_flag")
    )

    if network.height != n_segments:
        raise ValueError(f"Network has {network.height} segments after joins, expected {n_segments}")
    return network


def add_plus_network_attributes(
    network: pl.DataFrame | pd.DataFrame,
    override_factor: float = 5.0,
    cores: int | None = None,
    split_cache: str | Path | None = None,
    status: bool = True,
    large_basin_threshold: int = DEFAULT_LARGE_BASIN_THRESHOLD,
    levelpath_fn: LevelpathFunction = get_levelpaths,
) -> pl.DataFrame | pd.DataFrame:
    """Add NHDPlus network attributes to a provided network.

    Given a river network with the required base attributes, adds hydrosequence,
    levelpath, terminal path, path length, downstream levelpath, downstream hydrosequence,
    total drainage area, and terminal flag. Large and small basins use different
    parallelization schemes when ``cores`` is given.

    Parameters
    ----------
    network : pl.DataFrame | pd.DataFrame
        Network with ``id``, ``toid``, ``length_km``, ``area_sqkm`` and optionally
        ``name_id`` and ``weight``. ``toid`` of 0 or null marks an outlet. Other columns
        pass through unchanged
    override_factor : float, optional
        Passed to the levelpath function, by default 5.0
    cores : int | None, optional
        Number of processes for parallel execution. None runs sequentially, by default None
    split_cache : str | Path | None, optional
        Parquet file caching the basin partition, by default None
    status : bool, optional
        Show progress bars, by default True
    large_basin_threshold : int, optional
        Basins with more segments than this are processed one at a time, by default 20000
    levelpath_fn : LevelpathFunction, optional
        The levelpath function, by default ``get_levelpaths``

    Returns
    -------
    pl.DataFrame | pd.DataFrame
        The network with added attributes, of the same type as the input
    """
    is_pandas = isinstance(network, pd.DataFrame)
    network_pl = pl.from_pandas(network) if is_pandas else network

    network_pl = prepare_network(network_pl)  # type: ignore[arg-type]
    subnetworks = split_network(network_pl, cache_path=split_cache, status=status)
    levelpaths = run_levelpaths(
        subnetworks,
        levelpath_fn=levelpath_fn,
        override_factor=override_factor,
        cores=cores,
        large_basin_threshold=large_basin_threshold,
        status=status,
    )
    combined = combine_networks(levelpaths)
    result = derive_network_attributes(network_pl, combined)

    return result.to_pandas() if is_pandas else result
