"""Contains all code for computing and combining basin levelpaths"""

import logging
from typing import Any, cast

import polars as pl

from plus_attributes.config import PlusConfig
from plus_attributes.network.combine import combine_networks
from plus_attributes.network.schedule import run_levelpaths
from plus_attributes.task_instance import TaskInstance

logger = logging.getLogger(__name__)


def map_levelpaths(**context: dict[str, Any]) -> dict[str, Any]:
    """Execute MAP PHASE: Compute hydroseq and levelpath for every basin.

    Parameters
    ----------
    **context : dict[str, Any]
        Airflow context

    Returns
    -------
    dict[str, Any]
        Dictionary with keys:
        - "basin_levelpaths": dict mapping outlet_id -> levelpath table
        - "total_outlets": int total number of outlets

    Raises
    ------
    ValueError
        If no subnetworks were found
    """
    ti = cast(TaskInstance, context["ti"])
    cfg = cast(PlusConfig, context["config"])

    subnetworks: dict[int, pl.DataFrame] = ti.xcom_pull(task_id="build_subnetworks", key="subnetworks")
    if not subnetworks:
        raise ValueError("No subnetworks found. Aborting run")

    basin_levelpaths = run_levelpaths(
        subnetworks,
        override_factor=cfg.override_factor,
        cores=cfg.cores,
        large_basin_threshold=cfg.large_basin_threshold,
        status=cfg.status,
    )

    return {
        "basin_levelpaths": basin_levelpaths,
        "total_outlets": len(basin_levelpaths),
    }


def reduce_combine_levelpaths(**context: dict[str, Any]) -> dict[str, Any]:
    """Execute REDUCE PHASE: Combine all basin levelpaths into one identifier space.

    Parameters
    ----------
    **context : dict[str, Any]
        Airflow context

    Returns
    -------
    dict[str, Any]
        Dictionary with keys:
        - "combined_levelpaths": DataFrame of id, hydroseq, levelpath, terminal_path

    Raises
    ------
    ValueError
        If no basin levelpaths found from map phase
    """
    ti = cast(TaskInstance, context["ti"])
    basin_levelpaths: dict[int, pl.DataFrame] = ti.xcom_pull(task_id="map_levelpaths", key="basin_levelpaths")

    if not basin_levelpaths:
        raise ValueError("No basin levelpaths found from map phase")

    return {"combined_levelpaths": combine_networks(basin_levelpaths)}
