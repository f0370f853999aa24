"""Contains all code for reading the input network"""

import logging
from typing import Any, cast

import polars as pl

from plus_attributes.config import PlusConfig
from plus_attributes.network.attributes import prepare_network

logger = logging.getLogger(__name__)


def read_network(**context: dict[str, Any]) -> dict[str, Any]:
    """Reads and prepares the input network.

    Parameters
    ----------
    **context : dict
        Airflow-compatible context containing:
        - ti : TaskInstance for XCom operations
        - config : PlusConfig with pipeline configuration
        - task_id : str identifier for this task
        - run_id : str identifier for this pipeline run
        - ds : str execution date
        - execution_date : datetime object

    Returns
    -------
    dict[str, Any]
        The prepared network in memory

    Raises
    ------
    ValueError
        If no network path is configured or the file type is not supported
    FileNotFoundError
        If the network file does not exist
    """
    cfg = cast(PlusConfig, context["config"])
    if cfg.network_path is None:
        raise ValueError("No network_path configured. Aborting run")
    if not cfg.network_path.exists():
        raise FileNotFoundError(f"Network file not found: {cfg.network_path}")

    logger.info(f"read_network task: Reading {cfg.network_path}")
    match cfg.network_path.suffix:
        case ".parquet":
            network = pl.read_parquet(cfg.network_path)
        case ".csv":
            network = pl.read_csv(cfg.network_path)
        case _:
            raise ValueError(f"Unsupported file type: {cfg.network_path}")

    return {"network": prepare_network(network)}
