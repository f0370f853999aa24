"""Contains all code for splitting the network into independent basins"""

import logging
from typing import Any, cast

from plus_attributes.config import PlusConfig
from plus_attributes.network.graph import split_network
from plus_attributes.task_instance import TaskInstance

logger = logging.getLogger(__name__)


def build_subnetworks(**context: dict[str, Any]) -> dict[str, Any]:
    """
    Splits the network into one subnetwork per outlet

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
        - All outlets of the network
        - The subnetworks keyed by outlet
    """
    ti = cast(TaskInstance, context["ti"])
    cfg = cast(PlusConfig, context["config"])
    network = ti.xcom_pull(task_id="read_network", key="network")

    logger.info("build_subnetworks task: Partitioning network via outlet")
    subnetworks = split_network(network, cache_path=cfg.split_cache_path, status=cfg.status)

    return {
        "outlets": list(subnetworks),
        "subnetworks": subnetworks,
    }
