"""Contains all code for deriving the network attributes"""

import logging
from typing import Any, cast

from plus_attributes.network.attributes import derive_network_attributes
from plus_attributes.task_instance import TaskInstance

logger = logging.getLogger(__name__)


def derive_attributes(**context: dict[str, Any]) -> dict:
    """Joins the combined levelpaths onto the network and derives downstream, drainage area,
    and terminal attributes.

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
    dict
        The network with attributes in memory
    """
    ti = cast(TaskInstance, context["ti"])

    network = ti.xcom_pull(task_id="read_network", key="network")
    combined = ti.xcom_pull(task_id="reduce_levelpaths", key="combined_levelpaths")

    logger.info(f"derive_attributes task: Deriving attributes for {network.height} segments")
    return {"network_with_attributes": derive_network_attributes(network, combined)}
