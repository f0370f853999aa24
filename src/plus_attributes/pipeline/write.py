"""Contains all code for writing the attributed network"""

import logging
from typing import Any, cast

from plus_attributes.config import PlusConfig
from plus_attributes.task_instance import TaskInstance

logger = logging.getLogger(__name__)


def write_network(**context: dict[str, Any]) -> dict:
    """Writes the network with attributes to disk

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
        The path of the written file
    """
    cfg = cast(PlusConfig, context["config"])
    ti = cast(TaskInstance, context["ti"])
    file_name = cfg.output_file_path
    file_name.parent.mkdir(parents=True, exist_ok=True)
    file_name.unlink(missing_ok=True)  # deletes files that exist with the same name

    network = ti.xcom_pull(task_id="derive_attributes", key="network_with_attributes")
    network.write_parquet(file_name)

    logger.info(f"write_network task: wrote {network.height} segments to {file_name}")
    return {"output_file_path": file_name}
