"""Local runner for adding NHDPlus network attributes to a river network"""

import argparse
from collections.abc import Callable
from datetime import datetime
from typing import Any, Self

from pydantic import ValidationError

from plus_attributes import PlusConfig, TaskInstance
from plus_attributes.logs import setup_logging
from plus_attributes.pipeline.build_subnetworks import build_subnetworks
from plus_attributes.pipeline.network_attributes import derive_attributes
from plus_attributes.pipeline.processing import map_levelpaths, reduce_combine_levelpaths
from plus_attributes.pipeline.read import read_network
from plus_attributes.pipeline.write import write_network

logger = setup_logging()


class LocalRunner:
    """Execute pipeline tasks locally with Airflow-like interface.

    Parameters
    ----------
    config : PlusConfig
        Pipeline configuration containing build settings and parameters.
    run_id : str or None, default=None
        Unique identifier for this pipeline run. If None, generated from
        current timestamp in format 'YYYYMMDD_HHMMSS'.

    Attributes
    ----------
    config : PlusConfig
        The pipeline configuration.
    run_id : str
        Unique identifier for this run.
    ti : TaskInstance
        TaskInstance for XCom operations.
    results : dict[str, dict[str, Any]]
        Execution results for each task, keyed by task_id.
    """

    def __init__(
        self,
        config: PlusConfig,
        run_id: str | None = None,
    ) -> None:
        self.config: PlusConfig = config
        self.run_id: str = run_id or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.ti: TaskInstance = TaskInstance()
        self.results: dict[str, dict[str, Any]] = {}

    def cleanup(self) -> None:
        """Clean up resources"""
        logger.info("runner: Closing processes")

    def __enter__(self: Self) -> Self:
        """Context manager entry."""
        return self

    def __exit__(self: Self, *args: str, **kwargs: str) -> None:
        """Context manager exit - ensures cleanup."""
        self.cleanup()

    def run_task(
        self,
        task_id: str,
        python_callable: Callable[..., Any],
        op_kwargs: dict[str, Any] | None = None,
    ) -> Any:
        """Execute a single task.

        Parameters
        ----------
        task_id : str
            Unique identifier for this task. Used in XCom keys and result tracking.
        python_callable : Callable[..., Any]
            The function to execute. Must accept **kwargs to receive context.
        op_kwargs : dict[str, Any] or None, default=None
            Additional keyword arguments to pass to the callable.

        Returns
        -------
        Any
            The return value from the callable.
        """
        logger.info(f"Running task: {task_id}")

        context: dict[str, Any] = {
            "ti": self.ti,
            "task_id": task_id,
            "run_id": self.run_id,
            "ds": datetime.now().strftime("%Y-%m-%d"),
            "execution_date": datetime.now(),
            "config": self.config,
        }

        kwargs = {**(op_kwargs or {}), **context}

        result = python_callable(**kwargs)

        for k, v in result.items():
            self.ti.xcom_push(f"{task_id}.{k}", v)
        self.results[task_id] = {"status": "success", "result": result}

        logger.info(f"Task {task_id} completed")
        return result

    def get_result(self, task_id: str) -> dict[str, Any]:
        """Retrieve execution results for a specific task.

        Parameters
        ----------
        task_id : str
            The identifier of the task to get results for.

        Returns
        -------
        dict[str, Any]
            Dictionary containing 'status' and 'result'.

        Raises
        ------
        ValueError
            If the task has not been run.
        """
        result = self.results.get(task_id)
        if result is None:
            raise ValueError("Cannot find result from task")
        return result


def run_pipeline(runner: LocalRunner) -> None:
    """Runs every task of the network attribute pipeline in order"""
    runner.run_task(task_id="read_network", python_callable=read_network)
    runner.run_task(task_id="build_subnetworks", python_callable=build_subnetworks)
    runner.run_task(task_id="map_levelpaths", python_callable=map_levelpaths)
    runner.run_task(task_id="reduce_levelpaths", python_callable=reduce_combine_levelpaths)
    runner.run_task(task_id="derive_attributes", python_callable=derive_attributes)
    runner.run_task(task_id="write_network", python_callable=write_network)


def main() -> int:
    """Main entry point for the network attribute pipeline CLI.

    Returns
    -------
    int
        Exit code: 0 for success, 1 for failure.
    """
    parser = argparse.ArgumentParser(description="A local runner for adding network attributes")
    parser.add_argument("--config", required=True, help="Config file")
    args = parser.parse_args()

    try:
        config = PlusConfig.from_yaml(args.config)
    except ValidationError as e:
        print("Configuration validation failed:")
        for error in e.errors():
            print(f"  {error['loc']}: {error['msg']}")
        return 1
    except FileNotFoundError:
        logger.error(f"Config file not found: {args.config}")
        return 1

    with LocalRunner(config) as runner:
        run_pipeline(runner)

        print("\n" + "=" * 60)
        print("Pipeline completed")
        print("=" * 60)
        for task_id, info in runner.results.items():
            print(f"  {task_id}: {info['status']}")
        print("=" * 60)

    return 0


if __name__ == "__main__":
    exit(main())
