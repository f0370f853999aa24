"""Scheduling of per-basin levelpath computations across sequential or parallel execution"""

import logging
from concurrent.futures import Future, ProcessPoolExecutor, as_completed

import polars as pl
from tqdm import tqdm

from plus_attributes.exceptions import WorkerFailureError
from plus_attributes.network.levelpaths import LevelpathFunction, get_levelpaths
from plus_attributes.schemas.network import LEVELPATH_SCHEMA

logger = logging.getLogger(__name__)

DEFAULT_LARGE_BASIN_THRESHOLD = 20000


def _validate_levelpaths(outlet: int, subnetwork: pl.DataFrame, levelpaths: pl.DataFrame) -> pl.DataFrame:
    """Checks a levelpath result covers exactly the basin's segments.

    Parameters
    ----------
    outlet : int
        Outlet id of the basin
    subnetwork : pl.DataFrame
        The basin given to the levelpath function
    levelpaths : pl.DataFrame
        The levelpath function's result

    Returns
    -------
    pl.DataFrame
        The result restricted and cast to ``id``, ``hydroseq``, ``levelpath``

    Raises
    ------
    WorkerFailureError
        If columns are missing, values are null, or ids do not match the basin
    """
    missing = [column for column in LEVELPATH_SCHEMA if column not in levelpaths.columns]
    if missing:
        raise WorkerFailureError(outlet, f"levelpath result is missing columns {missing}")

    levelpaths = levelpaths.select(list(LEVELPATH_SCHEMA)).cast(LEVELPATH_SCHEMA)
    if sum(levelpaths.null_count().row(0)) > 0:
        raise WorkerFailureError(outlet, "levelpath result contains null values")

    result_ids = levelpaths["id"].to_list()
    if len(result_ids) != subnetwork.height or set(result_ids) != set(subnetwork["id"].to_list()):
        raise WorkerFailureError(outlet, "levelpath result does not match the basin's segments")
    return levelpaths


def _compute_basin_levelpaths(
    outlet: int,
    subnetwork: pl.DataFrame,
    levelpath_fn: LevelpathFunction,
    override_factor: float,
    cores: int | None,
) -> pl.DataFrame:
    """Runs the levelpath function on one basin. Called in-process and in worker processes"""
    try:
        levelpaths = levelpath_fn(subnetwork, override_factor, cores)
    except Exception as e:
        raise WorkerFailureError(outlet, f"{type(e).__name__}: {e}") from e
    return _validate_levelpaths(outlet, subnetwork, levelpaths)


def _run_sequential(
    subnetworks: dict[int, pl.DataFrame],
    levelpath_fn: LevelpathFunction,
    override_factor: float,
    cores: int | None,
    status: bool,
    desc: str,
) -> dict[int, pl.DataFrame]:
    """Processes basins one at a time in the calling process"""
    results: dict[int, pl.DataFrame] = {}
    for outlet, subnetwork in tqdm(subnetworks.items(), desc=desc, disable=not status):
        results[outlet] = _compute_basin_levelpaths(outlet, subnetwork, levelpath_fn, override_factor, cores)
    return results


def _run_small_basins(
    subnetworks: dict[int, pl.DataFrame],
    levelpath_fn: LevelpathFunction,
    override_factor: float,
    cores: int,
    status: bool,
) -> dict[int, pl.DataFrame]:
    """Fans basins out across a pool of worker processes, one basin per task.

    The first failure cancels every pending basin and shuts the pool down before the
    error is raised.

    Parameters
    ----------
    subnetworks : dict[int, pl.DataFrame]
        Basins keyed by outlet id
    levelpath_fn : LevelpathFunction
        Picklable levelpath function
    override_factor : float
        Passed to the levelpath function
    cores : int
        Number of worker processes
    status : bool
        Show a progress bar

    Returns
    -------
    dict[int, pl.DataFrame]
        Levelpath results keyed by outlet id, in completion order

    Raises
    ------
    WorkerFailureError
        If any basin fails
    """
    results: dict[int, pl.DataFrame] = {}
    if not subnetworks:
        return results

    with ProcessPoolExecutor(max_workers=cores) as pool:
        futures: dict[Future[pl.DataFrame], int] = {
            pool.submit(
                _compute_basin_levelpaths, outlet, subnetwork, levelpath_fn, override_factor, None
            ): outlet
            for outlet, subnetwork in subnetworks.items()
        }
        try:
            completed = as_completed(futures)
            for future in tqdm(completed, total=len(futures), desc="Small basins", disable=not status):
                outlet = futures[future]
                try:
                    results[outlet] = future.result()
                except WorkerFailureError:
                    raise
                except Exception as e:
                    raise WorkerFailureError(outlet, f"{type(e).__name__}: {e}") from e
        except BaseException:
            logger.error("run_levelpaths: A basin failed. Cancelling remaining basins")
            pool.shutdown(wait=True, cancel_futures=True)
            raise

    return results


def run_levelpaths(
    subnetworks: dict[int, pl.DataFrame],
    levelpath_fn: LevelpathFunction = get_levelpaths,
    override_factor: float = 5.0,
    cores: int | None = None,
    large_basin_threshold: int = DEFAULT_LARGE_BASIN_THRESHOLD,
    status: bool = True,
) -> dict[int, pl.DataFrame]:
    """Computes levelpaths for every basin.

    Without ``cores`` every basin runs sequentially and the levelpath function gets no cores.
    With ``cores``, basins larger than ``large_basin_threshold`` run one at a time and each
    gets all ``cores``. The remaining small basins are spread over a pool of ``cores`` worker
    processes, each running with no cores of its own.

    Parameters
    ----------
    subnetworks : dict[int, pl.DataFrame]
        Basins keyed by outlet id, from ``split_network``
    levelpath_fn : LevelpathFunction, optional
        The levelpath function, by default ``get_levelpaths``
    override_factor : float, optional
        Passed to the levelpath function, by default 5.0
    cores : int | None, optional
        Degree of parallelism. None or 0 runs sequentially, by default None
    large_basin_threshold : int, optional
        Basins with more segments than this are processed one at a time, by default 20000
    status : bool, optional
        Show progress bars, by default True

    Returns
    -------
    dict[int, pl.DataFrame]
        ``id``, ``hydroseq``, ``levelpath`` per basin, keyed by outlet id in the order of ``subnetworks``

    Raises
    ------
    ValueError
        If ``cores`` is negative
    WorkerFailureError
        If the levelpath function fails on any basin
    """
    if cores is not None and cores < 0:
        raise ValueError(f"cores must be zero or positive, got {cores}")

    if not cores:
        logger.info(f"run_levelpaths: Processing {len(subnetworks)} basins sequentially")
        results = _run_sequential(subnetworks, levelpath_fn, override_factor, None, status, "Basins")
    else:
        large = {outlet: net for outlet, net in subnetworks.items() if net.height > large_basin_threshold}
        small = {outlet: net for outlet, net in subnetworks.items() if net.height <= large_basin_threshold}
        logger.info(
            f"run_levelpaths: Processing {len(large)} large basins with {cores} cores each "
            f"and {len(small)} small basins across {cores} workers"
        )
        results = _run_sequential(large, levelpath_fn, override_factor, cores, status, "Large basins")
        results.update(_run_small_basins(small, levelpath_fn, override_factor, cores, status))

    return {outlet: results[outlet] for outlet in subnetworks}
