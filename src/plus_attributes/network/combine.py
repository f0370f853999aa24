"""Combines independently computed basins into one identifier space"""

import logging

import polars as pl

from plus_attributes.schemas.network import COMBINED_SCHEMA

logger = logging.getLogger(__name__)


def _offset_basin(levelpaths: pl.DataFrame, offset: int) -> tuple[pl.DataFrame, int]:
    """Shift one basin's identifiers above ``offset``.

    The basin's smallest identifier lands on ``offset + 1``; for 1-based basins this is the
    same as adding ``offset``. ``terminal_path`` is the smallest shifted ``hydroseq``.

    Parameters
    ----------
    levelpaths : pl.DataFrame
        ``id``, ``hydroseq``, ``levelpath`` for one basin
    offset : int
        Largest identifier used by the basins before this one

    Returns
    -------
    tuple[pl.DataFrame, int]
        The shifted basin and the offset for the next basin
    """
    shift = offset - min(levelpaths.select(pl.col("hydroseq").min(), pl.col("levelpath").min()).row(0)) + 1

    shifted = levelpaths.with_columns(
        pl.col("hydroseq") + shift,
        pl.col("levelpath") + shift,
    ).with_columns(pl.col("hydroseq").min().alias("terminal_path"))

    next_offset = max(shifted.select(pl.col("hydroseq").max(), pl.col("levelpath").max()).row(0))
    return shifted, int(next_offset)


def combine_networks(levelpaths: dict[int, pl.DataFrame]) -> pl.DataFrame:
    """Combine per-basin levelpaths into globally unique identifiers.

    Basins are offset in the order given, so the numbering does not depend on the order
    in which the basins were computed.

    Parameters
    ----------
    levelpaths : dict[int, pl.DataFrame]
        ``id``, ``hydroseq``, ``levelpath`` per basin keyed by outlet id

    Returns
    -------
    pl.DataFrame
        ``id``, ``hydroseq``, ``levelpath``, and ``terminal_path`` for every segment
    """
    combined: list[pl.DataFrame] = []
    offset = 0
    for basin in levelpaths.values():
        if basin.height == 0:
            continue
        shifted, offset = _offset_basin(basin, offset)
        combined.append(shifted)

    logger.info(f"combine_networks: Combined {len(combined)} basins, largest hydroseq is {offset}")
    if not combined:
        return pl.DataFrame(schema=COMBINED_SCHEMA)
    return pl.concat(combined).select(list(COMBINED_SCHEMA)).cast(COMBINED_SCHEMA)
