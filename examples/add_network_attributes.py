import argparse
from pathlib import Path

import pandas as pd
import yaml

from plus_attributes import add_plus_network_attributes


def main(cfg: dict) -> None:
    """
    Adds network attributes to a flowline table without running the task pipeline

    :param cfg: configurations
    :return: None, but saves a parquet file in out directory
    """
    # ---- unpack config ----
    flowlines_path = Path(cfg["paths"]["flowlines"])
    out_dir = Path(cfg["paths"]["out_dir"])

    columns = cfg.get("columns", {})
    cores = int(cfg.get("cores", 0))
    override_factor = float(cfg.get("override_factor", 5.0))

    # ---- read and rename to the network columns ----
    flowlines = pd.read_parquet(flowlines_path)
    flowlines = flowlines.rename(columns={v: k for k, v in columns.items()})

    attributed = add_plus_network_attributes(
        flowlines,
        override_factor=override_factor,
        cores=cores,
        split_cache=out_dir / "split.parquet",
    )

    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{flowlines_path.stem}_attributes.parquet"
    attributed.to_parquet(out_path)
    print(f"Wrote {len(attributed)} flowlines to {out_path}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Add network attributes to a flowline table")
    parser.add_argument("config", help="YAML config with paths, columns, cores and override_factor")
    args = parser.parse_args()

    with open(args.config) as f:
        main(yaml.safe_load(f))
