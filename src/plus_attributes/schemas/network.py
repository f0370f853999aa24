"""Column names for the network tables"""

from enum import StrEnum

import polars as pl

OUTLET_TOID = 0


class NetworkColumns(StrEnum):
    """Columns read from the input network"""

    ID = "id"
    TOID = "toid"
    NAME_ID = "name_id"
    LENGTH_KM = "length_km"
    AREA_SQKM = "area_sqkm"
    WEIGHT = "weight"


class AttributeColumns(StrEnum):
    """Columns added to the network"""

    HYDROSEQ = "hydroseq"
    LEVELPATH = "levelpath"
    TERMINAL_PATH = "terminal_path"
    PATH_LENGTH = "path_length"
    DN_LEVELPATH = "dn_levelpath"
    DN_HYDROSEQ = "dn_hydroseq"
    TOTAL_DA_SQKM = "total_da_sqkm"
    TERMINAL_FLAG = "terminal_flag"


REQUIRED_COLUMNS: list[str] = [
    NetworkColumns.ID,
    NetworkColumns.TOID,
    NetworkColumns.LENGTH_KM,
    NetworkColumns.AREA_SQKM,
]

# The projection handed to the levelpath algorithm for each basin
SUBNETWORK_COLUMNS: list[str] = [
    NetworkColumns.ID,
    NetworkColumns.TOID,
    NetworkColumns.NAME_ID,
    NetworkColumns.WEIGHT,
]

LEVELPATH_SCHEMA: dict[str, type[pl.DataType]] = {
    NetworkColumns.ID: pl.Int64,
    AttributeColumns.HYDROSEQ: pl.Int64,
    AttributeColumns.LEVELPATH: pl.Int64,
}

COMBINED_SCHEMA: dict[str, type[pl.DataType]] = {
    **LEVELPATH_SCHEMA,
    AttributeColumns.TERMINAL_PATH: pl.Int64,
}
