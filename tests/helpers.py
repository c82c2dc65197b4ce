"""Builders for raw NYPD-shaped incident tables used across the tests."""
from typing import List, Optional

import pandas as pd

SOURCE_COLUMNS = [
    "INCIDENT_KEY", "OCCUR_DATE", "OCCUR_TIME", "BORO", "LOC_OF_OCCUR_DESC",
    "PRECINCT", "JURISDICTION_CODE", "LOCATION_DESC", "STATISTICAL_MURDER_FLAG",
    "PERP_AGE_GROUP", "PERP_SEX", "PERP_RACE", "VIC_AGE_GROUP", "VIC_SEX",
    "VIC_RACE", "X_COORD_CD", "Y_COORD_CD", "Latitude", "Longitude", "Lon_Lat",
]


def raw_row(key: str, occur_date: str, vic_race: Optional[str] = "BLACK", **overrides) -> dict:
    row = {
        "INCIDENT_KEY": key,
        "OCCUR_DATE": occur_date,
        "OCCUR_TIME": "23:15:00",
        "BORO": "BROOKLYN",
        "LOC_OF_OCCUR_DESC": "OUTSIDE",
        "PRECINCT": "75",
        "JURISDICTION_CODE": "0",
        "LOCATION_DESC": "MULTI DWELL - PUBLIC HOUS",
        "STATISTICAL_MURDER_FLAG": "false",
        "PERP_AGE_GROUP": "18-24",
        "PERP_SEX": "M",
        "PERP_RACE": "BLACK",
        "VIC_AGE_GROUP": "25-44",
        "VIC_SEX": "M",
        "VIC_RACE": vic_race,
        "X_COORD_CD": "1000953",
        "Y_COORD_CD": "187143",
        "Latitude": "40.66",
        "Longitude": "-73.91",
        "Lon_Lat": "POINT (-73.91 40.66)",
    }
    row.update(overrides)
    return row


def make_raw_incidents(rows: List[dict]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=SOURCE_COLUMNS, dtype=object)


def scenario_raw_incidents() -> pd.DataFrame:
    """Two BLACK victims on Jan 1, one on Jan 2, one WHITE victim on Jan 1."""
    return make_raw_incidents([
        raw_row("1", "01/01/2020", "BLACK"),
        raw_row("2", "01/01/2020", "BLACK"),
        raw_row("3", "01/02/2020", "BLACK"),
        raw_row("4", "01/01/2020", "WHITE"),
    ])
