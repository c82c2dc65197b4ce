"""
data_collection.py
Fetches the NYPD Shooting Incident Data (Historic) extract.

The dataset is pulled once per run. There is no retry or cache: a failed
request aborts the report.
"""

import io
import logging
from pathlib import Path

import pandas as pd
import requests

log = logging.getLogger(__name__)


# ── Constants ─────────────────────────────────────────────────────────────────

DATA_URL = (
    "https://data.cityofnewyork.us/api/views/833y-ss6s/rows.csv"
    "?accessType=DOWNLOAD"
)

REQUEST_TIMEOUT_SECONDS = 120

# Columns the cleaning step reads; everything else in the extract is ignored
REQUIRED_COLUMNS = {
    "INCIDENT_KEY", "OCCUR_DATE", "OCCUR_TIME", "BORO", "PRECINCT",
    "PERP_AGE_GROUP", "PERP_SEX", "PERP_RACE",
    "VIC_AGE_GROUP", "VIC_SEX", "VIC_RACE",
}


def _read_csv(source) -> pd.DataFrame:
    # Everything as text: precinct and incident keys are codes, not numbers
    return pd.read_csv(source, dtype=str, keep_default_na=True)


def fetch_csv(url: str = DATA_URL, timeout: int = REQUEST_TIMEOUT_SECONDS) -> pd.DataFrame:
    log.info(f"Downloading: {url}")
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    df = _read_csv(io.StringIO(resp.text))
    log.info(f"Downloaded {len(df):,} rows × {len(df.columns)} columns")
    return df


def load_data(filepath: str) -> pd.DataFrame:
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {filepath}")

    log.info(f"Loading: {filepath}")
    df = _read_csv(path)
    log.info(f"Loaded {len(df):,} rows × {len(df.columns)} columns")
    return df


def validate_columns(df: pd.DataFrame) -> pd.DataFrame:
    missing_cols = REQUIRED_COLUMNS - set(df.columns)
    if missing_cols:
        raise ValueError(f"Dataset is missing expected columns: {sorted(missing_cols)}")
    return df


def load_incidents(source: str = DATA_URL) -> pd.DataFrame:
    """
    Load the raw incident table from a URL or a local CSV copy.

    Parameters
    ----------
    source : http(s) URL of the NYPD extract, or a path to a saved copy

    Returns
    -------
    Raw DataFrame with the source schema, all columns as strings
    """
    if str(source).startswith(("http://", "https://")):
        df = fetch_csv(source)
    else:
        df = load_data(source)
    return validate_columns(df)
