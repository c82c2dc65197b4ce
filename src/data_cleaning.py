"""
data_cleaning.py
Cleaning pipeline for the NYPD Shooting Incident extract.

Design principles:
- Every transformation is recorded in the audit trail with the rows it touched
- No rows are ever dropped; out-of-domain codes go to an explicit overflow level
- Functions are pure (input → new output), the raw frame is never modified
- A single `run_cleaning()` call reproduces the cleaned table end-to-end
"""

import json
import logging
from pathlib import Path

import pandas as pd

log = logging.getLogger(__name__)


# ── Constants ─────────────────────────────────────────────────────────────────

DATE_FORMAT = "%m/%d/%Y"

RENAME_MAP = {
    "INCIDENT_KEY":   "incident_key",
    "OCCUR_DATE":     "date",
    "BORO":           "borough",
    "PRECINCT":       "precinct",
    "PERP_AGE_GROUP": "perp_age_group",
    "PERP_SEX":       "perp_sex",
    "PERP_RACE":      "perp_race",
    "VIC_AGE_GROUP":  "vic_age_group",
    "VIC_SEX":        "vic_sex",
    "VIC_RACE":       "vic_race",
}

CLEAN_COLUMNS = list(RENAME_MAP.values())

UNKNOWN = "UNKNOWN"

# "U" is both a real NYPD code and the overflow for anything else
SEX_LEVELS = ["M", "F", "U"]
SEX_OVERFLOW = "U"

BOROUGH_LEVELS = ["BRONX", "BROOKLYN", "MANHATTAN", "QUEENS", "STATEN ISLAND", UNKNOWN]

RACE_LEVELS = [
    "AMERICAN INDIAN/ALASKAN NATIVE",
    "ASIAN / PACIFIC ISLANDER",
    "BLACK",
    "BLACK HISPANIC",
    "WHITE",
    "WHITE HISPANIC",
    UNKNOWN,
]


# ── Audit Trail ───────────────────────────────────────────────────────────────

class AuditTrail:
    """Tracks every cleaning decision with the number of rows it affected."""

    def __init__(self, total_rows: int):
        self.total_rows = total_rows
        self.steps: list[dict] = []

    def record(self, step: str, description: str, changed: int, detail: str = ""):
        changed = int(changed)
        pct = changed / self.total_rows * 100 if self.total_rows else 0.0
        self.steps.append({
            "step": step,
            "description": description,
            "rows_affected": changed,
            "pct_affected": round(pct, 2),
            "detail": detail,
        })
        log.info(f"[{step}] {description} → {changed:,} rows affected ({pct:.1f}%) {detail}")

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self.steps,
            columns=["step", "description", "rows_affected", "pct_affected", "detail"],
        )

    def save(self, path: str):
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump({"total_rows": self.total_rows, "steps": self.steps}, f, indent=2)
        log.info(f"Audit trail saved → {path}")

    def summary(self) -> str:
        lines = [
            "=" * 65,
            "CLEANING AUDIT SUMMARY",
            "=" * 65,
            f"{'Step':<22} {'Affected':>10} {'%':>7}  Description",
            "-" * 65,
        ]
        for s in self.steps:
            lines.append(
                f"{s['step']:<22} {s['rows_affected']:>10,} {s['pct_affected']:>6.1f}%  {s['description']}"
            )
        lines.append("=" * 65)
        return "\n".join(lines)


# ── Helper: closed-domain categoriser ─────────────────────────────────────────

def _to_category(series: pd.Series, levels: list, overflow: str) -> tuple[pd.Series, int]:
    """
    Normalise text codes and cast them to a categorical over `levels`.
    Missing and out-of-domain values become `overflow`; returns how many did.
    """
    codes = series.astype("string").str.strip().str.upper()
    out_of_domain = ~codes.isin(levels)
    codes = codes.mask(out_of_domain, overflow)
    return codes.astype(object).astype(pd.CategoricalDtype(levels)), int(out_of_domain.sum())


# ── Step 1: Parse Dates ───────────────────────────────────────────────────────

def parse_dates(df: pd.DataFrame, audit: AuditTrail) -> pd.DataFrame:
    raw = df["OCCUR_DATE"].astype("string").str.strip()
    parsed = pd.to_datetime(raw, format=DATE_FORMAT, errors="coerce")

    bad = parsed.isna()
    if bad.any():
        examples = raw[bad].head(5).tolist()
        raise ValueError(
            f"{int(bad.sum()):,} OCCUR_DATE values are not {DATE_FORMAT} dates, e.g. {examples}"
        )

    audit.record("Date parse", f"OCCUR_DATE parsed as {DATE_FORMAT}", len(df))
    return df.assign(OCCUR_DATE=parsed.dt.normalize())


# ── Step 2: Rename ────────────────────────────────────────────────────────────

def rename_columns(df: pd.DataFrame, audit: AuditTrail) -> pd.DataFrame:
    df = df.rename(columns=RENAME_MAP)
    audit.record("Rename", "Source columns relabelled", 0, f"({len(RENAME_MAP)} columns)")
    return df


# ── Step 3: Drop Unused Columns ───────────────────────────────────────────────

def drop_unused_columns(df: pd.DataFrame, audit: AuditTrail) -> pd.DataFrame:
    """
    Keep only the incident schema. Geocoordinates and OCCUR_TIME are never read
    downstream, nor is anything newer extracts add (Lon_Lat, LOCATION_DESC, ...).
    """
    dropped = [c for c in df.columns if c not in CLEAN_COLUMNS]
    audit.record("Columns dropped", "Coordinates, time and unused columns removed", 0,
                 f"({dropped})")
    return df[CLEAN_COLUMNS]


# ── Step 4: Sex ───────────────────────────────────────────────────────────────

def categorise_sex(df: pd.DataFrame, audit: AuditTrail) -> pd.DataFrame:
    updates = {}
    for col in ["perp_sex", "vic_sex"]:
        updates[col], remapped = _to_category(df[col], SEX_LEVELS, SEX_OVERFLOW)
        audit.record(f"Sex: {col}", f"Values outside {SEX_LEVELS} → '{SEX_OVERFLOW}'", remapped)
    return df.assign(**updates)


# ── Step 5: Race ──────────────────────────────────────────────────────────────

def categorise_race(df: pd.DataFrame, audit: AuditTrail) -> pd.DataFrame:
    updates = {}
    for col in ["perp_race", "vic_race"]:
        updates[col], remapped = _to_category(df[col], RACE_LEVELS, UNKNOWN)
        audit.record(f"Race: {col}", f"Missing/(null)/undeclared → '{UNKNOWN}'", remapped)
    return df.assign(**updates)


# ── Step 6: Borough ───────────────────────────────────────────────────────────

def categorise_borough(df: pd.DataFrame, audit: AuditTrail) -> pd.DataFrame:
    borough, remapped = _to_category(df["borough"], BOROUGH_LEVELS, UNKNOWN)
    audit.record("Borough", f"Values outside the five boroughs → '{UNKNOWN}'", remapped)
    return df.assign(borough=borough)


# ── Step 7: Precinct ──────────────────────────────────────────────────────────

def categorise_precinct(df: pd.DataFrame, audit: AuditTrail) -> pd.DataFrame:
    numbers = pd.to_numeric(df["precinct"], errors="coerce").astype("float64")

    bad = numbers.isna() | (numbers.round() != numbers)
    if bad.any():
        examples = df.loc[bad, "precinct"].head(5).tolist()
        raise ValueError(f"{int(bad.sum()):,} PRECINCT values are not integers, e.g. {examples}")

    numbers = numbers.astype("int64")
    levels = sorted(int(p) for p in numbers.unique())
    audit.record("Precinct", "Integer-coded precinct categories", 0, f"({len(levels)} precincts)")
    return df.assign(precinct=numbers.astype(pd.CategoricalDtype(levels)))


# ── Pipeline Orchestrator ─────────────────────────────────────────────────────

def run_cleaning(raw: pd.DataFrame) -> tuple[pd.DataFrame, AuditTrail]:
    """
    End-to-end cleaning. Call this to reproduce the cleaned incident table.

    Parameters
    ----------
    raw : DataFrame with the NYPD source schema (see data_collection)

    Returns
    -------
    (cleaned DataFrame with one row per raw row, AuditTrail of every step)
    """
    log.info("=" * 60)
    log.info("NYPD SHOOTINGS: CLEANING PIPELINE START")
    log.info("=" * 60)

    audit = AuditTrail(total_rows=len(raw))

    df = parse_dates(raw, audit)
    df = rename_columns(df, audit)
    df = drop_unused_columns(df, audit)
    df = categorise_sex(df, audit)
    df = categorise_race(df, audit)
    df = categorise_borough(df, audit)
    df = categorise_precinct(df, audit)
    df = df.reset_index(drop=True)

    log.info(f"Final shape: {df.shape[0]:,} rows × {df.shape[1]} columns")
    return df, audit
