"""
aggregation.py
Daily and cumulative incident counts per victim race.

A (date, race) pair with no incidents has no row: there is no zero-fill, so
charts must carry the last cumulative value forward across gaps.
"""

import logging

import pandas as pd

log = logging.getLogger(__name__)

DATE = "date"
VICTIM_RACE = "vic_race"
DAILY = "incidents"
CUMULATIVE = "cumulative_incidents"


def count_daily_by_victim_race(cleaned: pd.DataFrame) -> pd.DataFrame:
    """One row per observed (date, victim race) with the number of incidents."""
    if cleaned.empty:
        return pd.DataFrame({
            DATE: cleaned[DATE].iloc[:0],
            VICTIM_RACE: cleaned[VICTIM_RACE].iloc[:0],
            DAILY: pd.Series(dtype="int64"),
        })

    daily = (
        cleaned.groupby([DATE, VICTIM_RACE], observed=True, sort=True)
        .size()
        .rename(DAILY)
        .reset_index()
    )
    daily[DAILY] = daily[DAILY].astype("int64")
    log.info(f"Daily counts: {len(daily):,} (date, victim race) rows "
             f"from {len(cleaned):,} incidents")
    return daily


def add_cumulative_counts(daily: pd.DataFrame) -> pd.DataFrame:
    """
    Running total of daily counts per victim race, ordered by date.
    Output is sorted by (victim race, date); the input frame is left as is.
    """
    if daily.empty:
        return daily.assign(**{CUMULATIVE: pd.Series(dtype="int64")})

    ordered = daily.sort_values([VICTIM_RACE, DATE], kind="stable").reset_index(drop=True)
    running = ordered.groupby(VICTIM_RACE, observed=True)[DAILY].cumsum()
    return ordered.assign(**{CUMULATIVE: running.astype("int64")})


def aggregate(cleaned: pd.DataFrame) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Returns (daily counts, cumulative counts) for the cleaned incident table."""
    daily = count_daily_by_victim_race(cleaned)
    cumulative = add_cumulative_counts(daily)
    log.info(f"Cumulative series for {cumulative[VICTIM_RACE].nunique():,} victim races")
    return daily, cumulative


def filter_victim_race(cumulative: pd.DataFrame, race: str) -> pd.DataFrame:
    return cumulative[cumulative[VICTIM_RACE] == race].reset_index(drop=True)
