"""
regression.py
OLS of daily incident count on victim race.

With race as the only (categorical) predictor the fitted value for a row is the
sample mean of daily counts for that row's race. Predictions are left exactly
as the linear model gives them: real-valued, never rounded or clamped at zero.
"""

import logging
import re
import warnings
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from aggregation import DAILY, VICTIM_RACE

log = logging.getLogger(__name__)

PREDICTED = "predicted_incidents"

# Race goes in as plain strings, so patsy treatment-codes it against the
# alphabetically first observed race
FORMULA = f"{DAILY} ~ C({VICTIM_RACE})"

COEFFICIENT_COLUMNS = ["term", "estimate", "std_error", "t_value", "p_value"]
CATEGORY_STAT_COLUMNS = [VICTIM_RACE, "observations", "mean", "variance", "min", "max"]


@dataclass
class RaceModel:
    predictions: pd.DataFrame
    coefficients: pd.DataFrame
    category_stats: pd.DataFrame
    r_squared: float
    n_observations: int
    reference_level: Optional[str] = None
    fit: Optional[Any] = None   # statsmodels RegressionResultsWrapper


def _tidy_term(term: str) -> str:
    return re.sub(rf"^C\({VICTIM_RACE}\)\[T\.(.*)\]$", rf"{VICTIM_RACE}: \1", term)


def category_statistics(daily: pd.DataFrame) -> pd.DataFrame:
    """
    Per-race sample size, mean, variance (ddof=1), min and max of daily counts.
    Variance is NaN for a race observed on a single date.
    """
    if daily.empty:
        return pd.DataFrame(columns=CATEGORY_STAT_COLUMNS)

    return (
        daily.groupby(VICTIM_RACE, observed=True)[DAILY]
        .agg(observations="count", mean="mean", variance="var", min="min", max="max")
        .reset_index()
    )


def coefficient_table(fit) -> pd.DataFrame:
    return pd.DataFrame({
        "term": [_tidy_term(t) for t in fit.params.index],
        "estimate": fit.params.to_numpy(),
        "std_error": fit.bse.to_numpy(),
        "t_value": fit.tvalues.to_numpy(),
        "p_value": fit.pvalues.to_numpy(),
    })


def fit_race_model(daily: pd.DataFrame) -> RaceModel:
    """
    Fit `incidents ~ C(vic_race)` by ordinary least squares.

    Parameters
    ----------
    daily : one row per (date, vic_race) with its `incidents` count

    Returns
    -------
    RaceModel whose `predictions` are the daily rows plus `predicted_incidents`
    """
    stats = category_statistics(daily)

    if daily.empty:
        log.warning("No daily counts to model, returning an empty fit")
        return RaceModel(
            predictions=daily.assign(**{PREDICTED: pd.Series(dtype="float64")}),
            coefficients=pd.DataFrame(columns=COEFFICIENT_COLUMNS),
            category_stats=stats,
            r_squared=np.nan,
            n_observations=0,
        )

    data = daily.assign(**{VICTIM_RACE: daily[VICTIM_RACE].astype(str)})
    reference = sorted(data[VICTIM_RACE].unique())[0]

    thin = stats.loc[stats["observations"] < 2, VICTIM_RACE].tolist()
    if thin:
        log.warning(f"Races with fewer than 2 observations (diagnostics undefined): {thin}")

    # A single race leaves nothing to contrast: the model is its intercept
    formula = FORMULA if data[VICTIM_RACE].nunique() > 1 else f"{DAILY} ~ 1"

    # Degenerate designs (one race, one row) emit divide-by-zero warnings and NaN diagnostics
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        fit = smf.ols(formula, data=data).fit()
        coefficients = coefficient_table(fit)
        r_squared = float(fit.rsquared)
        predicted = fit.predict(data)

    log.info(f"OLS fit on {int(fit.nobs):,} rows, {len(coefficients)} terms, "
             f"reference '{reference}', R² = {r_squared:.3f}")

    return RaceModel(
        predictions=daily.assign(**{PREDICTED: predicted.astype("float64")}),
        coefficients=coefficients,
        category_stats=stats,
        r_squared=r_squared,
        n_observations=int(fit.nobs),
        reference_level=reference,
        fit=fit,
    )
