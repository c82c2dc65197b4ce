"""Tests for regression.py."""
import math
import unittest

import pandas as pd
from pandas.testing import assert_frame_equal

from aggregation import DAILY, DATE, VICTIM_RACE, aggregate
from data_cleaning import run_cleaning
from regression import PREDICTED, fit_race_model
from tests.helpers import make_raw_incidents, raw_row


def _daily(counts_by_race: dict) -> pd.DataFrame:
    rows = []
    for race, counts in counts_by_race.items():
        for day, count in enumerate(counts, start=1):
            rows.append({DATE: pd.Timestamp(2020, 1, day), VICTIM_RACE: race, DAILY: count})
    return pd.DataFrame(rows, columns=[DATE, VICTIM_RACE, DAILY])


class FitRaceModelTest(unittest.TestCase):
    """Race A has daily counts [2, 4, 6] and race B has [10, 10]."""

    def setUp(self) -> None:
        self.daily = _daily({"A": [2, 4, 6], "B": [10, 10]})
        self.model = fit_race_model(self.daily)

    def test_predictions_are_race_means(self) -> None:
        predictions = self.model.predictions
        for value in predictions.loc[predictions[VICTIM_RACE] == "A", PREDICTED]:
            self.assertAlmostEqual(4.0, value)
        for value in predictions.loc[predictions[VICTIM_RACE] == "B", PREDICTED]:
            self.assertAlmostEqual(10.0, value)

    def test_predictions_keep_daily_rows(self) -> None:
        predictions = self.model.predictions
        assert_frame_equal(self.daily, predictions[[DATE, VICTIM_RACE, DAILY]])
        self.assertNotIn(PREDICTED, self.daily.columns)

    def test_coefficients_use_alphabetical_reference(self) -> None:
        coefficients = self.model.coefficients.set_index("term")

        self.assertEqual("A", self.model.reference_level)
        self.assertEqual(["Intercept", "vic_race: B"], coefficients.index.tolist())
        self.assertAlmostEqual(4.0, coefficients.loc["Intercept", "estimate"])
        self.assertAlmostEqual(6.0, coefficients.loc["vic_race: B", "estimate"])

    def test_fit_diagnostics(self) -> None:
        self.assertEqual(5, self.model.n_observations)
        # SSR = 8, TSS = 8 + 3 * (4 - 6.4)**2 + 2 * (10 - 6.4)**2 = 51.2
        self.assertAlmostEqual(1 - 8 / 51.2, self.model.r_squared)

    def test_category_stats(self) -> None:
        stats = self.model.category_stats.set_index(VICTIM_RACE)
        self.assertEqual([3, 2], stats["observations"].tolist())
        self.assertEqual([4.0, 10.0], stats["mean"].tolist())
        self.assertEqual([4.0, 0.0], stats["variance"].tolist())


class DegenerateModelTest(unittest.TestCase):
    """Thin or empty inputs must not crash the fit."""

    def test_predictions_are_not_rounded(self) -> None:
        model = fit_race_model(_daily({"A": [1, 2], "B": [5, 6, 6]}))
        predictions = model.predictions
        a_pred = predictions.loc[predictions[VICTIM_RACE] == "A", PREDICTED].tolist()
        b_pred = predictions.loc[predictions[VICTIM_RACE] == "B", PREDICTED].tolist()
        self.assertAlmostEqual(1.5, a_pred[0])
        self.assertAlmostEqual(17 / 3, b_pred[0])

    def test_single_observation_race(self) -> None:
        model = fit_race_model(_daily({"A": [2, 4, 6], "B": [10, 10], "C": [3]}))

        predictions = model.predictions
        c_pred = predictions.loc[predictions[VICTIM_RACE] == "C", PREDICTED].tolist()
        self.assertAlmostEqual(3.0, c_pred[0])
        stats = model.category_stats.set_index(VICTIM_RACE)
        self.assertTrue(math.isnan(stats.loc["C", "variance"]))

    def test_single_race(self) -> None:
        model = fit_race_model(_daily({"BLACK": [3, 5]}))

        self.assertEqual("BLACK", model.reference_level)
        self.assertEqual(["Intercept"], model.coefficients["term"].tolist())
        for value in model.predictions[PREDICTED]:
            self.assertAlmostEqual(4.0, value)

    def test_single_row(self) -> None:
        model = fit_race_model(_daily({"BLACK": [7]}))

        self.assertAlmostEqual(7.0, model.predictions[PREDICTED].iloc[0])
        self.assertTrue(math.isnan(model.category_stats["variance"].iloc[0]))

    def test_empty_input(self) -> None:
        cleaned, _ = run_cleaning(make_raw_incidents([]))
        daily, _ = aggregate(cleaned)

        model = fit_race_model(daily)

        self.assertTrue(model.predictions.empty)
        self.assertIn(PREDICTED, model.predictions.columns)
        self.assertTrue(model.coefficients.empty)
        self.assertTrue(model.category_stats.empty)
        self.assertTrue(math.isnan(model.r_squared))
        self.assertEqual(0, model.n_observations)
        self.assertIsNone(model.fit)


class ModelOnCleanedDataTest(unittest.TestCase):
    """The model fits the aggregated output of the cleaning pipeline."""

    def test_predictions_match_group_means(self) -> None:
        raw = make_raw_incidents([
            raw_row("1", "01/01/2020", "BLACK"),
            raw_row("2", "01/01/2020", "BLACK"),
            raw_row("3", "01/02/2020", "BLACK"),
            raw_row("4", "01/01/2020", "WHITE"),
            raw_row("5", "01/03/2020", None),
            raw_row("6", "01/03/2020", "(null)"),
            raw_row("7", "01/04/2020", "WHITE HISPANIC"),
        ])
        cleaned, _ = run_cleaning(raw)
        daily, _ = aggregate(cleaned)

        model = fit_race_model(daily)

        predictions = model.predictions
        expected = predictions.groupby(VICTIM_RACE, observed=True)[DAILY].transform("mean")
        for actual, mean in zip(predictions[PREDICTED], expected):
            self.assertAlmostEqual(mean, actual)
        self.assertEqual("BLACK", model.reference_level)
        self.assertIsInstance(predictions[VICTIM_RACE].dtype, pd.CategoricalDtype)
