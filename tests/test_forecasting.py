"""
Tests for the forecaster: methods, rule table, seasonality, cross-validation (F1-F7)
"""
from datetime import date

import numpy as np
import pytest

from inventory_intel.config import PolicyConfig
from inventory_intel.errors import InsufficientData, InvalidArgumentError
from inventory_intel.forecasting import (
    SELECTION_RULES,
    BacktestResult,
    Confidence,
    DemandForecaster,
    ForecastMethodType,
    ForecastRequest,
    ForecastResult,
    SelectionContext,
    forecast_demand,
    parse_method,
    prefer_for_grade,
    select_method,
)
from inventory_intel.forecasting.methods import (
    croston,
    detect_trend,
    holt_winters,
    holts_linear,
    run_method,
    simple_exponential_smoothing,
    simple_moving_average,
)
from inventory_intel.forecasting.seasonality import detect_seasonality, is_significant
from inventory_intel.models import TimeSeriesPoint, fill_gaps, to_points


class TestF1_Methods:
    """F1: Individual forecasting methods."""

    def test_sma_uses_last_window(self):
        """F1.1: SMA is the mean of the last window, flat over the horizon."""
        out = simple_moving_average(np.array([1.0, 2.0, 3.0, 4.0, 5.0]), 3, window=3)
        assert list(out.forecast) == [4.0, 4.0, 4.0]

    def test_sma_window_capped_to_history(self):
        """F1.2: Window longer than the history uses all points."""
        out = simple_moving_average(np.array([2.0, 4.0]), 2, window=5)
        assert out.parameters["window"] == 2
        assert list(out.forecast) == [3.0, 3.0]

    def test_ses_constant_series(self):
        """F1.3: SES of a constant series is that constant."""
        out = simple_exponential_smoothing(np.full(6, 7.0), 4, alpha=0.3)
        assert np.allclose(out.forecast, 7.0)

    def test_holts_follows_linear_trend(self):
        """F1.4: Holt's extrapolates an exact line."""
        values = np.arange(10.0, 130.0, 10.0)
        out = holts_linear(values, 3)
        assert np.allclose(out.forecast, [130.0, 140.0, 150.0])

    def test_croston_intermittent(self):
        """F1.5: Croston forecasts size / interval."""
        values = np.array([0, 6, 0, 6, 0, 6, 0, 6], dtype=float)
        out = croston(values, 2)
        assert np.allclose(out.forecast, 3.0)
        assert out.parameters["zero_proportion"] == pytest.approx(0.5)

    def test_holt_winters_needs_two_seasons(self):
        """F1.6: Holt-Winters rejects fewer than 24 monthly points."""
        with pytest.raises(InvalidArgumentError):
            holt_winters(np.ones(12), 3)

    def test_holt_winters_repeats_season(self, seasonal_history):
        """F1.7: A perfectly repeating pattern is forecast close to itself."""
        out = holt_winters(np.array(seasonal_history, dtype=float), 12)
        assert len(out.forecast) == 12
        assert np.argmax(out.forecast) == int(np.argmax(seasonal_history[:12]))

    def test_unknown_parameter_rejected(self):
        """F1.8: Parameters a method does not take are rejected."""
        with pytest.raises(InvalidArgumentError):
            run_method("SMA", np.ones(5), 2, {"alpha": 0.3})

    def test_parse_method_aliases(self):
        """F1.9: Method keys are case-insensitive, unknown keys raise."""
        assert parse_method("holt's") == ForecastMethodType.HOLTS
        assert parse_method("sma") == ForecastMethodType.SMA
        with pytest.raises(InvalidArgumentError):
            parse_method("arima")

    def test_trend_detection(self):
        """F1.10: Linear growth is a trend, flat noise is not."""
        assert detect_trend(np.arange(10.0, 130.0, 10.0))
        assert not detect_trend(np.array([100, 102, 98, 101, 99, 100, 103, 97], dtype=float))
        assert not detect_trend(np.array([1.0, 2.0, 3.0]))

    def test_holt_winters_fixed_parameters(self, seasonal_history):
        """F1.11: Given smoothing parameters are used as-is by the fit."""
        out = holt_winters(np.array(seasonal_history, dtype=float), 6, alpha=0.4, beta=0.1, gamma=0.2)
        assert out.parameters["alpha"] == pytest.approx(0.4)
        assert out.parameters["beta"] == pytest.approx(0.1)
        assert out.parameters["gamma"] == pytest.approx(0.2)
        assert out.parameters["season_length"] == 12
        assert len(out.forecast) == 6

    def test_holt_winters_rejects_bad_smoothing(self, seasonal_history):
        """F1.12: Smoothing parameters outside [0, 1] are caller errors."""
        with pytest.raises(InvalidArgumentError):
            holt_winters(np.array(seasonal_history, dtype=float), 3, alpha=1.5)


class TestF2_RuleTable:
    """F2: Ordered selection rules."""

    def test_rule_order(self):
        """F2.1: Rules are evaluated in a fixed order."""
        names = [r.name for r in SELECTION_RULES]
        assert names == [
            "short_history", "low_value_erratic", "intermittent", "young_stable",
            "young_erratic", "young_default", "trend", "stable", "variable",
            "erratic", "default",
        ]

    @pytest.mark.parametrize("ctx,rule,method", [
        (SelectionContext(data_points=2), "short_history", ForecastMethodType.SMA),
        (SelectionContext(data_points=12, abc_grade="C", xyz_grade="Z"), "low_value_erratic", ForecastMethodType.SMA),
        (SelectionContext(data_points=8, zero_share=0.5), "intermittent", ForecastMethodType.CROSTON),
        (SelectionContext(data_points=4, xyz_grade="X"), "young_stable", ForecastMethodType.SES),
        (SelectionContext(data_points=4, xyz_grade="Z"), "young_erratic", ForecastMethodType.SMA),
        (SelectionContext(data_points=5), "young_default", ForecastMethodType.SES),
        (SelectionContext(data_points=12, abc_grade="A", has_trend=True), "trend", ForecastMethodType.HOLTS),
        (SelectionContext(data_points=12, abc_grade="B", yoy_growth_rate=-25.0), "trend", ForecastMethodType.HOLTS),
        (SelectionContext(data_points=12, xyz_grade="X"), "stable", ForecastMethodType.SES),
        (SelectionContext(data_points=12, xyz_grade="Y"), "variable", ForecastMethodType.SES),
        (SelectionContext(data_points=12, xyz_grade="Z"), "erratic", ForecastMethodType.SMA),
        (SelectionContext(data_points=12, abc_grade="C", has_trend=True), "default", ForecastMethodType.SES),
    ])
    def test_first_match_wins(self, ctx, rule, method):
        """F2.2: Each context lands on the expected rule."""
        selection = select_method(ctx)
        assert selection.rule == rule
        assert selection.method == method

    def test_alpha_by_grade_and_turnover(self):
        """F2.3: SES alpha follows XYZ grade and turnover."""
        assert select_method(SelectionContext(data_points=12, xyz_grade="X")).params["alpha"] == 0.2
        assert select_method(SelectionContext(data_points=12, xyz_grade="Y")).params["alpha"] == 0.3
        fast = select_method(SelectionContext(data_points=12, xyz_grade="X", turnover_rate=15))
        slow = select_method(SelectionContext(data_points=12, xyz_grade="Y", turnover_rate=2))
        assert fast.params["alpha"] == pytest.approx(0.3)
        assert slow.params["alpha"] == pytest.approx(0.2)

    def test_reason_names_factors_and_method(self):
        """F2.4: Reason lists the factors and the chosen method."""
        selection = select_method(SelectionContext(data_points=12, abc_grade="A", xyz_grade="X"))
        assert "A grade" in selection.reason
        assert "12 periods" in selection.reason
        assert "SES" in selection.reason


class TestF3_Forecaster:
    """F3: Forecaster end to end."""

    def test_single_point_is_insufficient(self):
        """F3.1: One period of history gives no forecast."""
        result = forecast_demand(ForecastRequest(history=[5], periods=3))
        assert isinstance(result, InsufficientData)
        assert result.required == 2
        assert result.available == 1

    @pytest.mark.parametrize("periods", [0, -1])
    def test_non_positive_horizon_rejected(self, periods):
        """F3.2: Horizon must be positive."""
        with pytest.raises(InvalidArgumentError):
            forecast_demand(ForecastRequest(history=[1, 2, 3], periods=periods))

    def test_negative_history_rejected(self):
        """F3.3: Negative demand is a caller error."""
        with pytest.raises(InvalidArgumentError):
            forecast_demand(ForecastRequest(history=[1, -2, 3], periods=2))

    @pytest.mark.parametrize("periods", [1, 3, 7])
    def test_length_matches_horizon(self, stable_history, periods):
        """F3.4: Forecast length equals the horizon."""
        result = forecast_demand(ForecastRequest(history=stable_history, periods=periods, xyz_grade="X"))
        assert len(result.forecast) == periods

    def test_negative_output_clamped(self):
        """F3.5: A falling trend never produces negative demand."""
        history = [100, 80, 60, 40, 20, 5, 0, 0]
        result = forecast_demand(ForecastRequest(history=history, periods=6, method="Holts"))
        assert len(result.forecast) == 6
        assert all(v >= 0 for v in result.forecast)

    def test_stable_grade_x_uses_ses(self, stable_history):
        """F3.6: Stable X-grade demand is forecast with SES."""
        result = forecast_demand(ForecastRequest(history=stable_history, periods=3, abc_grade="A", xyz_grade="X"))
        assert result.method == ForecastMethodType.SES
        assert result.rule == "stable"
        assert result.parameters["alpha"] == 0.2
        assert not result.seasonally_adjusted
        assert result.forecast == pytest.approx([100.0] * 3, abs=2.0)

    def test_trend_uses_holts(self):
        """F3.7: A clear trend on an A item selects Holt's."""
        history = list(range(10, 130, 10))
        result = forecast_demand(ForecastRequest(
            history=history, periods=3, abc_grade="A", xyz_grade="Y", seasonal_adjustment=False,
        ))
        assert result.method == ForecastMethodType.HOLTS
        assert result.forecast == pytest.approx([130.0, 140.0, 150.0])

    def test_intermittent_uses_croston(self):
        """F3.8: Mostly-zero demand selects Croston."""
        result = forecast_demand(ForecastRequest(history=[0, 5, 0, 0, 6, 0, 5, 0], periods=2))
        assert result.method == ForecastMethodType.CROSTON
        assert all(v > 0 for v in result.forecast)

    def test_overstock_is_conservative(self, stable_history):
        """F3.9: Overstocked items get 90% of the normal forecast."""
        base = forecast_demand(ForecastRequest(history=stable_history, periods=3, xyz_grade="X"))
        over = forecast_demand(ForecastRequest(history=stable_history, periods=3, xyz_grade="X", is_overstock=True))
        assert over.forecast == pytest.approx([v * 0.9 for v in base.forecast])

    def test_manual_override(self, stable_history):
        """F3.10: Manual method is used as given, reason is "manual"."""
        result = forecast_demand(ForecastRequest(
            history=stable_history, periods=3, xyz_grade="X", method="SMA", params={"window": 4},
        ))
        assert result.method == ForecastMethodType.SMA
        assert result.selection_reason == "manual"
        assert result.parameters["window"] == 4
        assert result.forecast == pytest.approx([np.mean(stable_history[-4:])] * 3)

    def test_manual_unknown_method(self, stable_history):
        """F3.11: Unknown manual method is rejected, never substituted."""
        with pytest.raises(InvalidArgumentError):
            forecast_demand(ForecastRequest(history=stable_history, periods=3, method="prophet"))

    def test_manual_holt_winters_short_history(self, stable_history):
        """F3.12: Holt-Winters without two seasons is insufficient data."""
        result = forecast_demand(ForecastRequest(history=stable_history, periods=3, method="HoltWinters"))
        assert isinstance(result, InsufficientData)
        assert result.required == 24

    def test_dated_history_with_gaps(self):
        """F3.13: Missing months count as zero demand."""
        points = [
            TimeSeriesPoint(date(2026, 1, 1), 10),
            TimeSeriesPoint(date(2026, 3, 1), 20),
        ]
        result = forecast_demand(ForecastRequest(history=points, periods=2, method="SMA", params={"window": 3}))
        assert result.forecast == pytest.approx([10.0, 10.0])

    def test_forecaster_is_reusable(self, stable_history):
        """F3.14: Same forecaster, same input, same output."""
        forecaster = DemandForecaster()
        request = ForecastRequest(history=stable_history, periods=3, xyz_grade="X")
        assert forecaster.forecast(request).to_dict() == forecaster.forecast(request).to_dict()


class TestF4_Seasonality:
    """F4: Seasonal adjustment."""

    def test_indices_normalized(self, seasonal_history):
        """F4.1: Indices sum to 12 and are significant for a strong pattern."""
        indices = detect_seasonality(seasonal_history)
        assert indices is not None
        assert indices.sum() == pytest.approx(12.0)
        assert is_significant(indices)

    def test_flat_series_not_seasonal(self, stable_history):
        """F4.2: Flat demand has no meaningful seasonality."""
        assert not is_significant(detect_seasonality(stable_history))

    def test_short_series_has_no_indices(self):
        """F4.3: Fewer than 12 points cannot be seasonal."""
        assert detect_seasonality([1, 2, 3]) is None

    def test_seasonal_forecast(self, seasonal_history):
        """F4.4: Seasonal history is adjusted and the forecast follows the pattern."""
        result = forecast_demand(ForecastRequest(history=seasonal_history, periods=6, xyz_grade="Y"))
        assert result.seasonally_adjusted
        assert "seasonal adjustment" in result.selection_reason
        # position 0 (low month) vs position 4 (peak month)
        assert result.forecast[0] < result.forecast[4]

    def test_seasonal_adjustment_can_be_disabled(self, seasonal_history):
        """F4.5: Flag off keeps the raw series."""
        result = forecast_demand(ForecastRequest(
            history=seasonal_history, periods=3, xyz_grade="Y", seasonal_adjustment=False,
        ))
        assert not result.seasonally_adjusted


class TestF5_BacktestAnnotation:
    """F5: Advisory backtest on the forecast."""

    def test_stable_history_high_confidence(self, stable_history):
        """F5.1: Stable demand backtests with high confidence."""
        result = forecast_demand(ForecastRequest(history=stable_history, periods=3, xyz_grade="X"))
        assert isinstance(result, ForecastResult)
        assert result.mape is not None
        assert result.mape < 10
        assert result.confidence == Confidence.HIGH

    def test_short_history_still_forecasts(self):
        """F5.2: Too short to backtest: forecast returned with low confidence."""
        result = forecast_demand(ForecastRequest(history=[10, 12, 11, 13], periods=2))
        assert isinstance(result, ForecastResult)
        assert result.mape is None
        assert result.confidence == Confidence.LOW

    def test_seasonal_forecast_backtested_on_adjusted_chain(self, seasonal_history):
        """F5.3: A seasonally adjusted forecast is scored through the same adjustment."""
        result = forecast_demand(ForecastRequest(history=seasonal_history, periods=3, xyz_grade="Y"))
        assert result.seasonally_adjusted
        assert result.backtest.seasonally_adjusted
        assert result.mape < 1.0
        assert result.confidence == Confidence.HIGH

    def test_unadjusted_forecast_backtested_raw(self, seasonal_history):
        """F5.4: Without adjustment the raw series is scored."""
        result = forecast_demand(ForecastRequest(
            history=seasonal_history, periods=3, xyz_grade="Y", seasonal_adjustment=False,
        ))
        assert not result.backtest.seasonally_adjusted
        assert result.mape > 10


class TestF6_TimeSeries:
    """F6: Demand series helpers."""

    def test_fill_gaps_monthly(self):
        """F6.1: Gaps become zero buckets, same-month points are summed."""
        points = [
            TimeSeriesPoint(date(2026, 3, 1), 5),
            TimeSeriesPoint(date(2026, 1, 1), 10),
            TimeSeriesPoint(date(2026, 1, 15), 2),
        ]
        filled = fill_gaps(points)
        assert [p.period for p in filled] == [date(2026, 1, 1), date(2026, 2, 1), date(2026, 3, 1)]
        assert [p.quantity for p in filled] == [12.0, 0.0, 5.0]

    def test_negative_point_rejected(self):
        """F6.2: Negative quantity is rejected at construction."""
        with pytest.raises(InvalidArgumentError):
            TimeSeriesPoint(date(2026, 1, 1), -1)

    def test_to_points(self):
        """F6.3: Plain values become a contiguous monthly series."""
        points = to_points([1, 2, 3], date(2026, 1, 1))
        assert [p.period for p in points] == [date(2026, 1, 1), date(2026, 2, 1), date(2026, 3, 1)]


def _scored(method, mape):
    return BacktestResult(method=method, mape=mape, confidence=Confidence.LOW)


class TestF7_CrossValidation:
    """F7: Method chosen by holdout MAPE."""

    def test_off_by_default(self):
        """F7.1: The rule table decides unless cross-validation is asked for."""
        result = forecast_demand(ForecastRequest(history=list(range(10, 130, 10)), periods=3, abc_grade="A"))
        assert result.rule == "trend"

    def test_best_mape_wins(self):
        """F7.2: An exact line is won by Holt's with zero holdout error."""
        result = forecast_demand(ForecastRequest(
            history=list(range(10, 130, 10)), periods=3, xyz_grade="Y", cross_validate=True,
        ))
        assert result.method == ForecastMethodType.HOLTS
        assert result.rule == "cross_validated"
        assert "lowest holdout MAPE" in result.selection_reason
        assert result.mape == pytest.approx(0.0, abs=1e-6)

    def test_enabled_from_config(self):
        """F7.3: The policy flag turns it on for every request."""
        forecaster = DemandForecaster(PolicyConfig(cross_validate_selection=True))
        result = forecaster.forecast(ForecastRequest(history=list(range(10, 130, 10)), periods=3))
        assert result.rule == "cross_validated"
        off = forecaster.forecast(ForecastRequest(history=list(range(10, 130, 10)), periods=3, cross_validate=False))
        assert off.rule != "cross_validated"

    def test_short_history_falls_back_to_rules(self):
        """F7.4: Too short to hold out: the rule table is used."""
        result = forecast_demand(ForecastRequest(history=[10, 12, 11, 13], periods=2, cross_validate=True))
        assert result.rule == "young_default"

    def test_z_grade_prefers_simple_method(self):
        """F7.5: SMA/SES within 20% of the best MAPE wins for Z items."""
        ranked = [
            _scored(ForecastMethodType.CROSTON, 10.0),
            _scored(ForecastMethodType.SMA, 11.5),
            _scored(ForecastMethodType.SES, 13.0),
        ]
        chosen, why = prefer_for_grade(ranked, None, "Z")
        assert chosen.method == ForecastMethodType.SMA
        assert "simple" in why

        ranked[1] = _scored(ForecastMethodType.SMA, 12.5)
        chosen, _ = prefer_for_grade(ranked, None, "Z")
        assert chosen.method == ForecastMethodType.CROSTON

    def test_a_grade_prefers_smoothing(self):
        """F7.6: SES/Holt's within 10% of the best MAPE wins for A items."""
        ranked = [
            _scored(ForecastMethodType.SMA, 10.0),
            _scored(ForecastMethodType.HOLTS, 10.5),
        ]
        chosen, _ = prefer_for_grade(ranked, "A", "X")
        assert chosen.method == ForecastMethodType.HOLTS
        chosen, why = prefer_for_grade([ranked[0], _scored(ForecastMethodType.HOLTS, 11.5)], "A", "X")
        assert chosen.method == ForecastMethodType.SMA
        assert why == "lowest holdout MAPE"

    def test_z_preference_checked_before_a(self):
        """F7.7: An AZ item whose simple method misses falls through to the A preference."""
        ranked = [
            _scored(ForecastMethodType.CROSTON, 10.0),
            _scored(ForecastMethodType.HOLTS, 10.8),
            _scored(ForecastMethodType.SMA, 15.0),
        ]
        chosen, _ = prefer_for_grade(ranked, "A", "Z")
        assert chosen.method == ForecastMethodType.HOLTS
