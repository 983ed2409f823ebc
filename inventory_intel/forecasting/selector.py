"""
Rule-based forecasting method selection.

Selection is an ordered table of ``SelectionRule`` entries evaluated top to
bottom; the first rule whose predicate matches decides the method, its
parameters and the reason text. The table is data, so it can be inspected
and tested rule by rule.

    #   rule              condition                                   method
    1   short_history     fewer than 3 periods                        SMA
    2   low_value_erratic C grade and Z grade                         SMA
    3   intermittent      >= 30% zero periods, Z or ungraded, n >= 4  Croston
    4   young_stable      fewer than 6 periods, X grade               SES (X alpha)
    5   young_erratic     fewer than 6 periods, Z grade               SMA
    6   young_default     fewer than 6 periods                        SES
    7   trend             trend or |YoY growth| >= 20%, not C grade   Holt's
    8   stable            X grade                                     SES (X alpha)
    9   variable          Y grade                                     SES
    10  erratic           Z grade                                     SMA
    11  default           anything else                               SES

SES alpha follows the XYZ grade and is nudged by the turnover rate.

With cross-validation enabled, the rule table is replaced by a holdout
comparison of the candidate methods (``select_by_backtest``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from inventory_intel.forecasting.backtest import BacktestResult, compare_methods
from inventory_intel.forecasting.methods import (
    DEFAULT_HOLT_ALPHA,
    DEFAULT_HOLT_BETA,
    HIGH_TURNOVER,
    LOW_TURNOVER,
    CROSTON_ALPHA,
    ForecastMethodType,
    adjust_alpha_for_turnover,
    default_alpha,
)

logger = logging.getLogger(__name__)

MIN_SES_POINTS = 3
MIN_HOLT_POINTS = 6
MIN_CROSTON_POINTS = 4
INTERMITTENT_ZERO_SHARE = 0.30
SIGNIFICANT_GROWTH_PCT = 20.0


@dataclass(frozen=True)
class SelectionContext:
    """Metadata the rules look at."""
    data_points: int
    abc_grade: Optional[str] = None
    xyz_grade: Optional[str] = None
    has_trend: bool = False
    has_seasonality: bool = False
    turnover_rate: Optional[float] = None
    yoy_growth_rate: Optional[float] = None
    is_overstock: bool = False
    zero_share: float = 0.0
    sma_window: int = 3

    @property
    def significant_growth(self) -> bool:
        return self.yoy_growth_rate is not None and abs(self.yoy_growth_rate) >= SIGNIFICANT_GROWTH_PCT


ParamsFn = Callable[[SelectionContext], Dict[str, float]]


@dataclass(frozen=True)
class SelectionRule:
    name: str
    predicate: Callable[[SelectionContext], bool]
    method: ForecastMethodType
    params: ParamsFn
    reason_template: str


@dataclass
class Selection:
    method: ForecastMethodType
    params: Dict[str, float] = field(default_factory=dict)
    reason: str = ""
    rule: str = ""


# ═══════════════════════════════════════════════════════════════════════════════
# PARAMETER FACTORIES
# ═══════════════════════════════════════════════════════════════════════════════

def _sma(ctx: SelectionContext) -> Dict[str, float]:
    return {"window": ctx.sma_window}


def _ses(ctx: SelectionContext) -> Dict[str, float]:
    return {"alpha": adjust_alpha_for_turnover(default_alpha(ctx.xyz_grade), ctx.turnover_rate)}


def _ses_stable(ctx: SelectionContext) -> Dict[str, float]:
    return {"alpha": adjust_alpha_for_turnover(default_alpha("X"), ctx.turnover_rate)}


def _holt(ctx: SelectionContext) -> Dict[str, float]:
    return {"alpha": DEFAULT_HOLT_ALPHA, "beta": DEFAULT_HOLT_BETA}


def _croston(ctx: SelectionContext) -> Dict[str, float]:
    return {"alpha": CROSTON_ALPHA}


# ═══════════════════════════════════════════════════════════════════════════════
# RULE TABLE
# ═══════════════════════════════════════════════════════════════════════════════

SELECTION_RULES: List[SelectionRule] = [
    SelectionRule(
        "short_history",
        lambda c: c.data_points < MIN_SES_POINTS,
        ForecastMethodType.SMA, _sma,
        "only {data_points} periods of history",
    ),
    SelectionRule(
        "low_value_erratic",
        lambda c: c.abc_grade == "C" and c.xyz_grade == "Z",
        ForecastMethodType.SMA, _sma,
        "low-value item with erratic demand prefers the simplest method",
    ),
    SelectionRule(
        "intermittent",
        lambda c: (c.data_points >= MIN_CROSTON_POINTS
                   and c.zero_share >= INTERMITTENT_ZERO_SHARE
                   and c.xyz_grade in (None, "Z")),
        ForecastMethodType.CROSTON, _croston,
        "intermittent demand ({zero_pct:.0f}% zero periods)",
    ),
    SelectionRule(
        "young_stable",
        lambda c: c.data_points < MIN_HOLT_POINTS and c.xyz_grade == "X",
        ForecastMethodType.SES, _ses_stable,
        "short stable history",
    ),
    SelectionRule(
        "young_erratic",
        lambda c: c.data_points < MIN_HOLT_POINTS and c.xyz_grade == "Z",
        ForecastMethodType.SMA, _sma,
        "short erratic history",
    ),
    SelectionRule(
        "young_default",
        lambda c: c.data_points < MIN_HOLT_POINTS,
        ForecastMethodType.SES, _ses,
        "short history",
    ),
    SelectionRule(
        "trend",
        lambda c: (c.has_trend or c.significant_growth) and c.abc_grade != "C",
        ForecastMethodType.HOLTS, _holt,
        "trend or significant year-over-year growth",
    ),
    SelectionRule(
        "stable",
        lambda c: c.xyz_grade == "X",
        ForecastMethodType.SES, _ses_stable,
        "stable demand",
    ),
    SelectionRule(
        "variable",
        lambda c: c.xyz_grade == "Y",
        ForecastMethodType.SES, _ses,
        "variable demand without trend",
    ),
    SelectionRule(
        "erratic",
        lambda c: c.xyz_grade == "Z",
        ForecastMethodType.SMA, _sma,
        "erratic demand",
    ),
    SelectionRule(
        "default",
        lambda c: True,
        ForecastMethodType.SES, _ses,
        "no grade hints",
    ),
]


# ═══════════════════════════════════════════════════════════════════════════════
# REASON TEXT
# ═══════════════════════════════════════════════════════════════════════════════

_ABC_DESC = {"A": "A grade (core item)", "B": "B grade (regular item)", "C": "C grade (low revenue)"}
_XYZ_DESC = {"X": "X grade (stable demand)", "Y": "Y grade (variable demand)", "Z": "Z grade (erratic demand)"}


def describe_method(method: ForecastMethodType, params: Dict[str, Any]) -> str:
    if method == ForecastMethodType.SMA:
        return f"simple moving average (SMA, window={params.get('window')})"
    if method == ForecastMethodType.SES:
        return f"exponential smoothing (SES, alpha={params.get('alpha', 0):.2f})"
    if method == ForecastMethodType.HOLTS:
        return (f"Holt's linear trend (alpha={params.get('alpha', 0):.2f}, "
                f"beta={params.get('beta', 0):.2f})")
    if method == ForecastMethodType.CROSTON:
        return f"Croston (alpha={params.get('alpha', 0):.2f})"
    return f"Holt-Winters (season={params.get('season_length', 12)})"


def describe_factors(ctx: SelectionContext) -> str:
    factors = []
    if ctx.abc_grade:
        factors.append(_ABC_DESC.get(ctx.abc_grade, f"ABC:{ctx.abc_grade}"))
    if ctx.xyz_grade:
        factors.append(_XYZ_DESC.get(ctx.xyz_grade, f"XYZ:{ctx.xyz_grade}"))
    factors.append(f"{ctx.data_points} periods")
    if ctx.has_trend:
        factors.append("trend detected")
    if ctx.has_seasonality:
        factors.append("seasonality detected")
    if ctx.turnover_rate is not None:
        if ctx.turnover_rate > HIGH_TURNOVER:
            factors.append(f"high turnover ({ctx.turnover_rate:.1f}/yr)")
        elif ctx.turnover_rate < LOW_TURNOVER:
            factors.append(f"low turnover ({ctx.turnover_rate:.1f}/yr)")
        else:
            factors.append(f"turnover {ctx.turnover_rate:.1f}/yr")
    if ctx.yoy_growth_rate is not None:
        factors.append(f"YoY {ctx.yoy_growth_rate:+.0f}%")
    if ctx.is_overstock:
        factors.append("overstock (conservative x0.9)")
    return " · ".join(factors)


def select_method(ctx: SelectionContext, rules: Optional[List[SelectionRule]] = None) -> Selection:
    """Evaluate the rule table in order and return the first match."""
    for rule in rules or SELECTION_RULES:
        if not rule.predicate(ctx):
            continue
        params = rule.params(ctx)
        why = rule.reason_template.format(
            data_points=ctx.data_points,
            zero_pct=ctx.zero_share * 100,
        )
        reason = f"{describe_factors(ctx)} -> {describe_method(rule.method, params)} ({why})"
        logger.debug(f"Rule '{rule.name}' selected {rule.method.value}")
        return Selection(method=rule.method, params=params, reason=reason, rule=rule.name)

    # The default rule always matches; reached only with a custom table
    params = _ses(ctx)
    return Selection(
        method=ForecastMethodType.SES,
        params=params,
        reason=f"{describe_factors(ctx)} -> {describe_method(ForecastMethodType.SES, params)}",
        rule="fallback",
    )


# ═══════════════════════════════════════════════════════════════════════════════
# CROSS-VALIDATED SELECTION
# ═══════════════════════════════════════════════════════════════════════════════

# A grade-preferred method wins when its holdout MAPE is within this factor of the best
Z_SIMPLE_TOLERANCE = 1.2
A_PRECISE_TOLERANCE = 1.1

CANDIDATE_PARAMS: Dict[ForecastMethodType, ParamsFn] = {
    ForecastMethodType.SMA: _sma,
    ForecastMethodType.SES: _ses,
    ForecastMethodType.HOLTS: _holt,
    ForecastMethodType.CROSTON: _croston,
}


def _preferred(ranked: List[BacktestResult], methods: tuple, tolerance: float) -> Optional[BacktestResult]:
    best = ranked[0]
    for result in ranked:
        if result.method in methods:
            return result if result.mape < best.mape * tolerance else None
    return None


def prefer_for_grade(
    ranked: List[BacktestResult],
    abc_grade: Optional[str],
    xyz_grade: Optional[str],
) -> Tuple[BacktestResult, str]:
    """
    Pick from backtest results sorted best first, with the grade preferences applied.

    Returns the chosen result and the reason it was chosen.
    """
    if xyz_grade == "Z":
        simple = _preferred(ranked, (ForecastMethodType.SMA, ForecastMethodType.SES), Z_SIMPLE_TOLERANCE)
        if simple is not None:
            return simple, "erratic demand prefers a simple method"
    if abc_grade == "A":
        precise = _preferred(ranked, (ForecastMethodType.SES, ForecastMethodType.HOLTS), A_PRECISE_TOLERANCE)
        if precise is not None:
            return precise, "core item prefers a smoothing method"
    return ranked[0], "lowest holdout MAPE"


def select_by_backtest(
    ctx: SelectionContext,
    values: Sequence[float],
    holdout: int = 3,
    seasonal_adjustment: bool = False,
) -> Optional[Selection]:
    """
    Pick the method with the lowest holdout MAPE among the candidates.

    Z-grade items keep SMA or SES when it is within 20% of the best MAPE, and
    A-grade items keep SES or Holt's when within 10%. Returns None when no
    candidate can be backtested, so the caller falls back to the rule table.
    """
    params = {method: factory(ctx) for method, factory in CANDIDATE_PARAMS.items()}
    ranked = compare_methods(
        values, list(params), holdout,
        params_by_method=params, seasonal_adjustment=seasonal_adjustment,
    )
    if not ranked:
        return None

    chosen, why = prefer_for_grade(ranked, ctx.abc_grade, ctx.xyz_grade)
    method_params = params[chosen.method]
    reason = (
        f"{describe_factors(ctx)} -> {describe_method(chosen.method, method_params)} "
        f"({why}, MAPE {chosen.mape:.1f}% over {len(ranked)} methods)"
    )
    logger.debug(f"Cross-validation selected {chosen.method.value} (MAPE {chosen.mape:.2f})")
    return Selection(method=chosen.method, params=method_params, reason=reason, rule="cross_validated")
