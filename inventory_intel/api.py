"""
Inventory Intelligence - REST API
=================================

Thin FastAPI layer over the core functions. The caller mounts ``router`` in
its own application (or uses ``create_app``).

Endpoints:
- POST /inventory-intel/classify       - ABC-XYZ classification + matrix
- POST /inventory-intel/forecast       - Demand forecast (auto or manual method)
- POST /inventory-intel/backtest       - Holdout MAPE of one or more methods
- POST /inventory-intel/reorder        - Ranked reorder recommendations
- POST /inventory-intel/simulate       - Monte Carlo stockout risk per SKU
- POST /inventory-intel/what-if        - Policy what-if / sensitivity sweep
- POST /inventory-intel/grade-changes  - Grade changes between snapshots
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from inventory_intel.classification.abc_xyz import ABCXYZItem, classify_items
from inventory_intel.config import PolicyConfig
from inventory_intel.errors import InsufficientData, InvalidArgumentError
from inventory_intel.forecasting.backtest import backtest, compare_methods
from inventory_intel.forecasting.engine import DemandForecaster, ForecastRequest
from inventory_intel.grades.grade_change import GradeSnapshot, track_grade_changes
from inventory_intel.replenishment.reorder import ReorderInput, recommend_batch
from inventory_intel.simulation.scenario_simulator import ScenarioInput, rank_by_risk, simulate_batch
from inventory_intel.simulation.what_if import WhatIfInput, calculate_what_if, sensitivity_analysis

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory-intel", tags=["Inventory Intelligence"])

_config: Optional[PolicyConfig] = None


def get_config() -> PolicyConfig:
    """Policy configuration, read once from the environment."""
    global _config
    if _config is None:
        _config = PolicyConfig.from_env()
    return _config


def _invalid(e: InvalidArgumentError) -> HTTPException:
    logger.info(f"Rejected request: {e}")
    return HTTPException(status_code=422, detail=str(e))


# ═══════════════════════════════════════════════════════════════════════════════
# REQUEST MODELS
# ═══════════════════════════════════════════════════════════════════════════════

class ClassifyItemModel(BaseModel):
    id: str
    name: str = ""
    value: float = Field(description="Revenue (or proxy) of the item")
    demand_history: List[float] = Field(default_factory=list, description="Per-period demand")
    outbound_counts: Optional[List[float]] = Field(default=None, description="Monthly outbound movements (FMR)")


class ClassifyRequest(BaseModel):
    items: List[ClassifyItemModel]


class ForecastRequestModel(BaseModel):
    history: List[float] = Field(description="Per-period demand, oldest first")
    periods: int = Field(default=3, description="Forecast horizon")
    abc_grade: Optional[str] = None
    xyz_grade: Optional[str] = None
    turnover_rate: Optional[float] = Field(default=None, description="Annual inventory turnover")
    yoy_growth_rate: Optional[float] = Field(default=None, description="Year-over-year growth (%)")
    is_overstock: bool = False
    seasonal_adjustment: bool = True
    method: Optional[str] = Field(default=None, description="Manual method (SMA, SES, Holts, Croston, HoltWinters)")
    params: Optional[Dict[str, float]] = None
    cross_validate: Optional[bool] = Field(default=None, description="Pick the method by holdout MAPE")


class BacktestRequestModel(BaseModel):
    history: List[float]
    methods: List[str] = Field(description="Methods to evaluate")
    periods: int = Field(default=3, description="Held-out periods")
    params: Optional[Dict[str, float]] = Field(default=None, description="Parameters (single method only)")


class ReorderItemModel(BaseModel):
    product_id: str
    sku: Optional[str] = None
    avg_daily_sales: float
    current_stock: Optional[float] = Field(default=None, description="None when unknown")
    forecast_daily_sales: Optional[float] = None
    demand_std: Optional[float] = None
    abc_grade: Optional[str] = None
    xyz_grade: Optional[str] = None
    moq: int = 1
    lead_time_days: Optional[float] = None
    lead_time_std: Optional[float] = None
    unit_price: float = 0.0
    cost_price: float = 0.0
    safety_stock: Optional[float] = None
    reorder_point: Optional[float] = None


class ReorderRequest(BaseModel):
    items: List[ReorderItemModel]


class ScenarioModel(BaseModel):
    product_id: str
    current_stock: float
    average_daily_demand: float
    demand_std: float = 0.0
    lead_time_days: float
    lead_time_std: Optional[float] = None
    safety_stock: Optional[float] = None
    reorder_point: Optional[float] = None
    service_level: float = 0.95


class SimulateRequest(BaseModel):
    scenarios: List[ScenarioModel]
    trials: Optional[int] = Field(default=None, description="Trials per SKU (default from config)")
    seed: Optional[int] = Field(default=None, description="Seed for reproducible runs")


class SensitivityModel(BaseModel):
    parameter: str = Field(description="service_level, lead_time_days or safety_stock")
    min: float
    max: float
    steps: int = 10


class WhatIfRequest(BaseModel):
    service_level: float
    lead_time_days: float
    daily_demand: float
    demand_std: float
    unit_cost: float
    annual_demand: Optional[float] = None
    holding_cost_rate: Optional[float] = None
    ordering_cost: Optional[float] = None
    sensitivity: Optional[SensitivityModel] = None


class GradeEntryModel(BaseModel):
    product_id: str
    period: date
    abc_grade: Optional[str] = None
    xyz_grade: Optional[str] = None
    combined_grade: Optional[str] = None
    fmr_grade: Optional[str] = None


class GradeChangesRequest(BaseModel):
    entries: List[GradeEntryModel]
    total_products: Optional[int] = None


# ═══════════════════════════════════════════════════════════════════════════════
# ENDPOINTS
# ═══════════════════════════════════════════════════════════════════════════════

@router.post("/classify")
async def classify(request: ClassifyRequest, config: PolicyConfig = Depends(get_config)) -> Dict[str, Any]:
    """ABC-XYZ grades (and FMR where outbound counts are given) plus the 9-cell matrix."""
    try:
        items = [ABCXYZItem(**item.model_dump()) for item in request.items]
        return classify_items(items, config).to_dict()
    except InvalidArgumentError as e:
        raise _invalid(e)


@router.post("/forecast")
async def forecast(request: ForecastRequestModel, config: PolicyConfig = Depends(get_config)) -> Dict[str, Any]:
    """
    Forecast ``periods`` future values.

    With fewer than 2 periods of history the response has
    ``status = "insufficient_data"`` instead of a forecast.
    """
    try:
        result = DemandForecaster(config).forecast(ForecastRequest(**request.model_dump()))
    except InvalidArgumentError as e:
        raise _invalid(e)
    if isinstance(result, InsufficientData):
        return result.to_dict()
    return {"status": "ok", **result.to_dict()}


@router.post("/backtest")
async def run_backtest(request: BacktestRequestModel) -> Dict[str, Any]:
    """Holdout backtest; several methods are returned sorted by MAPE."""
    try:
        if len(request.methods) == 1:
            result = backtest(request.history, request.methods[0], request.periods, request.params)
            if isinstance(result, InsufficientData):
                return result.to_dict()
            return {"status": "ok", "results": [result.to_dict()]}
        if request.params:
            raise InvalidArgumentError("params can only be given for a single method")
        results = compare_methods(request.history, request.methods, request.periods)
    except InvalidArgumentError as e:
        raise _invalid(e)
    return {"status": "ok", "results": [r.to_dict() for r in results]}


@router.post("/reorder")
async def reorder(request: ReorderRequest, config: PolicyConfig = Depends(get_config)) -> Dict[str, Any]:
    """Ranked recommendations for SKUs at or below their reorder point."""
    try:
        items = [ReorderInput(**item.model_dump()) for item in request.items]
        recs = recommend_batch(items, config)
    except InvalidArgumentError as e:
        raise _invalid(e)
    return {"count": len(recs), "recommendations": [r.to_dict() for r in recs]}


@router.post("/simulate")
async def simulate(request: SimulateRequest, config: PolicyConfig = Depends(get_config)) -> Dict[str, Any]:
    """Stockout risk per SKU, riskiest first."""
    try:
        scenarios = [ScenarioInput(**s.model_dump()) for s in request.scenarios]
        results = simulate_batch(scenarios, request.trials, request.seed, config)
    except InvalidArgumentError as e:
        raise _invalid(e)
    return {"results": [r.to_dict() for r in rank_by_risk(results)]}


@router.post("/what-if")
async def what_if(request: WhatIfRequest, config: PolicyConfig = Depends(get_config)) -> Dict[str, Any]:
    """Policy figures for one parameter set, plus an optional sensitivity sweep."""
    try:
        base = WhatIfInput(**request.model_dump(exclude={"sensitivity"}))
        response: Dict[str, Any] = {"result": calculate_what_if(base, config).to_dict()}
        if request.sensitivity is not None:
            s = request.sensitivity
            sweep = sensitivity_analysis(base, s.parameter, s.min, s.max, s.steps, config)
            response["sensitivity"] = [r.to_dict() for r in sweep]
    except InvalidArgumentError as e:
        raise _invalid(e)
    return response


@router.post("/grade-changes")
async def grade_changes(request: GradeChangesRequest) -> Dict[str, Any]:
    """Grade changes between each product's two latest snapshots."""
    entries = [GradeSnapshot(**e.model_dump()) for e in request.entries]
    return track_grade_changes(entries, request.total_products).to_dict()


def create_app(config: Optional[PolicyConfig] = None) -> FastAPI:
    """Standalone application with the router mounted."""
    app = FastAPI(title="Inventory Intelligence")
    app.include_router(router)
    if config is not None:
        app.dependency_overrides[get_config] = lambda: config
    return app
