# analysis/analysis_router.py
"""
HTTP surface of the correlation engine.

    from fastapi import FastAPI
    from ecocorr.analysis.analysis_router import router

    app = FastAPI()
    app.state.correlator = create_correlator()
    app.include_router(router)

Entities are passed as a comma-separated ``entities`` query parameter.
"""

import logging
from typing import Any, Awaitable, Dict, List

from fastapi import APIRouter, HTTPException, Query, Request

from ecocorr.exceptions import (
    CorrelationError,
    MissingCapabilityError,
    NoDataError,
    ProviderError,
    UnsupportedMetricError,
)
from ecocorr.utils.performance_monitor import PerformanceMonitor

from .correlator import EcosystemCorrelator

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_BY_ERROR = (
    (NoDataError, 404),
    (UnsupportedMetricError, 400),
    (MissingCapabilityError, 501),
    (ProviderError, 502),
)


def get_correlator(request: Request) -> EcosystemCorrelator:
    correlator = getattr(request.app.state, "correlator", None)
    if correlator is None:
        raise HTTPException(status_code=503, detail="Correlator not initialized")
    return correlator


def parse_entities(entities: str) -> List[str]:
    names = [name.strip() for name in entities.split(",") if name.strip()]
    if not names:
        raise HTTPException(status_code=400, detail="entities must list at least one name")
    return names


async def _respond(operation: Awaitable[Any]) -> Dict[str, Any]:
    try:
        result = await operation
    except CorrelationError as e:
        status = next((code for error_type, code in _STATUS_BY_ERROR if isinstance(e, error_type)), 500)
        logger.info("Request failed with %s: %s", status, e)
        raise HTTPException(status_code=status, detail=str(e)) from e
    return result.to_dict()


@router.get("/health", tags=["system"])
async def health(request: Request) -> Dict[str, Any]:
    correlator = getattr(request.app.state, "correlator", None)
    return {
        "status": "ok" if correlator is not None else "initializing",
        "cache": correlator.cache.stats() if correlator is not None else None,
        "performance": PerformanceMonitor.get_instance().get_summary(),
    }


@router.get("/correlations/ecosystems", tags=["analysis"], summary="Ecosystem correlation matrix")
async def ecosystem_correlations(
    request: Request,
    entities: str = Query(..., description="Comma-separated ecosystem names"),
    timeframe: str = Query("30d"),
    metric: str = Query("combined"),
    min_correlation: float = Query(0.5),
) -> Dict[str, Any]:
    correlator = get_correlator(request)
    return await _respond(
        correlator.analyze_ecosystem_correlations(parse_entities(entities), timeframe, metric, min_correlation)
    )


@router.get("/correlations/assets", tags=["analysis"], summary="Asset correlation matrix")
async def asset_correlations(
    request: Request,
    entities: str = Query(..., description="Comma-separated asset symbols"),
    timeframe: str = Query("30d"),
    metric: str = Query("price"),
    min_correlation: float = Query(0.5),
) -> Dict[str, Any]:
    correlator = get_correlator(request)
    return await _respond(
        correlator.analyze_asset_correlations(parse_entities(entities), timeframe, metric, min_correlation)
    )


@router.get("/lead-lag", tags=["analysis"], summary="Lead/lag relationships between ecosystems")
async def lead_lag(
    request: Request,
    entities: str = Query(..., description="Comma-separated ecosystem names"),
    timeframe: str = Query("90d"),
    interval: str = Query("1d"),
    metric: str = Query("price"),
    lag_max: int = Query(14, ge=0),
) -> Dict[str, Any]:
    correlator = get_correlator(request)
    return await _respond(
        correlator.analyze_lead_lag_relationships(parse_entities(entities), timeframe, interval, metric, lag_max)
    )


@router.get("/capital-flows", tags=["analysis"], summary="Estimated capital flows between ecosystems")
async def capital_flows(
    request: Request,
    entities: str = Query(..., description="Comma-separated ecosystem names"),
    timeframe: str = Query("14d"),
    min_flow_percentage: float = Query(5.0),
) -> Dict[str, Any]:
    correlator = get_correlator(request)
    return await _respond(
        correlator.analyze_capital_flows(parse_entities(entities), timeframe, min_flow_percentage)
    )
