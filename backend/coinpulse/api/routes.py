"""REST API routes."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from coinpulse.clients import BrokerError, InvalidResponseShape, RateLimitExceeded
from coinpulse.services import POPULAR_COINS, CoinInfo, MarketAnalysisService
from coinpulse.services.market_analysis import AnalysisReport
from coinpulse_core.formatting import format_change, format_price
from coinpulse_core.models import AnalysisResult, MarketCoin

logger = logging.getLogger(__name__)

router = APIRouter()


# Response models
class AnalysisResponse(BaseModel):
    """Analysis row with display strings."""

    coin: str
    name: str
    price: float
    price_display: str
    price_change_24h: float
    change_display: str
    signal: str
    signal_reason: str
    trend: str
    sma20: float
    sma50: float
    rsi: float
    volume: Optional[float] = None
    market_cap: Optional[float] = None
    computed_at: datetime


class AnalysisReportResponse(BaseModel):
    """One analysis pass."""

    computed_at: datetime
    results: list[AnalysisResponse]
    signal_counts: dict[str, int]
    skipped: list[str]
    failed: list[str]


class MarketResponse(BaseModel):
    """Market listing row with display strings."""

    id: str
    symbol: str
    name: str
    current_price: Optional[float] = None
    price_display: str
    price_change_24h: Optional[float] = None
    change_display: str
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = None
    total_volume: Optional[float] = None
    image: Optional[str] = None


class MemeCoinsResponse(BaseModel):
    """Meme coin listing."""

    coins: list[MarketResponse]
    using_fallback: bool


class SystemStatus(BaseModel):
    """System status response."""

    status: str
    version: str
    last_analysis: Optional[datetime] = None
    broker: dict[str, int]


def get_analysis_service(request: Request) -> MarketAnalysisService:
    return request.app.state.analysis_service


def _to_analysis_response(r: AnalysisResult) -> AnalysisResponse:
    return AnalysisResponse(
        coin=r.symbol or r.coin_id.upper(),
        name=r.name,
        price=r.price,
        price_display=format_price(r.price),
        price_change_24h=r.price_change_24h,
        change_display=format_change(r.price_change_24h),
        signal=r.signal.value,
        signal_reason=r.signal_reason,
        trend=r.trend.value,
        sma20=r.sma20,
        sma50=r.sma50,
        rsi=r.rsi,
        volume=r.volume,
        market_cap=r.market_cap,
        computed_at=r.computed_at,
    )


def _to_report_response(report: AnalysisReport) -> AnalysisReportResponse:
    return AnalysisReportResponse(
        computed_at=report.computed_at,
        results=[_to_analysis_response(r) for r in report.results],
        signal_counts=report.signal_counts,
        skipped=report.skipped,
        failed=report.failed,
    )


def _to_market_response(c: MarketCoin) -> MarketResponse:
    return MarketResponse(
        id=c.id,
        symbol=c.symbol.upper(),
        name=c.name,
        current_price=c.current_price,
        price_display=format_price(c.current_price),
        price_change_24h=c.price_change_percentage_24h,
        change_display=format_change(c.change_24h),
        market_cap=c.market_cap,
        market_cap_rank=c.market_cap_rank,
        total_volume=c.total_volume,
        image=c.image,
    )


def _upstream_error(e: BrokerError) -> HTTPException:
    logger.error(f"Upstream request failed: {e}")
    if isinstance(e, RateLimitExceeded):
        return HTTPException(status_code=429, detail=str(e))
    if isinstance(e, InvalidResponseShape):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=503, detail=str(e))


@router.get("/status", response_model=SystemStatus)
async def get_status(service: MarketAnalysisService = Depends(get_analysis_service)):
    """Get system status."""
    report = service.latest_report
    return SystemStatus(
        status="running",
        version="0.1.0",
        last_analysis=report.computed_at if report else None,
        broker=service.client.broker.stats(),
    )


@router.get("/coins", response_model=list[CoinInfo])
async def get_coins():
    """Get the selectable coin catalogue."""
    return list(POPULAR_COINS)


@router.get("/markets", response_model=list[MarketResponse])
async def get_markets(
    limit: int = Query(10, ge=1, le=250, description="Number of coins to return"),
    service: MarketAnalysisService = Depends(get_analysis_service),
):
    """Get the top coins by market cap."""
    try:
        coins = await service.get_markets(limit)
    except BrokerError as e:
        raise _upstream_error(e) from e
    return [_to_market_response(c) for c in coins]


@router.get("/analysis", response_model=AnalysisReportResponse)
async def get_analysis(service: MarketAnalysisService = Depends(get_analysis_service)):
    """Get the latest analysis pass, computing one if needed."""
    try:
        report = await service.get_report()
    except BrokerError as e:
        raise _upstream_error(e) from e
    return _to_report_response(report)


@router.post("/refresh", response_model=AnalysisReportResponse)
async def refresh_analysis(service: MarketAnalysisService = Depends(get_analysis_service)):
    """Invalidate cached market data and recompute the analysis."""
    try:
        report = await service.refresh()
    except BrokerError as e:
        raise _upstream_error(e) from e
    return _to_report_response(report)


@router.get("/meme-coins", response_model=MemeCoinsResponse)
async def get_meme_coins(service: MarketAnalysisService = Depends(get_analysis_service)):
    """Get the meme coin listing (static fallback if upstream is down)."""
    listing = await service.get_meme_coins()
    return MemeCoinsResponse(
        coins=[_to_market_response(c) for c in listing.coins],
        using_fallback=listing.using_fallback,
    )
