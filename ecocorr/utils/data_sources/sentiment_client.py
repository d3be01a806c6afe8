"""
LunarCrushSentimentClient - SentimentProvider built on LunarCrush galaxy scores.

Asset sentiment is the coin's galaxy score scaled to [0, 1]; ecosystem
sentiment is the market-cap-weighted galaxy score of the ecosystem's top coins
(0-100 scale) together with those coins.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ecocorr.exceptions import NoDataError

from .lunarcrush_client import LunarCrushClient
from .types import EcosystemSentiment, SentimentReport, TopAsset

_LOG = logging.getLogger(__name__)

DEFAULT_MARKET_CAP = 1e9


class LunarCrushSentimentClient:

    def __init__(self, market: LunarCrushClient, default_market_cap: float = DEFAULT_MARKET_CAP):
        self.market = market
        self.default_market_cap = default_market_cap

    async def analyze_sentiment(self, entity: str, options: Optional[Dict[str, Any]] = None) -> SentimentReport:
        coin = await self.market.get_coin(entity)
        score = coin.get("galaxy_score")
        if score is None:
            raise NoDataError(entity, "no galaxy score")
        return SentimentReport(normalized_score=float(score) / 100.0)

    async def analyze_ecosystem_sentiment(
        self, ecosystem: str, options: Optional[Dict[str, Any]] = None
    ) -> EcosystemSentiment:
        limit = int((options or {}).get("limit", 10))
        constituents = await self.market.get_ecosystem_constituents(ecosystem, limit)
        if not constituents:
            raise NoDataError(ecosystem, "no constituents")

        weighted = 0.0
        total_cap = 0.0
        top_assets = []
        for constituent in constituents:
            coin = await self.market.get_coin(constituent.symbol)
            market_cap = constituent.market_cap or self.default_market_cap
            top_assets.append(TopAsset(symbol=constituent.symbol, market_cap=market_cap))
            score = coin.get("galaxy_score")
            if score is None:
                continue
            weighted += float(score) * market_cap
            total_cap += market_cap

        if total_cap == 0:
            raise NoDataError(ecosystem, "no galaxy scores")

        _LOG.debug("Ecosystem sentiment %s from %s coins", ecosystem, len(top_assets))
        return EcosystemSentiment(aggregate_score=weighted / total_cap, top_assets=top_assets)
