from .types import (
    Constituent,
    EcosystemSentiment,
    MarketDataProvider,
    SentimentProvider,
    SentimentReport,
    TimeSeriesPoint,
    TopAsset,
)
from .base_client import BaseClient
from .lunarcrush_client import LunarCrushClient
from .sentiment_client import LunarCrushSentimentClient

__all__ = [
    'Constituent',
    'EcosystemSentiment',
    'MarketDataProvider',
    'SentimentProvider',
    'SentimentReport',
    'TimeSeriesPoint',
    'TopAsset',
    'BaseClient',
    'LunarCrushClient',
    'LunarCrushSentimentClient',
]
