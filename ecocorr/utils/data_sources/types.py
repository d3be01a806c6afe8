"""
ecocorr/utils/data_sources/types.py
Provider payload models and the provider contracts consumed by the analyzers.

Field names, camelCase names and vendor short names (p, v, gs, s, mc) are all
accepted; ``None`` counts as an absent field.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Union, runtime_checkable

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class TimeSeriesPoint(BaseModel):
    """One sample of an asset's market data."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    price: float = Field(default=0.0, validation_alias=AliasChoices("price", "p"))
    volume: float = Field(default=0.0, validation_alias=AliasChoices("volume", "v"))
    sentiment_score: float = Field(default=50.0, validation_alias=AliasChoices("sentiment_score", "sentimentScore", "gs"))

    @field_validator("price", "volume", mode="before")
    @classmethod
    def _absent_to_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("sentiment_score", mode="before")
    @classmethod
    def _absent_to_neutral(cls, value: Any) -> Any:
        return 50.0 if value is None else value


class Constituent(BaseModel):
    """An asset belonging to an ecosystem."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    symbol: str = Field(validation_alias=AliasChoices("symbol", "s"))
    market_cap: Optional[float] = Field(default=None, validation_alias=AliasChoices("market_cap", "marketCap", "mc"))


class TopAsset(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    symbol: str = Field(validation_alias=AliasChoices("symbol", "asset", "s"))
    market_cap: Optional[float] = Field(default=None, validation_alias=AliasChoices("market_cap", "marketCap", "mc"))


class SentimentReport(BaseModel):
    """Single-asset sentiment, ``normalized_score`` already in [0, 1]."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    normalized_score: float = Field(validation_alias=AliasChoices("normalized_score", "normalizedScore", "normalized"))


class EcosystemSentiment(BaseModel):
    """Ecosystem sentiment, ``aggregate_score`` on the 0-100 scale."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    aggregate_score: float = Field(validation_alias=AliasChoices("aggregate_score", "aggregateScore", "score"))
    top_assets: List[TopAsset] = Field(default_factory=list, validation_alias=AliasChoices("top_assets", "topAssets"))


PointLike = Union[TimeSeriesPoint, Dict[str, Any]]
ConstituentLike = Union[Constituent, Dict[str, Any], str]


@runtime_checkable
class MarketDataProvider(Protocol):
    """Price / volume / sentiment-score time series and ecosystem membership."""

    async def get_time_series(self, entity: str, interval: str, days_back: float) -> Sequence[PointLike]:
        ...

    async def get_ecosystem_constituents(self, ecosystem: str, limit: int) -> Sequence[ConstituentLike]:
        ...


@runtime_checkable
class SentimentProvider(Protocol):

    async def analyze_sentiment(self, entity: str, options: Dict[str, Any]) -> Union[SentimentReport, Dict[str, Any]]:
        ...

    async def analyze_ecosystem_sentiment(
        self, ecosystem: str, options: Dict[str, Any]
    ) -> Union[EcosystemSentiment, Dict[str, Any]]:
        ...


def to_points(raw: Optional[Sequence[PointLike]]) -> List[TimeSeriesPoint]:
    if not raw:
        return []
    return [p if isinstance(p, TimeSeriesPoint) else TimeSeriesPoint.model_validate(p) for p in raw]


def to_constituents(raw: Optional[Sequence[ConstituentLike]]) -> List[Constituent]:
    if not raw:
        return []
    result = []
    for item in raw:
        if isinstance(item, Constituent):
            result.append(item)
        elif isinstance(item, str):
            result.append(Constituent(symbol=item))
        else:
            result.append(Constituent.model_validate(item))
    return result


def to_sentiment_report(raw: Union[SentimentReport, Dict[str, Any], None]) -> Optional[SentimentReport]:
    if raw is None or isinstance(raw, SentimentReport):
        return raw
    return SentimentReport.model_validate(raw)


def to_ecosystem_sentiment(raw: Union[EcosystemSentiment, Dict[str, Any], None]) -> Optional[EcosystemSentiment]:
    if raw is None or isinstance(raw, EcosystemSentiment):
        return raw
    return EcosystemSentiment.model_validate(raw)
