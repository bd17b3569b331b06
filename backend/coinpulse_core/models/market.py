"""Market listing and price history models."""

from datetime import datetime, timezone
from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MarketCoin(BaseModel):
    """One row of the upstream "markets" listing.

    Only the fields the analysis and display paths use are declared;
    everything else in the upstream payload is ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    symbol: str
    name: str
    current_price: float | None
    price_change_percentage_24h: float | None = None
    market_cap: float | None = None
    market_cap_rank: int | None = None
    total_volume: float | None = None
    image: str | None = None

    @property
    def change_24h(self) -> float:
        """24h change in percent, 0 when the upstream omits it."""
        return self.price_change_percentage_24h or 0.0


class PricePoint(BaseModel):
    """A single (timestamp, price) sample."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    price: float


class PriceSeries(BaseModel):
    """Price history for one coin, ascending by time."""

    model_config = ConfigDict(frozen=True)

    coin_id: str
    points: tuple[PricePoint, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _check_ascending(self) -> "PriceSeries":
        for prev, cur in zip(self.points, self.points[1:]):
            if cur.timestamp < prev.timestamp:
                raise ValueError(
                    f"price series for {self.coin_id} is not ascending "
                    f"({cur.timestamp.isoformat()} < {prev.timestamp.isoformat()})"
                )
        return self

    @classmethod
    def from_pairs(
        cls, coin_id: str, pairs: Iterable[Sequence[float]]
    ) -> "PriceSeries":
        """Build a series from ``[timestamp_ms, price]`` pairs."""
        points = tuple(
            PricePoint(
                timestamp=datetime.fromtimestamp(ts / 1000, tz=timezone.utc),
                price=price,
            )
            for ts, price in pairs
        )
        return cls(coin_id=coin_id, points=points)

    @property
    def prices(self) -> list[float]:
        """Get list of prices, oldest first."""
        return [p.price for p in self.points]

    @property
    def latest(self) -> PricePoint | None:
        return self.points[-1] if self.points else None

    def __len__(self) -> int:
        return len(self.points)
