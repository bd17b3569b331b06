"""Static coin catalogues: selectable coins and the meme-coin watchlist."""

from pydantic import BaseModel, ConfigDict

from coinpulse_core.models import MarketCoin


class CoinInfo(BaseModel):
    """A selectable coin."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    symbol: str


POPULAR_COINS: tuple[CoinInfo, ...] = (
    CoinInfo(id="bitcoin", name="Bitcoin", symbol="BTC"),
    CoinInfo(id="ethereum", name="Ethereum", symbol="ETH"),
    CoinInfo(id="binancecoin", name="BNB", symbol="BNB"),
    CoinInfo(id="solana", name="Solana", symbol="SOL"),
    CoinInfo(id="ripple", name="XRP", symbol="XRP"),
    CoinInfo(id="cardano", name="Cardano", symbol="ADA"),
    CoinInfo(id="avalanche-2", name="Avalanche", symbol="AVAX"),
    CoinInfo(id="polygon", name="Polygon", symbol="MATIC"),
    CoinInfo(id="chainlink", name="Chainlink", symbol="LINK"),
    CoinInfo(id="uniswap", name="Uniswap", symbol="UNI"),
)

MEME_COIN_IDS: tuple[str, ...] = (
    "dogecoin",
    "shiba-inu",
    "pepe",
    "floki",
    "bonk",
    "dogwifcoin",
    "memecoin-2",
    "baby-doge-coin",
    "dogelon-mars",
    "samoyedcoin",
)

_IMAGE_BASE = "https://coin-images.coingecko.com/coins/images"

# Served when the listing cannot be fetched and nothing is cached
FALLBACK_MEME_COINS: tuple[MarketCoin, ...] = (
    MarketCoin(
        id="dogecoin",
        name="Dogecoin",
        symbol="doge",
        image=f"{_IMAGE_BASE}/5/large/dogecoin.png",
        current_price=0.17,
        price_change_percentage_24h=-0.16,
        market_cap=25481819178,
        market_cap_rank=9,
    ),
    MarketCoin(
        id="shiba-inu",
        name="Shiba Inu",
        symbol="shib",
        image=f"{_IMAGE_BASE}/11939/large/shiba.png",
        current_price=0.000023,
        price_change_percentage_24h=2.45,
        market_cap=13500000000,
        market_cap_rank=12,
    ),
    MarketCoin(
        id="pepe",
        name="Pepe",
        symbol="pepe",
        image=f"{_IMAGE_BASE}/29850/large/pepe-token.jpeg",
        current_price=0.000018,
        price_change_percentage_24h=5.67,
        market_cap=7500000000,
        market_cap_rank=18,
    ),
    MarketCoin(
        id="floki",
        name="FLOKI",
        symbol="floki",
        image=f"{_IMAGE_BASE}/16746/large/PNG_image.png",
        current_price=0.00015,
        price_change_percentage_24h=-1.23,
        market_cap=1400000000,
        market_cap_rank=56,
    ),
    MarketCoin(
        id="bonk",
        name="Bonk",
        symbol="bonk",
        image=f"{_IMAGE_BASE}/28600/large/bonk.jpg",
        current_price=0.000034,
        price_change_percentage_24h=3.89,
        market_cap=2300000000,
        market_cap_rank=42,
    ),
    MarketCoin(
        id="dogwifcoin",
        name="dogwifhat",
        symbol="wif",
        image=f"{_IMAGE_BASE}/33566/large/dogwifhat.jpg",
        current_price=2.45,
        price_change_percentage_24h=-2.1,
        market_cap=2400000000,
        market_cap_rank=41,
    ),
)
