"""
Command vocabulary: the token, chain and keyword catalogs the
interpreter works from.

This is a plain configuration struct. Build it once at startup
(``default_vocabulary()`` or a customised copy) and pass it into the
interpreter; nothing in the domain reads it from module state.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from intentflow.domain.command.entities import ChainInfo, IntentCategory, TokenInfo

SUPPORTED_TOKENS: tuple[TokenInfo, ...] = (
    TokenInfo("ETH", "Ethereum", "0x0000000000000000000000000000000000000000", 1, 18),
    TokenInfo("USDC", "USD Coin", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 1, 6),
    TokenInfo("USDT", "Tether USD", "0xdAC17F958D2ee523a2206206994597C13D831ec7", 1, 6),
    TokenInfo("WBTC", "Wrapped Bitcoin", "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", 1, 8),
    TokenInfo("DAI", "Dai Stablecoin", "0x6B175474E89094C44Da98b954EedeAC495271d0F", 1, 18),
    TokenInfo("WMATIC", "Wrapped Matic", "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270", 137, 18),
    TokenInfo("WETH", "Wrapped Ether", "0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619", 137, 18),
)

SUPPORTED_CHAINS: tuple[ChainInfo, ...] = (
    ChainInfo("ethereum", 1, "Ethereum"),
    ChainInfo("polygon", 137, "Polygon"),
    ChainInfo("arbitrum", 42161, "Arbitrum"),
    ChainInfo("optimism", 10, "Optimism"),
    ChainInfo("bsc", 56, "Binance Smart Chain"),
)

# Symbols recognised in free text, in lookup order.
TOKEN_SYMBOLS: tuple[str, ...] = ("usdc", "eth", "btc", "dai", "usdt", "wbtc", "matic")

# Evaluated in this order; the first category with a matching keyword wins.
CATEGORY_KEYWORDS: tuple[tuple[IntentCategory, tuple[str, ...]], ...] = (
    (IntentCategory.SWAP, ("swap", "exchange", "trade", "convert")),
    (IntentCategory.BRIDGE, ("bridge", "transfer", "move", "send")),
    (IntentCategory.LIMIT_ORDER, ("limit", "order", "buy", "sell", "price")),
    (IntentCategory.PORTFOLIO, ("portfolio", "balance", "holdings", "assets")),
    (IntentCategory.ANALYSIS, ("analyze", "analysis", "performance", "metrics")),
    (IntentCategory.HELP, ("help", "guide", "how", "what", "support")),
)

CATEGORY_DEFAULTS: dict[IntentCategory, dict[str, str]] = {
    IntentCategory.SWAP: {
        "fromToken": "USDC",
        "toToken": "ETH",
        "amount": "100",
        "chain": "Ethereum",
        "slippage": "0.5%",
    },
    IntentCategory.BRIDGE: {
        "fromChain": "Ethereum",
        "toChain": "Polygon",
        "token": "USDC",
        "amount": "100",
    },
    IntentCategory.LIMIT_ORDER: {
        "fromToken": "USDC",
        "toToken": "ETH",
        "amount": "100",
        "targetPrice": "2500",
        "chain": "Ethereum",
        "expiry": "7 days",
    },
    IntentCategory.PORTFOLIO: {"action": "view", "timeframe": "all"},
    IntentCategory.ANALYSIS: {"type": "performance", "timeframe": "30d"},
    IntentCategory.HELP: {"topic": "general"},
    IntentCategory.UNKNOWN: {},
}


def _freeze_defaults(
    defaults: Mapping[IntentCategory, Mapping[str, str]],
) -> Mapping[IntentCategory, Mapping[str, str]]:
    return MappingProxyType(
        {category: MappingProxyType(dict(values)) for category, values in defaults.items()}
    )


@dataclass(frozen=True)
class CommandVocabulary:
    """Token, chain and keyword catalogs used by the interpreter.

    Attributes:
        token_symbols: Lower-case symbols recognised in free text.
        supported_tokens: Tokens advertised to users.
        supported_chains: Chains recognised in free text and advertised.
        category_keywords: Ordered (category, keywords) pairs; order is
            the classification priority.
        defaults: Per-category parameter defaults.
        destination_anchors: Words that separate source and destination
            tokens ("for", "to", "into").
    """

    token_symbols: tuple[str, ...] = TOKEN_SYMBOLS
    supported_tokens: tuple[TokenInfo, ...] = SUPPORTED_TOKENS
    supported_chains: tuple[ChainInfo, ...] = SUPPORTED_CHAINS
    category_keywords: tuple[tuple[IntentCategory, tuple[str, ...]], ...] = CATEGORY_KEYWORDS
    defaults: Mapping[IntentCategory, Mapping[str, str]] = field(
        default_factory=lambda: _freeze_defaults(CATEGORY_DEFAULTS)
    )
    destination_anchors: tuple[str, ...] = ("for", "to", "into")

    @property
    def chain_keys(self) -> tuple[str, ...]:
        return tuple(chain.key for chain in self.supported_chains)

    def default(self, category: IntentCategory, name: str) -> str:
        return self.defaults[category][name]

    def token(self, symbol: str) -> TokenInfo | None:
        symbol = symbol.upper()
        for token in self.supported_tokens:
            if token.symbol == symbol:
                return token
        return None

    def chain(self, key: str) -> ChainInfo | None:
        key = key.lower()
        for chain in self.supported_chains:
            if chain.key == key:
                return chain
        return None


def default_vocabulary() -> CommandVocabulary:
    """Return the stock vocabulary used by the dashboard."""
    return CommandVocabulary()
