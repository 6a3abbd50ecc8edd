"""
Domain service: rule-based command interpretation.

Pure business logic that classifies free text into a typed Intent.
No framework imports. No IO. No side effects.

Classification:
    Categories are checked in the vocabulary's priority order
    (swap, bridge, limit_order, portfolio, analysis, help). A category
    matches when the lower-cased text contains any of its keywords as a
    substring, and the first match wins. "Swap then bridge" is a swap
    because swap is checked first; keyword count and position do not
    matter.

Confidence:
    A fixed constant per category. It does not measure how well the
    text matched.

Parameters:
    Extracted per category; anything not found falls back to the
    category default from the vocabulary.
"""

import logging
import re
from typing import Optional

from intentflow.domain.command.entities import Intent, IntentCategory
from intentflow.domain.command.ports import CommandInterpreterPort
from intentflow.domain.command.vocabulary import CommandVocabulary

logger = logging.getLogger(__name__)

CATEGORY_CONFIDENCE: dict[IntentCategory, float] = {
    IntentCategory.SWAP: 0.95,
    IntentCategory.BRIDGE: 0.88,
    IntentCategory.LIMIT_ORDER: 0.92,
    IntentCategory.PORTFOLIO: 0.85,
    IntentCategory.ANALYSIS: 0.90,
    IntentCategory.HELP: 0.95,
    IntentCategory.UNKNOWN: 0.3,
}

PLANNED_STEPS: dict[IntentCategory, tuple[str, ...]] = {
    IntentCategory.SWAP: (
        "Validate token addresses and amounts",
        "Find optimal swap route across DEX aggregators",
        "Calculate gas fees and slippage",
        "Execute swap transaction",
        "Confirm transaction and update balances",
    ),
    IntentCategory.BRIDGE: (
        "Validate cross-chain parameters",
        "Check bridge liquidity and fees",
        "Initiate bridge transaction",
        "Monitor bridge completion",
        "Confirm receipt on destination chain",
    ),
    IntentCategory.LIMIT_ORDER: (
        "Parse order parameters",
        "Validate price targets and amounts",
        "Check order book liquidity",
        "Submit limit order",
        "Monitor order status",
    ),
    IntentCategory.PORTFOLIO: (
        "Fetch wallet balances across chains",
        "Calculate portfolio value and P&L",
        "Display asset allocation",
        "Show recent transactions",
    ),
    IntentCategory.ANALYSIS: (
        "Fetch trading history",
        "Calculate performance metrics",
        "Generate AI insights",
        "Display optimization recommendations",
    ),
    IntentCategory.HELP: (
        "Display command examples",
        "Show supported tokens and chains",
        "Provide usage guidelines",
    ),
    IntentCategory.UNKNOWN: (
        "Analyze request",
        "Provide guidance",
        "Suggest alternatives",
    ),
}

_NUMBER = r"(\d+(?:\.\d+)?)"


def _alternation(words: tuple[str, ...]) -> str:
    # Longest first so "wbtc" is preferred over "btc" at the same position.
    ordered = sorted(words, key=len, reverse=True)
    return "|".join(re.escape(w) for w in ordered)


class RuleBasedInterpreter(CommandInterpreterPort):
    """Keyword and regex based command interpreter.

    Args:
        vocabulary: Token, chain and keyword catalogs to classify with.
    """

    def __init__(self, vocabulary: CommandVocabulary) -> None:
        self._vocab = vocabulary
        tokens = _alternation(vocabulary.token_symbols)
        chains = _alternation(vocabulary.chain_keys)
        anchors = _alternation(vocabulary.destination_anchors)

        self._amount_re = re.compile(rf"{_NUMBER}\s*(?:{tokens})\b")
        self._token_re = re.compile(rf"\b({tokens})\b")
        self._to_token_re = re.compile(
            rf"\b(?:{anchors})\s+(?:{_NUMBER}\s*)?({tokens})\b"
        )
        self._chain_re = re.compile(rf"\b({chains})\b")
        self._from_chain_re = re.compile(rf"\bfrom\s+(?:the\s+)?({chains})\b")
        self._to_chain_re = re.compile(rf"\b(?:to|into|onto)\s+(?:the\s+)?({chains})\b")
        self._price_re = re.compile(
            rf"\b(?:at|price|target)\b(?:\s*(?:of|is|:))?\s*\$?{_NUMBER}"
        )
        self._slippage_re = re.compile(
            rf"\b(?:slippage|tolerance)\b(?:\s*(?:of|:))?\s*{_NUMBER}"
            rf"|{_NUMBER}\s*%\s*(?:slippage|tolerance)\b"
        )

    @property
    def vocabulary(self) -> CommandVocabulary:
        return self._vocab

    def classify(self, text: str) -> Intent:
        """Classify free text into an Intent.

        Args:
            text: Raw user input.

        Returns:
            The intent of the first matching category, or an ``unknown``
            intent with confidence 0.3 when nothing matches.
        """
        raw = (text or "").strip()
        lowered = raw.lower()
        category = self._detect_category(lowered) if lowered else IntentCategory.UNKNOWN

        extract = {
            IntentCategory.SWAP: self._swap_parameters,
            IntentCategory.BRIDGE: self._bridge_parameters,
            IntentCategory.LIMIT_ORDER: self._limit_order_parameters,
        }.get(category)
        if extract is not None:
            parameters = extract(lowered)
        else:
            parameters = dict(self._vocab.defaults[category])

        intent = Intent(
            category=category,
            confidence=CATEGORY_CONFIDENCE[category],
            parameters=parameters,
            action_summary=self._summarise(category, parameters, raw),
            planned_steps=PLANNED_STEPS[category],
        )
        logger.debug(
            "Classified command as %s (confidence=%.2f)",
            category.value,
            intent.confidence,
        )
        return intent

    # ------------------------------------------------------------------
    # Category detection
    # ------------------------------------------------------------------

    def _detect_category(self, lowered: str) -> IntentCategory:
        for category, keywords in self._vocab.category_keywords:
            if any(keyword in lowered for keyword in keywords):
                return category
        return IntentCategory.UNKNOWN

    # ------------------------------------------------------------------
    # Per-category parameter extraction
    # ------------------------------------------------------------------

    def _swap_parameters(self, lowered: str) -> dict[str, str]:
        category = IntentCategory.SWAP
        from_token, to_token = self._token_pair(lowered, category)
        stated = self._slippage(lowered)
        return {
            "fromToken": from_token,
            "toToken": to_token,
            "amount": self._amount(lowered, category),
            "chain": self._chain(lowered, category),
            "slippage": f"{stated}%" if stated else self._vocab.default(category, "slippage"),
        }

    def _bridge_parameters(self, lowered: str) -> dict[str, str]:
        category = IntentCategory.BRIDGE
        from_chain, to_chain = self._chain_pair(lowered)
        tokens = self._token_mentions(lowered)
        return {
            "fromChain": from_chain or self._vocab.default(category, "fromChain"),
            "toChain": to_chain or self._vocab.default(category, "toChain"),
            "token": tokens[0][1] if tokens else self._vocab.default(category, "token"),
            "amount": self._amount(lowered, category),
        }

    def _limit_order_parameters(self, lowered: str) -> dict[str, str]:
        category = IntentCategory.LIMIT_ORDER
        from_token, to_token = self._token_pair(lowered, category)
        return {
            "fromToken": from_token,
            "toToken": to_token,
            "amount": self._amount(lowered, category),
            "targetPrice": self._price(lowered, category),
            "chain": self._chain(lowered, category),
            "expiry": self._vocab.default(category, "expiry"),
        }

    # ------------------------------------------------------------------
    # Field extractors
    # ------------------------------------------------------------------

    def _amount(self, lowered: str, category: IntentCategory) -> str:
        match = self._amount_re.search(lowered)
        return match.group(1) if match else self._vocab.default(category, "amount")

    def _price(self, lowered: str, category: IntentCategory) -> str:
        match = self._price_re.search(lowered)
        return match.group(1) if match else self._vocab.default(category, "targetPrice")

    def _slippage(self, lowered: str) -> Optional[str]:
        match = self._slippage_re.search(lowered)
        if match is None:
            return None
        return match.group(1) or match.group(2)

    def _token_mentions(self, lowered: str) -> list[tuple[int, str]]:
        return [(m.start(1), m.group(1).upper()) for m in self._token_re.finditer(lowered)]

    def _token_pair(self, lowered: str, category: IntentCategory) -> tuple[str, str]:
        """Split source and destination tokens around "for"/"to"/"into".

        A lone token that matches the other side's default is moved to
        that side, so "buy eth" reads as USDC -> ETH rather than ETH -> ETH.
        """
        mentions = self._token_mentions(lowered)
        destination = self._to_token_re.search(lowered)

        if destination is not None:
            to_token: Optional[str] = destination.group(2).upper()
            to_pos = destination.start(2)
            before = [sym for pos, sym in mentions if pos < to_pos]
            others = [sym for pos, sym in mentions if pos != to_pos]
            from_token = before[0] if before else (others[0] if others else None)
        else:
            from_token = mentions[0][1] if mentions else None
            to_token = next((sym for _, sym in mentions[1:] if sym != from_token), None)

        from_default = self._vocab.default(category, "fromToken")
        to_default = self._vocab.default(category, "toToken")
        if to_token is None and from_token == to_default:
            return from_default, from_token
        if from_token is None and to_token == from_default:
            return to_default, to_token
        return from_token or from_default, to_token or to_default

    def _chain(self, lowered: str, category: IntentCategory) -> str:
        match = self._chain_re.search(lowered)
        return match.group(1).capitalize() if match else self._vocab.default(category, "chain")

    def _chain_pair(self, lowered: str) -> tuple[Optional[str], Optional[str]]:
        """Find source and destination chains around "from" and "to"."""
        from_match = self._from_chain_re.search(lowered)
        to_match = self._to_chain_re.search(lowered)
        from_chain = from_match.group(1) if from_match else None
        to_chain = to_match.group(1) if to_match else None

        mentions = [m.group(1) for m in self._chain_re.finditer(lowered)]
        if from_chain is None:
            from_chain = next((c for c in mentions if c != to_chain), None)
        if to_chain is None:
            to_chain = next((c for c in mentions if c != from_chain), None)

        return (
            from_chain.capitalize() if from_chain else None,
            to_chain.capitalize() if to_chain else None,
        )

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    @staticmethod
    def _summarise(category: IntentCategory, p: dict[str, str], raw: str) -> str:
        if category is IntentCategory.SWAP:
            return f"Swap {p['amount']} {p['fromToken']} for {p['toToken']} on {p['chain']}"
        if category is IntentCategory.BRIDGE:
            return (
                f"Bridge {p['amount']} {p['token']} from {p['fromChain']} to {p['toChain']}"
            )
        if category is IntentCategory.LIMIT_ORDER:
            return (
                f"Create limit order: {p['amount']} {p['fromToken']} "
                f"for {p['toToken']} at {p['targetPrice']}"
            )
        if category is IntentCategory.PORTFOLIO:
            return "Display portfolio overview and balances"
        if category is IntentCategory.ANALYSIS:
            return "Analyze trading performance and provide insights"
        if category is IntentCategory.HELP:
            return "Show available commands and usage examples"
        return f"Process request: {raw}"
