"""
Domain service: stage result payloads.

Builds the small, display-oriented result map each stage attaches when
it completes. Figures come from the market-data and wallet ports; the
shaping rules (risk scoring, impact levels, efficiency) live here.

A builder that raises (for example because the market-data provider is
down) fails only its own stage; the orchestrator records the error on
the stage record.
"""

from typing import Any, Callable

from intentflow.domain.command.entities import (
    Intent,
    IntentCategory,
    MarketQuote,
    StageId,
    WalletSnapshot,
)
from intentflow.domain.command.ports import MarketDataPort, WalletSessionPort

DEFAULT_SLIPPAGE_PCT = 0.5

_COMPLEXITY = {
    IntentCategory.SWAP: "medium",
    IntentCategory.BRIDGE: "high",
    IntentCategory.LIMIT_ORDER: "medium",
}

_ESTIMATED_TIME = {
    IntentCategory.SWAP: "30 seconds",
    IntentCategory.BRIDGE: "5 minutes",
    IntentCategory.LIMIT_ORDER: "30 seconds",
}


def _pct(value: float) -> str:
    return f"{value:.2f}%"


def _efficiency(quote: MarketQuote) -> float:
    return round(100.0 - quote.price_impact_pct * 12.5, 1)


def risk_score(quote: MarketQuote, wallet: WalletSnapshot, intent: Intent) -> float:
    """Score in [0, 1]; higher is riskier."""
    score = 0.05 + quote.price_impact_pct * 0.5
    if quote.volatility.lower() == "high":
        score += 0.1
    if quote.pool_depth.lower() == "low":
        score += 0.2
    if intent.category.is_on_chain and not wallet.connected:
        score += 0.15
    return round(min(score, 1.0), 2)


def impact_level(price_impact_pct: float) -> str:
    if price_impact_pct < 0.5:
        return "Minimal"
    if price_impact_pct < 2.0:
        return "Moderate"
    return "Severe"


class StageResultBuilder:
    """Computes the result payload of each catalog stage.

    Args:
        market_data: Provider of quote, gas and liquidity figures.
        wallet: Wallet session to validate against.
    """

    def __init__(self, market_data: MarketDataPort, wallet: WalletSessionPort) -> None:
        self._market_data = market_data
        self._wallet = wallet
        self._builders: dict[StageId, Callable[[Intent], dict[str, Any]]] = {
            StageId.INTENT_ANALYSIS: self._intent_analysis,
            StageId.RISK_ASSESSMENT: self._risk_assessment,
            StageId.MARKET_ANALYSIS: self._market_analysis,
            StageId.WALLET_VALIDATION: self._wallet_validation,
            StageId.GAS_OPTIMIZATION: self._gas_optimization,
            StageId.ROUTE_CALCULATION: self._route_calculation,
            StageId.EXECUTION_PLANNING: self._execution_planning,
            StageId.SECURITY_CHECK: self._security_check,
            StageId.PERFORMANCE_PREDICTION: self._performance_prediction,
            StageId.NETWORK_ANALYSIS: self._network_analysis,
            StageId.LIQUIDITY_CHECK: self._liquidity_check,
            StageId.PRICE_IMPACT_ANALYSIS: self._price_impact_analysis,
        }

    def build(self, stage_id: StageId, intent: Intent) -> dict[str, Any]:
        """Return the result payload for one stage."""
        return self._builders[stage_id](intent)

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def _intent_analysis(self, intent: Intent) -> dict[str, Any]:
        return {
            "detectedIntent": intent.category.value,
            "confidence": intent.confidence,
            "extractedParams": dict(intent.parameters),
            "complexity": _COMPLEXITY.get(intent.category, "low"),
        }

    def _risk_assessment(self, intent: Intent) -> dict[str, Any]:
        quote = self._market_data.get_quote(intent)
        wallet = self._wallet.snapshot()
        score = risk_score(quote, wallet, intent)

        factors = [
            "Liquidity available" if quote.pool_depth.lower() != "low" else "Limited liquidity",
            "Price impact minimal" if quote.price_impact_pct < 0.5 else "Price impact elevated",
            "Market stable" if quote.volatility.lower() != "high" else "Market volatile",
        ]
        if intent.category.is_on_chain and not wallet.connected:
            factors.append("Wallet not connected")

        if score < 0.3:
            level = "low"
            recommendations = [
                "Proceed with transaction",
                f"Set slippage to {self._slippage(intent):g}%",
            ]
        elif score < 0.6:
            level = "medium"
            recommendations = [
                "Consider splitting the trade into smaller orders",
                f"Set slippage to {self._slippage(intent):g}%",
            ]
        else:
            level = "high"
            recommendations = [
                "Reduce trade size",
                "Wait for calmer market conditions",
            ]

        return {
            "riskLevel": level,
            "riskFactors": factors,
            "recommendations": recommendations,
            "riskScore": score,
        }

    def _market_analysis(self, intent: Intent) -> dict[str, Any]:
        quote = self._market_data.get_quote(intent)
        return {
            "currentPrice": quote.current_price,
            "priceChange": quote.price_change,
            "liquidity": quote.pool_depth,
            "volume24h": quote.volume_24h,
            "marketTrend": quote.market_trend,
            "volatility": quote.volatility,
        }

    def _wallet_validation(self, intent: Intent) -> dict[str, Any]:
        wallet = self._wallet.snapshot()
        result: dict[str, Any] = {
            "connected": wallet.connected,
            "balance": wallet.balance,
            "network": wallet.network,
            "gasBalance": wallet.gas_balance,
            "address": wallet.address,
        }
        if not wallet.connected:
            result["recommendations"] = ["Connect a wallet before executing"]
        return result

    def _gas_optimization(self, intent: Intent) -> dict[str, Any]:
        quote = self._market_data.get_quote(intent)
        return {
            "estimatedGas": quote.estimated_gas,
            "gasPrice": f"{quote.gas_price_gwei:g} Gwei",
            "totalCost": quote.gas_cost,
            "optimization": "Gas optimized for current network conditions",
            "savings": "15% vs standard",
        }

    def _route_calculation(self, intent: Intent) -> dict[str, Any]:
        quote = self._market_data.get_quote(intent)
        return {
            "bestRoute": quote.best_route,
            "expectedOutput": quote.expected_output,
            "priceImpact": _pct(quote.price_impact_pct),
            "alternativeRoutes": list(quote.alternative_routes),
            "routeEfficiency": f"{_efficiency(quote)}%",
        }

    def _execution_planning(self, intent: Intent) -> dict[str, Any]:
        quote = self._market_data.get_quote(intent)
        return {
            "steps": list(intent.planned_steps),
            "estimatedTime": _ESTIMATED_TIME.get(intent.category, "5 seconds"),
            "successRate": f"{_efficiency(quote)}%",
            "fallbackPlan": "Use alternative DEX if needed",
        }

    def _security_check(self, intent: Intent) -> dict[str, Any]:
        wallet = self._wallet.snapshot()
        permissions_valid = wallet.connected or not intent.category.is_on_chain
        warnings = [] if permissions_valid else ["Wallet not connected"]
        return {
            "contractVerified": True,
            "permissionsValid": permissions_valid,
            "securityScore": "A+" if permissions_valid else "B",
            "warnings": warnings,
            "auditStatus": "Audited by multiple firms",
        }

    def _performance_prediction(self, intent: Intent) -> dict[str, Any]:
        quote = self._market_data.get_quote(intent)
        probability = max(0.0, min(1.0, 1.0 - quote.price_impact_pct / 8.0))
        return {
            "successProbability": round(probability, 3),
            "expectedSlippage": _pct(quote.expected_slippage_pct),
            "profitPotential": "High" if quote.market_trend == "bullish" else "Moderate",
            "riskRewardRatio": "1:3",
            "confidenceInterval": "95%",
        }

    def _network_analysis(self, intent: Intent) -> dict[str, Any]:
        quote = self._market_data.get_quote(intent)
        return {
            "congestion": quote.congestion,
            "averageGasPrice": f"{round(quote.gas_price_gwei * 0.88):d} Gwei",
            "blockTime": quote.block_time,
            "networkHealth": quote.network_health,
            "recommendedGas": f"{quote.gas_price_gwei:g} Gwei",
        }

    def _liquidity_check(self, intent: Intent) -> dict[str, Any]:
        quote = self._market_data.get_quote(intent)
        return {
            "totalLiquidity": quote.total_liquidity,
            "availableLiquidity": quote.available_liquidity,
            "depth": quote.pool_depth,
            "spread": quote.spread,
            "poolHealth": "Excellent" if quote.pool_depth.lower() == "high" else "Fair",
        }

    def _price_impact_analysis(self, intent: Intent) -> dict[str, Any]:
        quote = self._market_data.get_quote(intent)
        return {
            "priceImpact": _pct(quote.price_impact_pct),
            "slippage": _pct(quote.expected_slippage_pct),
            "impactLevel": impact_level(quote.price_impact_pct),
            "recommendedSlippage": f"{self._slippage(intent):g}%",
            "maxTradeSize": "$50K",
        }

    @staticmethod
    def _slippage(intent: Intent) -> float:
        stated = intent.parameters.get("slippage")
        if stated:
            return float(stated.rstrip("%"))
        return DEFAULT_SLIPPAGE_PCT
