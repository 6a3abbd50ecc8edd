"""
The fixed, ordered catalog of analysis stages.

Every pipeline run instantiates exactly these twelve stages, in this
order. The catalog is immutable.
"""

from intentflow.domain.command.entities import StageCategory, StageDefinition, StageId

STAGE_CATALOG: tuple[StageDefinition, ...] = (
    StageDefinition(
        StageId.INTENT_ANALYSIS,
        "Intent Analysis",
        "Analyzing user intent and extracting key parameters",
        StageCategory.ANALYSIS,
    ),
    StageDefinition(
        StageId.RISK_ASSESSMENT,
        "Risk Assessment",
        "Evaluating transaction risks and market conditions",
        StageCategory.SECURITY,
    ),
    StageDefinition(
        StageId.MARKET_ANALYSIS,
        "Market Analysis",
        "Analyzing current market conditions and liquidity",
        StageCategory.ANALYSIS,
    ),
    StageDefinition(
        StageId.WALLET_VALIDATION,
        "Wallet Validation",
        "Checking wallet connectivity and balance",
        StageCategory.SECURITY,
    ),
    StageDefinition(
        StageId.GAS_OPTIMIZATION,
        "Gas Optimization",
        "Optimizing gas fees and transaction timing",
        StageCategory.OPTIMIZATION,
    ),
    StageDefinition(
        StageId.ROUTE_CALCULATION,
        "Route Calculation",
        "Finding optimal swap routes across DEXs",
        StageCategory.OPTIMIZATION,
    ),
    StageDefinition(
        StageId.EXECUTION_PLANNING,
        "Execution Planning",
        "Creating detailed execution strategy",
        StageCategory.EXECUTION,
    ),
    StageDefinition(
        StageId.SECURITY_CHECK,
        "Security Check",
        "Validating contract security and permissions",
        StageCategory.SECURITY,
    ),
    StageDefinition(
        StageId.PERFORMANCE_PREDICTION,
        "Performance Prediction",
        "Predicting transaction success probability",
        StageCategory.ANALYSIS,
    ),
    StageDefinition(
        StageId.NETWORK_ANALYSIS,
        "Network Analysis",
        "Analyzing network congestion and fees",
        StageCategory.ANALYSIS,
    ),
    StageDefinition(
        StageId.LIQUIDITY_CHECK,
        "Liquidity Check",
        "Checking available liquidity across pools",
        StageCategory.ANALYSIS,
    ),
    StageDefinition(
        StageId.PRICE_IMPACT_ANALYSIS,
        "Price Impact Analysis",
        "Calculating price impact and slippage",
        StageCategory.ANALYSIS,
    ),
)


def get_definition(stage_id: StageId) -> StageDefinition:
    """Return the catalog entry for a stage id."""
    for definition in STAGE_CATALOG:
        if definition.id is stage_id:
            return definition
    raise KeyError(stage_id.value)
