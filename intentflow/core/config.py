"""
Application configuration.

Loads settings from environment variables and .env file.
Every tunable of the pipeline, the state machine and the simulated
adapters lives here; the composition root passes them in explicitly.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode (exposes /docs). Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_execute: Rate limit for the execute endpoint.
        classify_latency_seconds: Simulated "understanding" delay.
        tick_delay_min_seconds: Lower bound of the delay before a progress tick.
        tick_delay_max_seconds: Upper bound of the delay before a progress tick.
        increment_min: Smallest progress increment per tick.
        increment_max: Largest progress increment per tick.
        warning_probability: Chance that a finished stage ends as warning.
        pipeline_workers: Stages allowed to run concurrently (1 = catalog order).
        stage_timeout_seconds: Optional ceiling after which a stage fails.
        execution_latency_seconds: Simulated commit duration.
        success_reset_seconds: Delay before success returns to idle.
        random_seed: Seed for reproducible runs; None draws from the OS.
        derive_recommendations: Collect recommendations from stage results.
        notification_webhooks: URLs that receive every notification as JSON.
        wallet_connected: Whether the simulated wallet starts connected.
        wallet_address: Address reported by the simulated wallet.
        wallet_network: Network reported by the simulated wallet.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="INTENTFLOW_"
    )

    project_name: str = "IntentFlow"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_default: str = "60/minute"
    rate_limit_execute: str = "10/minute"

    # Pipeline timing
    classify_latency_seconds: float = 1.0
    tick_delay_min_seconds: float = 0.1
    tick_delay_max_seconds: float = 0.3
    increment_min: int = 10
    increment_max: int = 30
    warning_probability: float = 0.05
    pipeline_workers: int = 1
    stage_timeout_seconds: Optional[float] = None

    # Execution
    execution_latency_seconds: float = 3.0
    success_reset_seconds: float = 2.0

    random_seed: Optional[int] = None
    derive_recommendations: bool = False
    notification_webhooks: list[str] = []

    # Simulated wallet
    wallet_connected: bool = True
    wallet_address: str = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"
    wallet_network: str = "Ethereum"


settings = Settings()
