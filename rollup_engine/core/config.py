"""
Settings and environment management for the rollup engine.

This module provides centralized configuration using pydantic-settings, which
loads values from environment variables and an optional .env file.

Key Features:
- Environment variable validation and type coercion
- Business defaults matching the finance team's operating constants
- Singleton pattern via @lru_cache for efficient access

Business Defaults:
- default_commission_rate: 0.10 (media buyers without an explicit rule)
- monthly_fixed_expenses: 59,217 (payroll + general overhead per month)
- assumed_working_days: 21 (divisor for closed months)
- daily_expense_constant: 2,819.81 (monthly_fixed_expenses / 21, shown on daily rows)
- spend_coverage_days: 14 (available funds must cover this many days of spend)

The Ringba surcharge rate and its 2024-04-01 cutover are intentionally NOT
settings; they live as constants in services/commission.py.

Usage:
    from rollup_engine.core.config import get_settings

    settings = get_settings()
    horizon = settings.projection_horizon_days
"""

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Every field has a default, so the engine runs without any environment
    configuration. Override individual values with environment variables of
    the same name (case-insensitive), e.g. ``PROJECTION_HORIZON_DAYS=45``.

    Attributes:
        default_commission_rate: Commission rate for buyers absent from the table.
        aca_network_marker: Substring identifying ACA networks (case-insensitive).
        daily_expense_constant: Fixed overhead displayed per day.
        monthly_fixed_expenses: Fixed overhead charged per month.
        assumed_working_days: Working days used to allocate closed-month overhead.
        projection_horizon_days: Default cash-flow projection length.
        trailing_spend_window_days: Window for the trailing average media spend.
        spend_coverage_days: Days of spend total available funds must cover.
        budget_rounding_increment: Suggested budgets round to this increment.
        offer_min_spend: Minimum period spend before an offer gets a verdict.
        offer_min_days: Minimum period length before an offer gets a verdict.
        scaling_margin_threshold: Margin (%) above which an offer can scale.
        cash_account_names: Resource names treated as cash rather than credit.
        log_level: Level applied by configure_logging().
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Commission & Expenses
    # =========================================================================

    default_commission_rate: float = 0.10

    # Networks whose name contains this marker count toward ACA revenue
    aca_network_marker: str = 'aca'

    # (Payroll + General $59,217) / 21 working days
    daily_expense_constant: float = 2819.81
    monthly_fixed_expenses: float = 59217.0
    assumed_working_days: int = 21

    # =========================================================================
    # Projection & Budget
    # =========================================================================

    projection_horizon_days: int = 30
    trailing_spend_window_days: int = 7
    spend_coverage_days: int = 14
    budget_rounding_increment: int = 100

    # =========================================================================
    # Insight Gating
    # =========================================================================

    offer_min_spend: float = 1000.0
    offer_min_days: int = 3
    scaling_margin_threshold: float = 20.0

    # =========================================================================
    # Financial Resources
    # =========================================================================

    cash_account_names: List[str] = [
        'Cash in Bank',
        'Slash Account',
        'Business Savings (JP MORGAN)',
    ]

    log_level: str = 'INFO'


@lru_cache()
def get_settings() -> Settings:
    """
    Get the engine settings singleton.

    Returns:
        Settings: The cached settings instance.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for processes embedding the engine.

    The engine itself never calls this on import; host applications (jobs,
    notebooks, API workers) call it once at startup.

    Args:
        level: Log level name. Defaults to Settings.log_level.
    """
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
