"""
Core infrastructure package for the rollup engine.

Provides:
- Configuration management via pydantic-settings
- Logging setup for host processes

Usage Examples:
    from rollup_engine.core import get_settings, configure_logging

    configure_logging()
    settings = get_settings()
    print(settings.monthly_fixed_expenses)
"""

from rollup_engine.core.config import Settings, configure_logging, get_settings

__all__ = [
    'Settings',
    'get_settings',
    'configure_logging',
]
