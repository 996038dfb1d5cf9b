"""day2day Configuration Module."""

from day2day.config.settings import (
    Day2DayConfig,
    RunmeanConfig,
    SimulationConfig,
    SummaryConfig,
    DEFAULT_CONFIG_PATH,
    ENV_VAR,
    load_config,
    clear_config_cache,
)

__all__ = [
    'Day2DayConfig',
    'RunmeanConfig',
    'SimulationConfig',
    'SummaryConfig',
    'DEFAULT_CONFIG_PATH',
    'ENV_VAR',
    'load_config',
    'clear_config_cache',
]
