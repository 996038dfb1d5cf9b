"""
day2day Configuration Loader
============================

Loads defaults for the running mean, the simulators and the data summary
from day2day.yaml.

Lookup order:
    1. Explicit path passed to load_config()
    2. DAY2DAY_CONFIG environment variable
    3. ./config/day2day.yaml
    4. Packaged default next to this module

Usage:
    from day2day.config import load_config

    config = load_config()
    config.runmean.align        # 'right'
    config.simulation.n         # 1000

    centered = load_config(profile='centered')
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from day2day.engines.validation import (
    ALIGNMENTS,
    BOUNDARIES,
    InvalidArgument,
    check_choice,
    check_width,
)

logger = logging.getLogger(__name__)

ENV_VAR = "DAY2DAY_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "day2day.yaml"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class RunmeanConfig:
    """Defaults for runmean()."""
    align: str = 'right'
    boundary: str = 'shrink'
    skipna: bool = False
    block_size: int = 4096

    def as_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments ready to pass to runmean()."""
        return {
            'align': self.align,
            'boundary': self.boundary,
            'skipna': self.skipna,
            'block_size': self.block_size,
        }


@dataclass
class SimulationConfig:
    """Defaults for sim_model() and msim_model()."""
    n: int = 1000
    extent: float = 1.0
    generator: str = 'normal'


@dataclass
class SummaryConfig:
    """Defaults for db_summarize()."""
    filename: str = 'summary-databases.txt'
    patterns: List[str] = field(default_factory=lambda: ['*.parquet', '*.csv', '*.npz'])


@dataclass
class Day2DayConfig:
    """Complete configuration."""
    runmean: RunmeanConfig
    simulation: SimulationConfig
    summary: SummaryConfig
    profiles: Dict[str, Dict[str, Any]]
    source: Optional[Path] = None

    def list_profiles(self) -> List[str]:
        """List profile names."""
        return sorted(self.profiles.keys())

    def __repr__(self) -> str:
        return f"Day2DayConfig({self.runmean}, {self.simulation}, source={self.source})"


# =============================================================================
# CONFIG LOADING
# =============================================================================

_config_cache: Optional[Day2DayConfig] = None


def _find_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    """Find the config file following the documented lookup order."""
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        return path

    env_path = os.environ.get(ENV_VAR)
    if env_path:
        env_path = Path(env_path)
        if not env_path.exists():
            raise FileNotFoundError(f"{ENV_VAR} points to a missing file: {env_path}")
        return env_path

    cwd_path = Path.cwd() / "config" / "day2day.yaml"
    if cwd_path.exists():
        return cwd_path

    return DEFAULT_CONFIG_PATH


def _parse_runmean(raw: Dict[str, Any], base: RunmeanConfig) -> RunmeanConfig:
    config = replace(base, **{k: raw[k] for k in ('align', 'boundary', 'skipna', 'block_size') if k in raw})
    check_choice(config.align, ALIGNMENTS, 'align')
    check_choice(config.boundary, BOUNDARIES, 'boundary')
    config.block_size = check_width(config.block_size, name='block_size')
    config.skipna = bool(config.skipna)
    return config


def _parse_simulation(raw: Dict[str, Any], base: SimulationConfig) -> SimulationConfig:
    from day2day.simulation.generators import GENERATORS

    config = replace(base, **{k: raw[k] for k in ('n', 'extent', 'generator') if k in raw})
    config.n = check_width(config.n, name='n')
    config.extent = float(config.extent)
    if config.extent <= 0:
        raise InvalidArgument(f"extent must be > 0, got {config.extent}")
    check_choice(config.generator, sorted(GENERATORS), 'generator')
    return config


def _parse_summary(raw: Dict[str, Any], base: SummaryConfig) -> SummaryConfig:
    config = replace(base, **{k: raw[k] for k in ('filename', 'patterns') if k in raw})
    if isinstance(config.patterns, str):
        config.patterns = [config.patterns]
    config.patterns = list(config.patterns)
    return config


def load_config(
    path: Optional[Union[str, Path]] = None,
    profile: Optional[str] = None,
    force_reload: bool = False,
) -> Day2DayConfig:
    """
    Load configuration from YAML.

    Args:
        path: Optional explicit config file
        profile: Optional profile name to apply (e.g., 'centered')
        force_reload: If True, reload from disk even if cached

    Returns:
        Day2DayConfig

    Raises:
        InvalidArgument: invalid value or unknown profile
        FileNotFoundError: explicit path or DAY2DAY_CONFIG missing
    """
    global _config_cache

    if _config_cache is not None and not force_reload and profile is None and path is None:
        return _config_cache

    config_path = _find_config_path(path)
    logger.info(f"Loading day2day config from {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = Day2DayConfig(
        runmean=_parse_runmean(raw.get('runmean') or {}, RunmeanConfig()),
        simulation=_parse_simulation(raw.get('simulation') or {}, SimulationConfig()),
        summary=_parse_summary(raw.get('summary') or {}, SummaryConfig()),
        profiles=raw.get('profiles') or {},
        source=config_path,
    )

    if profile is not None:
        if profile not in config.profiles:
            raise InvalidArgument(
                f"Unknown profile: {profile}. Available: {config.list_profiles()}"
            )
        config = _apply_profile(config, config.profiles[profile])
        logger.info(f"Applied profile: {profile}")

    # Cache only the base config from the default lookup
    if profile is None and path is None:
        _config_cache = config

    return config


def _apply_profile(config: Day2DayConfig, overrides: Dict[str, Any]) -> Day2DayConfig:
    """Apply profile overrides to base config."""
    overrides = overrides or {}
    return Day2DayConfig(
        runmean=_parse_runmean(overrides.get('runmean') or {}, config.runmean),
        simulation=_parse_simulation(overrides.get('simulation') or {}, config.simulation),
        summary=_parse_summary(overrides.get('summary') or {}, config.summary),
        profiles=config.profiles,
        source=config.source,
    )


def clear_config_cache() -> None:
    """Forget the cached config so the next load_config() reads from disk."""
    global _config_cache
    _config_cache = None
