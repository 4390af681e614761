"""
Settings for the convolution engine and the audibility analysis.

Defaults live in the dataclasses below; a YAML file can override any of
them. Loaded files are cached per loader instance.
"""

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

import yaml

from .signals import KernelSwitchingError
from .transform import is_power_of_two

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "kernel_switching.yaml"


class ConfigLoadError(KernelSwitchingError):
    """Raised when a settings file cannot be loaded or holds invalid values."""
    pass


@dataclass
class ConvolutionSettings:
    """
    Overlap-save FFT sizing.

    Attributes:
        min_fft_size: Smallest FFT size ever used (power of two)
        fft_search_multiplier: Largest FFT tried, as a multiple of the minimum
        fft_search_signal_ratio: The size search only runs when the signal is
            longer than this many kernel lengths
    """
    min_fft_size: int = 64
    fft_search_multiplier: int = 4
    fft_search_signal_ratio: int = 10

    def __post_init__(self):
        if not is_power_of_two(self.min_fft_size):
            raise ConfigLoadError(f"min_fft_size must be a power of two, got {self.min_fft_size}")
        if self.fft_search_multiplier < 1:
            raise ConfigLoadError("fft_search_multiplier must be >= 1")
        if self.fft_search_signal_ratio < 0:
            raise ConfigLoadError("fft_search_signal_ratio must be >= 0")


@dataclass
class AnalysisSettings:
    """
    Spectral analysis used by the pop predictor.

    Attributes:
        flux_window_size: Frame length for spectral flux (power of two)
        flux_hop_size: Hop between flux frames
        flux_normalization: Raw flux value that maps to 1.0
        flatness_epsilon: Bins at or below this power are ignored by flatness
        noise_flatness_threshold: Flatness above which masking is maximal
        context_window_size: Samples around a switch used for flux
        peak_window_size: Hann-windowed samples around a switch used for the
            dominant frequency and the masking spectrum (power of two)
    """
    flux_window_size: int = 512
    flux_hop_size: int = 128
    flux_normalization: float = 14.253
    flatness_epsilon: float = 1e-10
    noise_flatness_threshold: float = 0.3
    context_window_size: int = 2048
    peak_window_size: int = 512

    def __post_init__(self):
        for name in ("flux_window_size", "peak_window_size"):
            value = getattr(self, name)
            if not is_power_of_two(value):
                raise ConfigLoadError(f"{name} must be a power of two, got {value}")
        if self.flux_hop_size <= 0:
            raise ConfigLoadError("flux_hop_size must be positive")
        if self.context_window_size <= 0:
            raise ConfigLoadError("context_window_size must be positive")
        if self.flux_normalization <= 0:
            raise ConfigLoadError("flux_normalization must be positive")
        if not 0.0 < self.noise_flatness_threshold <= 1.0:
            raise ConfigLoadError("noise_flatness_threshold must be in (0, 1]")


@dataclass
class Settings:
    """All tunables, grouped by component."""
    convolution: ConvolutionSettings = field(default_factory=ConvolutionSettings)
    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        """
        Build settings from a nested mapping, e.g. parsed YAML.

        Unknown keys are ignored with a warning; missing keys keep defaults.
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigLoadError(f"settings must be a mapping, got {type(data).__name__}")

        for key in data:
            if key not in ("convolution", "analysis"):
                logger.warning(f"Ignoring unknown settings section '{key}'")

        try:
            return cls(
                convolution=_build_section(ConvolutionSettings, data.get("convolution")),
                analysis=_build_section(AnalysisSettings, data.get("analysis")),
            )
        except (TypeError, ValueError) as e:
            raise ConfigLoadError(f"Invalid settings: {e}")


def _build_section(section_cls, values: Optional[Dict[str, Any]]):
    if values is None:
        return section_cls()
    if not isinstance(values, dict):
        raise ConfigLoadError(
            f"{section_cls.__name__} values must be a mapping, got {type(values).__name__}"
        )

    known = {f.name for f in fields(section_cls)}
    kwargs = {}
    for key, value in values.items():
        if key not in known:
            logger.warning(f"Ignoring unknown {section_cls.__name__} key '{key}'")
            continue
        default = getattr(section_cls(), key)
        kwargs[key] = _coerce_value(f"{section_cls.__name__}.{key}", value, type(default))
    return section_cls(**kwargs)


def _coerce_value(name: str, value: Any, target: type):
    """Convert a parsed value to the field's type without losing information."""
    if isinstance(value, bool):
        raise ConfigLoadError(f"{name} must be a number, got {value!r}")
    if target is int and isinstance(value, float):
        if not value.is_integer():
            raise ConfigLoadError(f"{name} must be an integer, got {value!r}")
        return int(value)
    return target(value)


class ConfigLoader:
    """
    Loads settings files from a configuration directory with caching.

    Attributes:
        config_dir: Directory searched for settings files
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        """
        Args:
            config_dir: Directory holding settings files.
                        Defaults to ../configs relative to this module.
        """
        if config_dir is None:
            self.config_dir = Path(__file__).parent.parent / "configs"
        else:
            self.config_dir = Path(config_dir)

        self._cache: Dict[str, Settings] = {}

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise ConfigLoadError(f"Configuration file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Failed to parse YAML file {path}: {e}")
        except OSError as e:
            raise ConfigLoadError(f"Failed to read configuration file {path}: {e}")

    def has_settings(self, name: str = DEFAULT_CONFIG_NAME) -> bool:
        return (self.config_dir / name).exists()

    def load_settings(self, name: str = DEFAULT_CONFIG_NAME) -> Settings:
        """
        Load and validate a settings file from config_dir.

        Raises:
            ConfigLoadError: If the file is missing, unparsable or invalid
        """
        if name in self._cache:
            return self._cache[name]

        path = self.config_dir / name
        settings = Settings.from_dict(self._load_yaml(path))
        self._cache[name] = settings
        logger.info(f"Loaded settings from {path}")
        return settings

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.debug("Settings cache cleared")


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load settings from a YAML file, or return defaults when path is None.

    Args:
        path: Path to a settings file

    Returns:
        Validated Settings
    """
    if path is None:
        return Settings()
    path = Path(path)
    return ConfigLoader(path.parent).load_settings(path.name)
