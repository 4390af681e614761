"""
Kernel Switching Convolution

Overlap-save FFT convolution of long mono signals with FIR kernels that can
be switched periodically or at arbitrary samples, plus a predictor for
whether a kernel switch is perceptually audible.
"""

__version__ = "0.1.0"
__author__ = "Kernel Switching Team"

from .signals import (
    KernelSwitchingError,
    InvalidArgumentError,
    NoDataError,
    KernelSwitch,
    KernelSchedule,
    AudibilityLevel,
    PerceptualImpact,
    SwitchAnalysis,
)
from .config_loader import (
    ConfigLoadError,
    ConfigLoader,
    ConvolutionSettings,
    AnalysisSettings,
    Settings,
    load_settings,
)
from .transform import (
    TransformContext,
    next_power_of_two,
    is_power_of_two,
    zero_pad,
    zero_pad_edges,
    pad_symmetric,
    extract_block,
    multiply_spectra,
    power_spectrum,
    magnitude_spectrum,
)
from .features import (
    SpectralFluxCalculator,
    spectral_flatness,
    spectral_crest,
    spectral_flux,
)
from .masking import MaskingFactorCalculator, masking_factor
from .convolution import (
    OverlapSaveConvolver,
    convolve,
    convolve_periodic,
    convolve_switches,
    convolve_at,
)
from .predictor import (
    KernelSwitchPopPredictor,
    BARK_CENTER_FREQUENCIES,
    BARK_DISCONTINUITY_THRESHOLDS,
    predict_audibility,
)

__all__ = [
    # Errors
    'KernelSwitchingError',
    'InvalidArgumentError',
    'NoDataError',
    'ConfigLoadError',
    # Data model
    'KernelSwitch',
    'KernelSchedule',
    'AudibilityLevel',
    'PerceptualImpact',
    'SwitchAnalysis',
    # Settings
    'ConfigLoader',
    'ConvolutionSettings',
    'AnalysisSettings',
    'Settings',
    'load_settings',
    # Transforms
    'TransformContext',
    'next_power_of_two',
    'is_power_of_two',
    'zero_pad',
    'zero_pad_edges',
    'pad_symmetric',
    'extract_block',
    'multiply_spectra',
    'power_spectrum',
    'magnitude_spectrum',
    # Features
    'SpectralFluxCalculator',
    'spectral_flatness',
    'spectral_crest',
    'spectral_flux',
    'MaskingFactorCalculator',
    'masking_factor',
    # Convolution
    'OverlapSaveConvolver',
    'convolve',
    'convolve_periodic',
    'convolve_switches',
    'convolve_at',
    # Prediction
    'KernelSwitchPopPredictor',
    'BARK_CENTER_FREQUENCIES',
    'BARK_DISCONTINUITY_THRESHOLDS',
    'predict_audibility',
]
