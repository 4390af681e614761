"""
Masking factor: how much the surrounding content hides a discontinuity.

The factor multiplies a discontinuity threshold. 1.0 means nothing masks the
switch (pure tone); 3.0 means noise-like content masks it well.
"""

from typing import Optional
import logging

import numpy as np

from .features import DEFAULT_FLATNESS_EPSILON, spectral_crest, spectral_flatness

logger = logging.getLogger(__name__)

MIN_MASKING_FACTOR = 1.0
MAX_MASKING_FACTOR = 3.0
DEFAULT_NOISE_FLATNESS_THRESHOLD = 0.3

# Spectrum-only model
TONAL_FLATNESS_MAX = 0.01
TONAL_CREST_RANGE = (300.0, 5000.0)
TRANSIENT_CREST_MIN = 5000.0
STRONG_TRANSIENT_CREST_MIN = 10000.0


class MaskingFactorCalculator:
    """
    Combines spectral flatness and spectral flux into a threshold multiplier.

    Usage:
        calculator = MaskingFactorCalculator()
        factor = calculator.calculate(power_spectrum, flux=0.2)   # 1.4
        factor = calculator.calculate(power_spectrum)             # spectrum only

    Attributes:
        noise_flatness_threshold: Flatness above which content counts as noise
        flatness_epsilon: Power floor passed to the flatness calculation
    """

    def __init__(
        self,
        noise_flatness_threshold: float = DEFAULT_NOISE_FLATNESS_THRESHOLD,
        flatness_epsilon: float = DEFAULT_FLATNESS_EPSILON
    ):
        self.noise_flatness_threshold = noise_flatness_threshold
        self.flatness_epsilon = flatness_epsilon

    def calculate(
        self,
        power_spectrum: np.ndarray,
        flux: Optional[float] = None
    ) -> float:
        """
        Masking factor in [1.0, 3.0].

        With flux: noise-dominated spectra (flatness above the noise
        threshold) get the maximum outright; anything else scales with how
        much the spectrum is changing, 1.0 + 2.0 * flux.

        Without flux the spectrum-only model is used.

        Args:
            power_spectrum: One-sided power spectrum of the analysed segment
            flux: Normalized spectral flux in [0, 1], or None

        Returns:
            Masking factor
        """
        if flux is None:
            return self.calculate_from_spectrum(power_spectrum)

        flatness = spectral_flatness(power_spectrum, self.flatness_epsilon)
        if flatness > self.noise_flatness_threshold:
            factor = MAX_MASKING_FACTOR
        else:
            factor = 1.0 + 2.0 * float(flux)

        factor = float(np.clip(factor, MIN_MASKING_FACTOR, MAX_MASKING_FACTOR))
        logger.debug(f"Masking factor {factor:.3f} (flatness={flatness:.4f}, flux={flux:.4f})")
        return factor

    def calculate_from_spectrum(self, power_spectrum: np.ndarray) -> float:
        """
        Masking factor from the power spectrum alone.

        Very tonal spectra (low flatness, moderate crest) give 1.0, noise
        gives 3.0, spiky spectra from transients map to 2.0-3.0 by crest, and
        everything else maps log-flatness into 1.5-2.5.
        """
        flatness = spectral_flatness(power_spectrum, self.flatness_epsilon)
        crest = spectral_crest(power_spectrum)

        low, high = TONAL_CREST_RANGE
        if flatness < TONAL_FLATNESS_MAX and low < crest < high:
            return MIN_MASKING_FACTOR

        if flatness > self.noise_flatness_threshold:
            return MAX_MASKING_FACTOR

        if crest > TRANSIENT_CREST_MIN:
            if crest > STRONG_TRANSIENT_CREST_MIN:
                return 2.8 + min(0.2, (crest - STRONG_TRANSIENT_CREST_MIN) / 20000.0)
            # crest 5000-10000 -> 2.0-2.8
            return 2.0 + 0.8 * (crest - TRANSIENT_CREST_MIN) / 5000.0

        log_flatness = np.log10(max(1e-4, flatness))
        normalized_log = min(1.0, max(0.0, (log_flatness + 3.5) / 3.0))
        return float(1.5 + normalized_log)

    def calculate_perceptual(self, power_spectrum: np.ndarray) -> float:
        """Coarse content categories: noise 3.0, dense 2.5, tonal 1.0, other 2.0."""
        flatness = spectral_flatness(power_spectrum, self.flatness_epsilon)
        crest = spectral_crest(power_spectrum)

        if flatness > 0.1:
            return 3.0
        elif crest < 50:
            return 2.5
        elif flatness < 0.001 and crest > 1000:
            return 1.0
        else:
            return 2.0


def masking_factor(power_spectrum: np.ndarray, flux: Optional[float] = None) -> float:
    """Masking factor with default thresholds."""
    return MaskingFactorCalculator().calculate(power_spectrum, flux)
