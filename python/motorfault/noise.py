"""Measurement noise models for synthetic stator current recordings.

Provides Gaussian sensor noise, supply harmonic distortion and ADC
quantization. All functions accept both 1-D (n_samples,) and
2-D (n_phases, n_samples) arrays.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
from numpy.typing import NDArray


@dataclass
class NoiseConfig:
    """Configuration for the noise applied to a synthetic recording.

    Parameters
    ----------
    gaussian_snr_db : Signal-to-noise ratio in dB of additive white
        Gaussian noise. ``0.0`` or ``inf`` disables it.
    supply_harmonics : Harmonic distortion of the supply. Each entry is a
        dict with ``order`` (multiple of the line frequency) and
        ``amplitude_ratio`` (relative to the per-phase RMS).
    adc_bits : If positive, quantize to this many bits over
        ``[-adc_range/2, adc_range/2]``.
    adc_range : Full-scale range of the current probe ADC in amperes.
    """

    gaussian_snr_db: float = 40.0
    supply_harmonics: list[dict] = field(default_factory=list)
    adc_bits: int = 0
    adc_range: float = 100.0


def _ensure_2d(signal: NDArray) -> tuple[NDArray, bool]:
    if signal.ndim == 1:
        return signal[np.newaxis, :], True
    return signal, False


def add_gaussian_noise(
    signal: NDArray,
    snr_db: float,
    rng: np.random.Generator | None = None,
) -> NDArray:
    """Add white Gaussian noise at a per-phase SNR (dB).

    The noise standard deviation of each phase (last axis) is its RMS
    scaled by ``10 ** (-snr_db / 20)``. Phases with no signal energy get
    a zero scale and stay untouched.
    """
    if snr_db <= 0 or not np.isfinite(snr_db):
        return signal.copy()
    if rng is None:
        rng = np.random.default_rng()

    out = np.array(signal, dtype=np.float64)
    rms = np.sqrt(np.mean(out ** 2, axis=-1, keepdims=True))
    scale = np.where(rms < 1e-30, 0.0, rms * 10.0 ** (-snr_db / 20.0))
    out += scale * rng.standard_normal(out.shape)
    return out


def add_supply_harmonics(
    signal: NDArray,
    harmonics: Sequence[dict],
    line_frequency: float,
    sample_rate: float,
    phase_shifts: Sequence[float] | None = None,
) -> NDArray:
    """Add odd-order supply distortion to each phase.

    A harmonic of order ``k`` on a phase shifted by ``theta`` is shifted by
    ``k * theta``, as for a balanced three-phase supply.
    """
    if not harmonics:
        return signal.copy()

    sig, was_1d = _ensure_2d(signal)
    out = sig.astype(np.float64, copy=True)
    t = np.arange(out.shape[1]) / sample_rate
    if phase_shifts is None:
        phase_shifts = [-2.0 * np.pi * p / out.shape[0] for p in range(out.shape[0])]

    for ch in range(out.shape[0]):
        rms = np.sqrt(np.mean(out[ch] ** 2))
        if rms < 1e-30:
            rms = 1.0
        for h in harmonics:
            order = float(h["order"])
            amp = float(h["amplitude_ratio"]) * rms * np.sqrt(2.0)
            out[ch] += amp * np.cos(
                2.0 * np.pi * order * line_frequency * t + order * phase_shifts[ch]
            )
    return out[0] if was_1d else out


def apply_quantization(
    signal: NDArray,
    adc_bits: int,
    adc_range: float = 100.0,
) -> NDArray:
    """Clip to the ADC range and round to its resolution."""
    if adc_bits <= 0:
        return signal.copy()

    half_range = adc_range / 2.0
    step = adc_range / (2 ** adc_bits)
    out = np.clip(signal, -half_range, half_range)
    return np.round((out + half_range) / step) * step - half_range


def apply_noise(
    signal: NDArray,
    config: NoiseConfig,
    line_frequency: float,
    sample_rate: float,
    rng: np.random.Generator | None = None,
) -> NDArray:
    """Apply supply harmonics, Gaussian noise and quantization, in that order."""
    if rng is None:
        rng = np.random.default_rng()

    out = np.asarray(signal, dtype=np.float64).copy()
    if config.supply_harmonics:
        out = add_supply_harmonics(out, config.supply_harmonics, line_frequency, sample_rate)
    if config.gaussian_snr_db > 0 and np.isfinite(config.gaussian_snr_db):
        out = add_gaussian_noise(out, config.gaussian_snr_db, rng=rng)
    if config.adc_bits > 0:
        out = apply_quantization(out, config.adc_bits, config.adc_range)
    return out
