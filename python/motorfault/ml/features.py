"""Spectral feature extraction for motor current signature analysis.

Transforms per-phase stator current waveforms into ML-ready features:
1. Single-sided amplitude spectrum (DC removal, Hamming window, FFT)
2. Supply-band statistics around the line frequency
3. Slip sideband power and asymmetry
4. Bearing-band statistics and power near the theoretical bearing
   fault frequencies (BPFO, BPFI, BSF)

Also builds the raw (time-domain) row matrix used by the coarser
per-sample classification path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

import numpy as np
from scipy.signal.windows import hamming
from scipy.stats import kurtosis

from motorfault.errors import MalformedInputError
from motorfault.recording import WaveformSample


logger = logging.getLogger(__name__)


# Fixed per-phase descriptor order. Every feature row is the phase-major
# concatenation of these names.
DESCRIPTOR_NAMES: tuple[str, ...] = (
    "supply_peak",
    "supply_mean",
    "line_magnitude",
    "sideband_asymmetry",
    "sideband_power",
    "bearing_power",
    "bearing_peak",
    "bpfi_power",
    "bpfo_power",
    "bsf_power",
    "bearing_to_line_ratio",
    "bearing_std",
    "bearing_kurtosis",
)

N_DESCRIPTORS = len(DESCRIPTOR_NAMES)

NOMINAL_LINE_FREQUENCY = 50.0
NOMINAL_SUPPLY_BAND = (40.0, 70.0)


@dataclass
class FeatureConfig:
    """Configuration for spectral feature extraction.

    Bearing fault frequencies are fixed multiples of the line frequency.
    With the default 50 Hz supply: BPFO 175 Hz, BPFI 270 Hz, BSF 115 Hz,
    FTF 20 Hz.
    """

    sample_rate: float = 10000.0        # Hz
    line_frequency: float = 50.0        # Hz
    n_phases: int = 3

    # Bearing fault multipliers (relative to line frequency)
    bpfo_ratio: float = 3.5
    bpfi_ratio: float = 5.4
    bsf_ratio: float = 2.3
    ftf_ratio: float = 0.4

    # Band geometry (Hz)
    supply_band_half_width: float = 10.0  # supply band = [f0 - w, f0 + w]
    widen_nominal_supply_band: bool = True  # [40, 70] when f0 is 50 Hz
    sideband_width: float = 5.0
    line_band_half_width: float = 5.0   # denominator band of the bearing ratio
    bearing_band: tuple[float, float] = (100.0, 400.0)
    fault_window: float = 10.0          # half-width around each fault frequency

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.line_frequency <= 0:
            raise ValueError(
                f"line_frequency must be positive, got {self.line_frequency}"
            )
        if self.n_phases < 1:
            raise ValueError(f"n_phases must be >= 1, got {self.n_phases}")
        if self.supply_band_half_width <= 0:
            raise ValueError(
                f"supply_band_half_width must be positive, got {self.supply_band_half_width}"
            )
        lo, hi = self.bearing_band
        if lo >= hi:
            raise ValueError(f"bearing_band must satisfy lo < hi, got {self.bearing_band}")
        for name in ("bpfo_ratio", "bpfi_ratio", "bsf_ratio", "ftf_ratio"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    @property
    def supply_band(self) -> tuple[float, float]:
        """Supply band around the line frequency.

        ``[f0 - w, f0 + w]``; with ``widen_nominal_supply_band`` a 50 Hz supply
        uses ``[40, 70]``.
        """
        f0 = self.line_frequency
        if self.widen_nominal_supply_band and f0 == NOMINAL_LINE_FREQUENCY:
            return NOMINAL_SUPPLY_BAND
        w = self.supply_band_half_width
        return (f0 - w, f0 + w)

    def fault_frequencies(self) -> dict[str, float]:
        """Theoretical bearing fault frequencies in Hz."""
        f0 = self.line_frequency
        return {
            "BPFO": self.bpfo_ratio * f0,
            "BPFI": self.bpfi_ratio * f0,
            "BSF": self.bsf_ratio * f0,
            "FTF": self.ftf_ratio * f0,
        }


@dataclass
class BandStats:
    """Descriptive statistics of the spectrum magnitudes inside one band."""

    peak: float = 0.0
    mean: float = 0.0
    power: float = 0.0
    std: float = 0.0
    kurtosis: float = 0.0
    n_bins: int = 0


@dataclass
class FeatureDataset:
    """Feature matrix with aligned labels.

    ``X`` is normalized when the builder was asked to normalize; ``X_raw``
    always holds the unnormalized descriptors.
    """

    X: np.ndarray
    y: np.ndarray
    feature_names: list[str]
    X_raw: np.ndarray
    sources: list[Optional[str]] = field(default_factory=list)

    @property
    def classes(self) -> list[str]:
        return sorted(set(self.y.tolist()))

    @property
    def shape(self) -> tuple[int, int]:
        return self.X.shape


# ---------------------------------------------------------------------------
# Spectrum
# ---------------------------------------------------------------------------

def single_sided_spectrum(
    signal: np.ndarray,
    sample_rate: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Compute the single-sided amplitude spectrum of a real signal.

    The mean is removed and a symmetric Hamming window applied before the
    FFT. Magnitudes are scaled by ``1/N`` and doubled everywhere except at
    DC and, for even ``N``, at the Nyquist bin.

    Parameters
    ----------
    signal : ndarray, shape (n_samples,)
        Real-valued time series.
    sample_rate : float
        Sampling rate in Hz.

    Returns
    -------
    freqs : ndarray, shape (n_samples // 2 + 1,)
        Bin frequencies ``k * fs / N``.
    magnitudes : ndarray, shape (n_samples // 2 + 1,)
        Single-sided amplitude spectrum.

    Raises
    ------
    MalformedInputError
        If the signal is empty.
    """
    x = np.asarray(signal, dtype=np.float64).ravel()
    n = x.size
    if n == 0:
        raise MalformedInputError("Signal is empty; cannot compute spectrum.")
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")

    x = x - x.mean()
    x = x * hamming(n, sym=True)

    magnitudes = np.abs(np.fft.rfft(x)) / n
    if n % 2 == 0:
        magnitudes[1:-1] *= 2.0
    else:
        magnitudes[1:] *= 2.0

    freqs = np.arange(n // 2 + 1) * sample_rate / n
    return freqs, magnitudes


def _band_mask(
    freqs: np.ndarray,
    lo: float,
    hi: float,
    include_lo: bool = True,
    include_hi: bool = True,
) -> np.ndarray:
    lower = freqs >= lo if include_lo else freqs > lo
    upper = freqs <= hi if include_hi else freqs < hi
    return lower & upper


def band_statistics(
    freqs: np.ndarray,
    magnitudes: np.ndarray,
    lo: float,
    hi: float,
    *,
    include_lo: bool = True,
    include_hi: bool = True,
) -> BandStats:
    """Statistics of the magnitudes whose frequency lies inside ``[lo, hi]``.

    A band without bins yields all-zero statistics. Standard deviation uses
    ``ddof=1``; kurtosis is the Pearson (non-excess) biased estimator and
    is zero for bands with no spread.
    """
    values = magnitudes[_band_mask(freqs, lo, hi, include_lo, include_hi)]
    if values.size == 0:
        return BandStats()

    std = float(np.std(values, ddof=1)) if values.size > 1 else 0.0
    kurt = 0.0
    if values.size > 1 and np.ptp(values) > 0.0:
        kurt = float(kurtosis(values, fisher=False, bias=True))

    return BandStats(
        peak=float(values.max()),
        mean=float(values.mean()),
        power=float(values.sum()),
        std=std,
        kurtosis=kurt,
        n_bins=int(values.size),
    )


def nearest_bin(freqs: np.ndarray, target: float) -> int:
    """Index of the bin closest to ``target`` Hz."""
    return int(np.argmin(np.abs(freqs - target)))


# ---------------------------------------------------------------------------
# Per-phase descriptor
# ---------------------------------------------------------------------------

def extract_phase_descriptor(
    signal: np.ndarray,
    config: FeatureConfig = FeatureConfig(),
) -> np.ndarray:
    """Extract the 13 spectral descriptors of one phase.

    Parameters
    ----------
    signal : ndarray, shape (n_samples,)
        One phase's current waveform.
    config : FeatureConfig
        Sampling rate, line frequency and band geometry.

    Returns
    -------
    ndarray, shape (13,)
        Descriptors in :data:`DESCRIPTOR_NAMES` order.
    """
    freqs, mags = single_sided_spectrum(signal, config.sample_rate)
    f0 = config.line_frequency

    supply = band_statistics(freqs, mags, *config.supply_band)
    line_magnitude = float(mags[nearest_bin(freqs, f0)])

    w = config.sideband_width
    left = band_statistics(freqs, mags, f0 - w, f0, include_hi=False).power
    right = band_statistics(freqs, mags, f0, f0 + w, include_lo=False).power

    bearing = band_statistics(freqs, mags, *config.bearing_band)

    fw = config.fault_window
    fault_power = {
        name: band_statistics(freqs, mags, fc - fw, fc + fw).power
        for name, fc in config.fault_frequencies().items()
    }

    lw = config.line_band_half_width
    line_band_power = band_statistics(freqs, mags, f0 - lw, f0 + lw).power
    ratio = bearing.power / line_band_power if line_band_power > 0 else 0.0

    return np.array([
        supply.peak,
        supply.mean,
        line_magnitude,
        abs(left - right),
        left + right,
        bearing.power,
        bearing.peak,
        fault_power["BPFI"],
        fault_power["BPFO"],
        fault_power["BSF"],
        ratio,
        bearing.std,
        bearing.kurtosis,
    ], dtype=np.float64)


def feature_names(n_phases: int = 3) -> list[str]:
    """Column names of a feature row, phase-major (``"A:supply_peak"``, ...)."""
    return [
        f"{chr(ord('A') + p)}:{name}"
        for p in range(n_phases)
        for name in DESCRIPTOR_NAMES
    ]


# ---------------------------------------------------------------------------
# Dataset building
# ---------------------------------------------------------------------------

def validate_recording(
    recording: WaveformSample,
    config: FeatureConfig = FeatureConfig(),
) -> None:
    """Reject recordings that cannot produce meaningful spectral features.

    Raises
    ------
    MalformedInputError
        On too few phases, no samples, non-finite values, identical phases
        or a sample rate that differs from ``config.sample_rate``.
    """
    where = recording.source or recording.label
    if recording.n_samples <= 0:
        raise MalformedInputError(f"Recording '{where}' has no samples.")
    if recording.n_phases < config.n_phases:
        raise MalformedInputError(
            f"Recording '{where}' has {recording.n_phases} phase(s); "
            f"{config.n_phases} required."
        )
    phases = recording.phases[:config.n_phases]
    if not np.all(np.isfinite(phases)):
        raise MalformedInputError(f"Recording '{where}' contains non-finite values.")
    if config.n_phases > 1 and all(
        np.array_equal(phases[0], phases[p]) for p in range(1, config.n_phases)
    ):
        raise MalformedInputError(f"Recording '{where}' has identical phases.")
    if not np.isclose(recording.sample_rate, config.sample_rate):
        raise MalformedInputError(
            f"Recording '{where}' sampled at {recording.sample_rate} Hz; "
            f"feature config expects {config.sample_rate} Hz."
        )


def zscore(
    X: np.ndarray,
    ddof: int = 1,
    fit_rows: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Column-wise z-score normalization.

    Mean and standard deviation come from ``X[fit_rows]`` (all rows when
    ``None``) and are applied to every row. Columns without spread
    (including every column of a single-row fit set) normalize to zero.
    """
    X = np.asarray(X, dtype=np.float64)
    out = np.zeros_like(X)
    ref = X if fit_rows is None else X[np.asarray(fit_rows)]
    if ref.shape[0] <= ddof:
        return out

    mu = ref.mean(axis=0)
    sigma = ref.std(axis=0, ddof=ddof)
    spread = sigma > 1e-12 * np.maximum(1.0, np.abs(mu))
    out[:, spread] = (X[:, spread] - mu[spread]) / sigma[spread]
    return out


def build_feature_matrix(
    recordings: Sequence[WaveformSample],
    config: FeatureConfig = FeatureConfig(),
    *,
    normalize: bool = True,
) -> FeatureDataset:
    """Build the spectral feature matrix, one row per recording.

    Parameters
    ----------
    recordings : sequence of WaveformSample
        Typically one representative recording per class
        (see :func:`select_representatives`). Row order follows this order.
    config : FeatureConfig
        Feature extraction configuration.
    normalize : bool
        Z-score each column across the full set.

    Returns
    -------
    FeatureDataset
        ``X`` of shape ``(n_recordings, 13 * n_phases)`` and labels ``y``.

    Raises
    ------
    MalformedInputError
        If any recording fails :func:`validate_recording`, or none is given.
    """
    if len(recordings) == 0:
        raise MalformedInputError("No recordings given; cannot build features.")

    n_phases = config.n_phases
    X_raw = np.empty((len(recordings), N_DESCRIPTORS * n_phases), dtype=np.float64)
    labels: list[str] = []

    for i, rec in enumerate(recordings):
        validate_recording(rec, config)
        for p in range(n_phases):
            cols = slice(p * N_DESCRIPTORS, (p + 1) * N_DESCRIPTORS)
            X_raw[i, cols] = extract_phase_descriptor(rec.phases[p], config)
        labels.append(rec.label)

    X = zscore(X_raw) if normalize else X_raw.copy()
    logger.info(
        "Frequency features extracted: %d samples, %d features",
        X.shape[0], X.shape[1],
    )
    return FeatureDataset(
        X=X,
        y=np.array(labels),
        feature_names=feature_names(n_phases),
        X_raw=X_raw,
        sources=[rec.source for rec in recordings],
    )


def select_representatives(
    recordings_by_class: Mapping[str, Sequence[WaveformSample]],
    class_order: Optional[Sequence[str]] = None,
) -> list[WaveformSample]:
    """Pick the first recording of each class.

    Raises
    ------
    MalformedInputError
        If a requested class has no recordings.
    """
    order = list(class_order) if class_order is not None else list(recordings_by_class)
    picked = []
    for label in order:
        recs = recordings_by_class.get(label, [])
        if len(recs) == 0:
            raise MalformedInputError(f"Class '{label}' has no recordings.")
        picked.append(recs[0])
    return picked


def build_raw_rows(
    recordings_by_class: Mapping[str, Sequence[WaveformSample]],
    n_phases: int = 3,
) -> tuple[np.ndarray, np.ndarray]:
    """Stack every sample instant of every recording into one row each.

    NaN cells are replaced by their column median.

    Returns
    -------
    X : ndarray, shape (n_rows, n_phases)
    y : ndarray, shape (n_rows,)
        Label of each row's source recording.

    Raises
    ------
    MalformedInputError
        On recordings with too few phases or no samples, infinite values,
        or a column that is entirely NaN.
    """
    recs = [r for label in recordings_by_class for r in recordings_by_class[label]]
    if len(recs) == 0:
        raise MalformedInputError("No recordings given; cannot build raw rows.")

    for rec in recs:
        where = rec.source or rec.label
        if rec.n_samples <= 0:
            raise MalformedInputError(f"Recording '{where}' has no samples.")
        if rec.n_phases < n_phases:
            raise MalformedInputError(
                f"Recording '{where}' has {rec.n_phases} phase(s); {n_phases} required."
            )

    n_rows = sum(r.n_samples for r in recs)
    X = np.empty((n_rows, n_phases), dtype=np.float64)
    y = np.empty(n_rows, dtype=object)

    start = 0
    for rec in recs:
        stop = start + rec.n_samples
        X[start:stop] = rec.phases[:n_phases].T
        y[start:stop] = rec.label
        start = stop

    if np.any(np.isinf(X)):
        raise MalformedInputError("Raw rows contain infinite values.")

    for c in range(n_phases):
        col = X[:, c]
        missing = np.isnan(col)
        if missing.all():
            raise MalformedInputError(f"Raw column {c} contains no numeric values.")
        if missing.any():
            col[missing] = np.median(col[~missing])

    logger.info(
        "Raw rows built: %d samples, %d features, %d classes",
        n_rows, n_phases, len(set(y.tolist())),
    )
    return X, y.astype(str)
