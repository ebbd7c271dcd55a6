"""In-memory representation of stator current recordings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


PHASE_NAMES = ("Phase A", "Phase B", "Phase C")


@dataclass(frozen=True)
class WaveformSample:
    """One recording of per-phase stator currents.

    Parameters
    ----------
    phases : (n_phases, n_samples) array of current amplitudes
    label : fault class of the recording (e.g. ``"Healthy"``, ``"BRB100"``)
    sample_rate : sampling rate in Hz
    source : optional path of the file the recording was read from
    """

    phases: np.ndarray
    label: str
    sample_rate: float = 10000.0
    source: Optional[str] = None

    def __post_init__(self) -> None:
        phases = np.array(self.phases, dtype=np.float64)
        if phases.ndim == 1:
            phases = phases[np.newaxis, :]
        phases.setflags(write=False)
        object.__setattr__(self, "phases", phases)

    @property
    def n_phases(self) -> int:
        return int(self.phases.shape[0])

    @property
    def n_samples(self) -> int:
        return int(self.phases.shape[1])

    @property
    def duration(self) -> float:
        """Recording length in seconds."""
        return self.n_samples / self.sample_rate

    def phase(self, index: int) -> np.ndarray:
        return self.phases[index]

    @classmethod
    def from_columns(
        cls,
        data: np.ndarray,
        label: str,
        sample_rate: float = 10000.0,
        source: Optional[str] = None,
    ) -> "WaveformSample":
        """Build a sample from an ``(n_samples, n_phases)`` column matrix,
        the layout used by the CSV recordings."""
        data = np.asarray(data, dtype=np.float64)
        if data.ndim == 1:
            data = data[:, np.newaxis]
        return cls(phases=data.T, label=label, sample_rate=sample_rate, source=source)


RecordingSet = dict[str, list[WaveformSample]]
