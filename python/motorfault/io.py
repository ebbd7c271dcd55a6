"""Loading of per-class stator current recordings from CSV folders.

Expected layout::

    <base_dir>/Healthy/*.csv
    <base_dir>/BRB_100/*.csv
    ...

Each CSV holds one recording with one column per phase (A, B, C) and one
row per sample instant. Header lines and non-numeric cells are tolerated;
only the first ``n_phases`` numeric columns are kept.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

import numpy as np

from motorfault.errors import MalformedInputError
from motorfault.recording import RecordingSet, WaveformSample

logger = logging.getLogger(__name__)


# folder name -> class label
DEFAULT_CLASS_FOLDERS: dict[str, str] = {
    "Healthy": "Healthy",
    "BRB_100": "BRB100",
    "BRB_300": "BRB300",
    "BFI_100": "BFI100",
    "BFI_200": "BFI200",
    "BFI_300": "BFI300",
    "BFO_100": "BFO100",
    "BFO_200": "BFO200",
    "BFO_300": "BFO300",
}


def read_recording_csv(
    path: str | Path,
    label: str,
    sample_rate: float = 10000.0,
    n_phases: int = 3,
) -> WaveformSample:
    """Read one recording from a CSV file.

    Rows that contain no numeric value at all (e.g. a header) are dropped.
    Remaining non-numeric cells become NaN.

    Raises
    ------
    MalformedInputError
        If the file has no numeric rows.
    """
    import pandas as pd

    path = Path(path)
    frame = pd.read_csv(path, header=None, skipinitialspace=True)
    frame = frame.apply(pd.to_numeric, errors="coerce").dropna(how="all")
    if frame.empty:
        raise MalformedInputError(f"No numeric rows in {path}")

    data = frame.to_numpy(dtype=np.float64)
    if data.shape[1] >= n_phases:
        data = data[:, :n_phases]
    else:
        logger.warning(
            "%s has %d column(s); expected %d phases.", path, data.shape[1], n_phases,
        )

    return WaveformSample.from_columns(
        data, label=label, sample_rate=sample_rate, source=str(path),
    )


def load_recordings(
    base_dir: str | Path,
    class_folders: Optional[Mapping[str, str]] = None,
    sample_rate: float = 10000.0,
    n_phases: int = 3,
) -> RecordingSet:
    """Load every ``*.csv`` of every class folder, in sorted file order.

    Parameters
    ----------
    base_dir : directory containing one sub-directory per class
    class_folders : mapping folder name -> class label; defaults to
        :data:`DEFAULT_CLASS_FOLDERS`
    sample_rate : sampling rate of the recordings in Hz
    n_phases : number of phase columns to keep

    Returns
    -------
    dict mapping class label to its recordings; the first recording of
    each class is its representative.

    Raises
    ------
    FileNotFoundError
        If ``base_dir`` does not exist.
    MalformedInputError
        If no recording was found at all.
    """
    base_dir = Path(base_dir)
    if not base_dir.is_dir():
        raise FileNotFoundError(f"Dataset directory not found: {base_dir}")
    if class_folders is None:
        class_folders = DEFAULT_CLASS_FOLDERS

    recordings: RecordingSet = {}
    for folder, label in class_folders.items():
        folder_path = base_dir / folder
        if not folder_path.is_dir():
            logger.warning("Class folder %s missing; skipping.", folder_path)
            continue
        files = sorted(folder_path.glob("*.csv"))
        if not files:
            logger.warning("No CSV files in %s; skipping.", folder_path)
            continue
        recs = []
        for csv_path in files:
            logger.info("Loading: %s (%s)", csv_path.name, folder)
            recs.append(read_recording_csv(csv_path, label, sample_rate, n_phases))
        recordings[label] = recs

    if not recordings:
        raise MalformedInputError(f"No recordings found under {base_dir}")

    n_rows = sum(r.n_samples for recs in recordings.values() for r in recs)
    logger.info(
        "Data loaded: %d samples, %d recordings, %d classes",
        n_rows, sum(len(v) for v in recordings.values()), len(recordings),
    )
    return recordings
