"""HDF5 export and import of motor fault feature datasets.

Stores a feature matrix with its labels, column names, the split used for
training and the feature extraction settings, so that reporting and
plotting tools can work from a file instead of re-running extraction.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional

import numpy as np

from motorfault.ml.features import FeatureConfig, FeatureDataset
from motorfault.ml.pipeline import Split


@dataclass
class DatasetConfig:
    """Configuration for HDF5 dataset export.

    Parameters
    ----------
    compression : HDF5 compression filter name (e.g. "gzip", "lzf"); empty
        string disables compression
    compression_level : compression level (1-9 for gzip)
    include_raw : also store the unnormalized feature matrix
    """

    compression: str = "gzip"
    compression_level: int = 4
    include_raw: bool = True


def export_feature_dataset(
    path: str | Path,
    dataset: FeatureDataset,
    split: Optional[Split] = None,
    feature_config: Optional[FeatureConfig] = None,
    config: Optional[DatasetConfig] = None,
) -> None:
    """Write a feature dataset to HDF5.

    File layout
    -----------
    ::

        /X                (n_rows, n_features) float64
        /X_raw            (n_rows, n_features) float64   (if include_raw)
        /labels           (n_rows,) str
        /feature_names    (n_features,) str
        /sources          (n_rows,) str (empty when unknown)
        /split/train|val|test   int64 index arrays      (if split given)
        attrs: feature config fields prefixed "feature_"
    """
    import h5py

    if config is None:
        config = DatasetConfig()

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    comp_kwargs: dict[str, Any] = {}
    if config.compression:
        comp_kwargs["compression"] = config.compression
        if config.compression == "gzip":
            comp_kwargs["compression_opts"] = config.compression_level

    str_dtype = h5py.string_dtype()
    sources = [s or "" for s in dataset.sources] or [""] * dataset.X.shape[0]

    with h5py.File(str(path), "w") as f:
        f.create_dataset("X", data=np.asarray(dataset.X, dtype=np.float64), **comp_kwargs)
        if config.include_raw:
            f.create_dataset(
                "X_raw", data=np.asarray(dataset.X_raw, dtype=np.float64), **comp_kwargs
            )
        f.create_dataset(
            "labels", data=np.array(dataset.y.tolist(), dtype=object), dtype=str_dtype
        )
        f.create_dataset(
            "feature_names", data=np.array(dataset.feature_names, dtype=object),
            dtype=str_dtype,
        )
        f.create_dataset("sources", data=np.array(sources, dtype=object), dtype=str_dtype)

        if split is not None:
            grp = f.create_group("split")
            grp.create_dataset("train", data=np.asarray(split.train, dtype=np.int64))
            grp.create_dataset("val", data=np.asarray(split.val, dtype=np.int64))
            grp.create_dataset("test", data=np.asarray(split.test, dtype=np.int64))
            grp.attrs["seed"] = int(split.seed)

        if feature_config is not None:
            for key, value in asdict(feature_config).items():
                f.attrs[f"feature_{key}"] = np.asarray(value)

        f.attrs["num_rows"] = int(dataset.X.shape[0])
        f.attrs["num_features"] = int(dataset.X.shape[1])


def load_feature_dataset(
    path: str | Path,
) -> tuple[FeatureDataset, Optional[Split], Optional[FeatureConfig]]:
    """Load a dataset written by :func:`export_feature_dataset`.

    Returns
    -------
    dataset : FeatureDataset (``X_raw`` falls back to ``X`` if not stored)
    split : Split or None
    feature_config : FeatureConfig or None
    """
    import h5py

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"HDF5 dataset not found: {path}")

    with h5py.File(str(path), "r") as f:
        X = np.array(f["X"])
        X_raw = np.array(f["X_raw"]) if "X_raw" in f else X.copy()
        labels = np.array(f["labels"].asstr()[()]).astype(str)
        names = list(f["feature_names"].asstr()[()])
        sources = [s or None for s in f["sources"].asstr()[()]]

        split = None
        if "split" in f:
            grp = f["split"]
            split = Split(
                train=np.array(grp["train"], dtype=np.intp),
                val=np.array(grp["val"], dtype=np.intp),
                test=np.array(grp["test"], dtype=np.intp),
                seed=int(grp.attrs["seed"]),
            )

        feature_config = None
        prefix = "feature_"
        stored = {k[len(prefix):]: f.attrs[k] for k in f.attrs if k.startswith(prefix)}
        if stored:
            kwargs: dict[str, Any] = {}
            for key, value in stored.items():
                value = np.asarray(value)
                if key == "bearing_band":
                    kwargs[key] = tuple(float(v) for v in value)
                elif key == "n_phases":
                    kwargs[key] = int(value)
                elif value.dtype == np.bool_:
                    kwargs[key] = bool(value)
                else:
                    kwargs[key] = float(value)
            feature_config = FeatureConfig(**kwargs)

    dataset = FeatureDataset(
        X=X, y=labels, feature_names=names, X_raw=X_raw, sources=sources,
    )
    return dataset, split, feature_config
