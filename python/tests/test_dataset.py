"""Tests for motorfault.dataset HDF5 export / import."""

import numpy as np
import pytest

h5py = pytest.importorskip("h5py")


@pytest.fixture(scope="module")
def feature_dataset(synthetic_recordings):
    from motorfault.ml.features import build_feature_matrix, select_representatives

    return build_feature_matrix(select_representatives(synthetic_recordings))


def test_export_file_structure(feature_dataset, tmp_path):
    from motorfault.dataset import export_feature_dataset

    path = tmp_path / "features.h5"
    export_feature_dataset(path, feature_dataset)

    with h5py.File(str(path), "r") as f:
        assert f["X"].shape == (9, 39)
        assert f["X_raw"].shape == (9, 39)
        assert f["labels"].shape == (9,)
        assert f["feature_names"].shape == (39,)
        assert "split" not in f
        assert f.attrs["num_features"] == 39


def test_roundtrip(feature_dataset, tmp_path):
    from motorfault.dataset import export_feature_dataset, load_feature_dataset
    from motorfault.ml.features import FeatureConfig
    from motorfault.ml.pipeline import stratified_split

    split = stratified_split(feature_dataset.y, test_ratio=0.2, seed=4)
    config = FeatureConfig(line_frequency=60.0, bearing_band=(120.0, 480.0))
    path = tmp_path / "nested" / "features.h5"
    export_feature_dataset(path, feature_dataset, split=split, feature_config=config)

    loaded, loaded_split, loaded_config = load_feature_dataset(path)

    np.testing.assert_allclose(loaded.X, feature_dataset.X)
    np.testing.assert_allclose(loaded.X_raw, feature_dataset.X_raw)
    assert loaded.y.tolist() == feature_dataset.y.tolist()
    assert loaded.feature_names == feature_dataset.feature_names
    assert loaded_split.to_dict() == split.to_dict()
    assert len(loaded_split.val) == 0
    assert loaded_config == config


def test_without_raw(feature_dataset, tmp_path):
    from motorfault.dataset import DatasetConfig, export_feature_dataset, load_feature_dataset

    path = tmp_path / "lean.h5"
    export_feature_dataset(path, feature_dataset, config=DatasetConfig(include_raw=False, compression=""))
    loaded, split, config = load_feature_dataset(path)

    np.testing.assert_allclose(loaded.X_raw, feature_dataset.X)
    assert split is None
    assert config is None


def test_missing_file(tmp_path):
    from motorfault.dataset import load_feature_dataset

    with pytest.raises(FileNotFoundError):
        load_feature_dataset(tmp_path / "absent.h5")
