"""Tests for motorfault.io (CSV recording folders)."""

import logging

import numpy as np
import pytest


def _write_csv(path, n_samples=200, header=True, seed=0):
    rng = np.random.default_rng(seed)
    data = rng.standard_normal((n_samples, 3))
    lines = ["Ia,Ib,Ic"] if header else []
    lines += [",".join(f"{v:.6f}" for v in row) for row in data]
    path.write_text("\n".join(lines) + "\n")
    return data


class TestReadRecordingCsv:
    def test_header_is_skipped(self, tmp_path):
        from motorfault.io import read_recording_csv

        data = _write_csv(tmp_path / "rec.csv")
        rec = read_recording_csv(tmp_path / "rec.csv", "Healthy")

        assert rec.phases.shape == (3, 200)
        assert rec.label == "Healthy"
        assert rec.source == str(tmp_path / "rec.csv")
        np.testing.assert_allclose(rec.phases, data.T, atol=1e-6)

    def test_extra_columns_dropped(self, tmp_path):
        from motorfault.io import read_recording_csv

        path = tmp_path / "wide.csv"
        path.write_text("1,2,3,4\n5,6,7,8\n")
        rec = read_recording_csv(path, "BRB100")
        assert rec.phases.tolist() == [[1.0, 5.0], [2.0, 6.0], [3.0, 7.0]]

    def test_non_numeric_cells_become_nan(self, tmp_path):
        from motorfault.io import read_recording_csv

        path = tmp_path / "gap.csv"
        path.write_text("1,2,3\n4,n/a,6\n")
        rec = read_recording_csv(path, "BRB100")
        assert np.isnan(rec.phases[1, 1])

    def test_no_numeric_rows(self, tmp_path):
        from motorfault.errors import MalformedInputError
        from motorfault.io import read_recording_csv

        path = tmp_path / "header_only.csv"
        path.write_text("Ia,Ib,Ic\n")
        with pytest.raises(MalformedInputError, match="No numeric rows"):
            read_recording_csv(path, "Healthy")


class TestLoadRecordings:
    def test_class_folders(self, tmp_path, caplog):
        from motorfault.io import load_recordings

        for folder, n_files in (("Healthy", 2), ("BRB_100", 1)):
            (tmp_path / folder).mkdir()
            for i in range(n_files):
                _write_csv(tmp_path / folder / f"r{i}.csv", seed=i)

        with caplog.at_level(logging.WARNING, logger="motorfault.io"):
            recordings = load_recordings(tmp_path)

        assert list(recordings) == ["Healthy", "BRB100"]
        assert len(recordings["Healthy"]) == 2
        assert recordings["Healthy"][0].source.endswith("r0.csv")
        assert "BFO_300" in caplog.text

    def test_custom_mapping(self, tmp_path):
        from motorfault.io import load_recordings

        (tmp_path / "good").mkdir()
        _write_csv(tmp_path / "good" / "a.csv")
        recordings = load_recordings(tmp_path, class_folders={"good": "Healthy"})
        assert list(recordings) == ["Healthy"]

    def test_missing_base_dir(self, tmp_path):
        from motorfault.io import load_recordings

        with pytest.raises(FileNotFoundError):
            load_recordings(tmp_path / "nope")

    def test_nothing_found(self, tmp_path):
        from motorfault.errors import MalformedInputError
        from motorfault.io import load_recordings

        with pytest.raises(MalformedInputError, match="No recordings"):
            load_recordings(tmp_path)
