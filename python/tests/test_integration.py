"""End-to-end tests: recordings -> features -> split -> roster -> ranking."""

import json

import numpy as np
import pytest


class TestFrequencyPipeline:
    def test_default_roster(self, synthetic_recordings):
        from motorfault.ml.pipeline import run_frequency_pipeline

        result = run_frequency_pipeline(synthetic_recordings)

        assert result.features.X.shape == (9, 39)
        assert result.split.sizes == {"train": 7, "val": 1, "test": 1}
        assert [m.name for m in result.models] == [
            "RF-Frequency", "KNN-Frequency", "Tree-Frequency",
        ]
        assert result.training_failures == []
        assert sorted(result.report.ranking) == sorted(m.name for m in result.models)
        assert result.report.best in result.report.ranking
        assert result.val_report is not None

    def test_failing_variant_is_skipped(self, synthetic_recordings):
        from motorfault.ml.models import ClassifierSpec
        from motorfault.ml.pipeline import run_frequency_pipeline

        roster = [
            ClassifierSpec("RF", "ensemble", {"n_cycles": 10}),
            ClassifierSpec("Broken KNN", "knn", {"n_neighbors": 0}),
            ClassifierSpec("Tree", "tree"),
        ]
        result = run_frequency_pipeline(synthetic_recordings, roster=roster)

        assert [m.name for m in result.models] == ["RF", "Tree"]
        assert [f.name for f in result.training_failures] == ["Broken KNN"]
        assert set(result.report.evaluations) == {"RF", "Tree"}
        for ev in result.report.evaluations.values():
            assert 0.0 <= ev.accuracy <= 1.0
            assert np.all((ev.f1 >= 0.0) & (ev.f1 <= 1.0))

    def test_train_only_normalization(self, synthetic_recordings):
        from motorfault.ml.pipeline import TrainingConfig, run_frequency_pipeline

        result = run_frequency_pipeline(
            synthetic_recordings, config=TrainingConfig(normalization="train"),
        )
        train_cols = result.X[result.split.train]
        assert np.allclose(train_cols.mean(axis=0), 0.0, atol=1e-9)
        raw = result.features.X_raw[result.split.train]
        spread = raw.std(axis=0, ddof=1) > 1e-12 * np.maximum(1.0, np.abs(raw.mean(axis=0)))
        # sample std, matching the full-set normalization
        assert np.allclose(train_cols[:, spread].std(axis=0, ddof=1), 1.0)
        assert np.allclose(train_cols[:, ~spread], 0.0)
        assert len(result.models) == 3

    def test_deterministic_for_seed(self, synthetic_recordings):
        from motorfault.ml.pipeline import TrainingConfig, run_frequency_pipeline

        config = TrainingConfig(seed=3)
        a = run_frequency_pipeline(synthetic_recordings, config=config)
        b = run_frequency_pipeline(synthetic_recordings, config=config)
        assert a.split.to_dict() == b.split.to_dict()
        assert a.report.ranking == b.report.ranking

    def test_result_is_json_serializable(self, synthetic_recordings):
        from motorfault.ml.pipeline import run_frequency_pipeline

        result = run_frequency_pipeline(synthetic_recordings)
        payload = json.loads(json.dumps(result.to_dict()))
        assert len(payload["feature_names"]) == 39
        assert payload["report"]["best"] == result.report.best


class TestRawPipeline:
    @pytest.mark.slow
    def test_full_raw_roster(self, small_raw_recordings):
        from motorfault.ml.pipeline import run_raw_pipeline

        result = run_raw_pipeline(small_raw_recordings)

        assert result.features.X.shape == (600, 3)
        assert result.split.sizes == {"train": 420, "val": 90, "test": 90}
        assert len(result.models) + len(result.training_failures) == 7
        assert result.report.best in [m.name for m in result.models]
        for ev in result.report.evaluations.values():
            assert ev.classes == ["BFO100", "BRB100", "Healthy"]
            assert ev.confusion.sum() == 90

    def test_threaded_harness(self, small_raw_recordings):
        from motorfault.ml.models import ClassifierSpec
        from motorfault.ml.pipeline import TrainingConfig, run_raw_pipeline

        roster = [
            ClassifierSpec("Naive Bayes", "naive_bayes"),
            ClassifierSpec("Linear Discriminant", "discriminant", {"discrim_type": "linear"}),
            ClassifierSpec("Decision Tree", "tree", {"max_splits": 50}),
        ]
        result = run_raw_pipeline(
            small_raw_recordings, TrainingConfig(n_workers=3), roster=roster,
        )
        assert [m.name for m in result.models] == [s.name for s in roster]
        assert len(result.report.ranking) == 3

    def test_no_models_trained(self, small_raw_recordings):
        from motorfault.errors import NoModelsAvailableError
        from motorfault.ml.models import ClassifierSpec
        from motorfault.ml.pipeline import run_raw_pipeline

        roster = [ClassifierSpec("Broken", "knn", {"n_neighbors": 0})]
        with pytest.raises(NoModelsAvailableError):
            run_raw_pipeline(small_raw_recordings, roster=roster)
