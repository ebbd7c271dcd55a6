"""Visualization for motorfault: waveforms, band spectra and model metrics.

Every function returns a matplotlib Figure and never calls ``show``.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from motorfault.ml.features import FeatureConfig, single_sided_spectrum
from motorfault.ml.pipeline import EvaluationReport, ModelEvaluation
from motorfault.recording import PHASE_NAMES, WaveformSample


def _phase_name(p: int) -> str:
    return PHASE_NAMES[p] if p < len(PHASE_NAMES) else f"Phase {p + 1}"


def plot_phase_waveforms(
    recordings: Sequence[WaveformSample],
    max_phases: int = 3,
    figsize: tuple[float, float] = (14, 8),
):
    """Overlay the time-domain currents of several recordings, one subplot
    per phase (e.g. healthy vs. defect).

    Recordings are truncated to the shortest one.
    """
    import matplotlib.pyplot as plt

    n_phases = min([max_phases] + [r.n_phases for r in recordings])
    fig, axes = plt.subplots(n_phases, 1, figsize=figsize, squeeze=False)
    if not recordings:
        return fig

    n = min(r.n_samples for r in recordings)
    for p in range(n_phases):
        ax = axes[p, 0]
        for rec in recordings:
            t = np.arange(n) / rec.sample_rate
            ax.plot(t, rec.phases[p, :n], linewidth=1.2, label=rec.label)
        ax.set_title(_phase_name(p))
        ax.set_xlabel("Time (s)")
        ax.set_ylabel("Current (A)")
        ax.grid(True)
        ax.legend(loc="best")
    fig.suptitle("Time Domain Comparison", fontweight="bold")
    fig.tight_layout()
    return fig


def plot_band_spectrum(
    recordings: Sequence[WaveformSample],
    band: tuple[float, float],
    config: FeatureConfig = FeatureConfig(),
    mark_faults: bool = True,
    max_phases: int = 3,
    figsize: tuple[float, float] = (16, 5),
):
    """Single-sided spectra of several recordings restricted to ``band``.

    Parameters
    ----------
    recordings : recordings to overlay (e.g. healthy vs. defect)
    band : (lo, hi) frequency range in Hz, e.g. ``config.supply_band`` or
        ``config.bearing_band``
    config : feature configuration providing line and fault frequencies
    mark_faults : draw the line frequency and bearing fault frequencies
        that fall inside the band

    Returns
    -------
    matplotlib Figure
    """
    import matplotlib.pyplot as plt

    lo, hi = band
    n_phases = min([max_phases] + [r.n_phases for r in recordings])
    fig, axes = plt.subplots(1, n_phases, figsize=figsize, squeeze=False)

    markers = {"f0": config.line_frequency}
    markers.update(config.fault_frequencies())

    for p in range(n_phases):
        ax = axes[0, p]
        for rec in recordings:
            freqs, mags = single_sided_spectrum(rec.phases[p], rec.sample_rate)
            idx = (freqs >= lo) & (freqs <= hi)
            ax.plot(freqs[idx], mags[idx], linewidth=1.5, label=rec.label)
        if mark_faults:
            for name, freq in markers.items():
                if lo <= freq <= hi:
                    ax.axvline(freq, linestyle="--", color="k", alpha=0.4)
                    ax.annotate(
                        f"{name}\n{freq:.0f}Hz", (freq, 0.95),
                        xycoords=("data", "axes fraction"),
                        ha="center", va="top", fontsize=7,
                    )
        ax.set_xlim(lo, hi)
        ax.set_title(_phase_name(p))
        ax.set_xlabel("Frequency (Hz)")
        ax.set_ylabel("Magnitude")
        ax.grid(True)
        ax.legend(loc="best")
    fig.suptitle(f"Spectrum Comparison ({lo:.0f}-{hi:.0f} Hz)", fontweight="bold")
    fig.tight_layout()
    return fig


def plot_confusion_matrix(
    evaluation: ModelEvaluation,
    figsize: tuple[float, float] = (7, 6),
    cmap: str = "Blues",
):
    """Heatmap of one model's confusion matrix with counts in each cell."""
    import matplotlib.pyplot as plt

    cm = np.asarray(evaluation.confusion)
    fig, ax = plt.subplots(figsize=figsize)
    im = ax.imshow(cm, cmap=cmap)
    fig.colorbar(im, ax=ax)

    ticks = np.arange(len(evaluation.classes))
    ax.set_xticks(ticks)
    ax.set_yticks(ticks)
    ax.set_xticklabels([str(c) for c in evaluation.classes], rotation=45, ha="right")
    ax.set_yticklabels([str(c) for c in evaluation.classes])
    ax.set_xlabel("Predicted class")
    ax.set_ylabel("True class")

    threshold = cm.max() / 2.0 if cm.size else 0.0
    for i in range(cm.shape[0]):
        for j in range(cm.shape[1]):
            ax.text(
                j, i, str(cm[i, j]), ha="center", va="center",
                color="white" if cm[i, j] > threshold else "black",
            )
    ax.set_title(f"{evaluation.name} (accuracy {evaluation.accuracy:.2%})")
    fig.tight_layout()
    return fig


def plot_metric_comparison(
    report: EvaluationReport,
    metric: str = "f1",
    classes: Optional[Sequence[str]] = None,
    figsize: tuple[float, float] = (14, 6),
):
    """Grouped bars of a per-class metric (``"precision"``, ``"recall"`` or
    ``"f1"``) for every evaluated model.

    Classes missing from a model's confusion matrix are drawn as zero.
    """
    import matplotlib.pyplot as plt

    if metric not in ("precision", "recall", "f1"):
        raise ValueError(f"Unknown metric '{metric}'. Supported: precision, recall, f1.")

    evals = list(report.evaluations.values())
    if classes is None:
        classes = sorted({str(c) for ev in evals for c in ev.classes})
    classes = list(classes)

    fig, ax = plt.subplots(figsize=figsize)
    if not evals:
        return fig

    width = 0.8 / len(evals)
    x = np.arange(len(classes))
    for k, ev in enumerate(evals):
        values = getattr(ev, metric)
        lookup = {str(c): float(values[i]) for i, c in enumerate(ev.classes)}
        heights = [lookup.get(c, 0.0) for c in classes]
        ax.bar(x + (k - (len(evals) - 1) / 2.0) * width, heights, width, label=ev.name)

    ax.set_xticks(x)
    ax.set_xticklabels(classes, rotation=45, ha="right")
    ax.set_ylim(0.0, 1.05)
    ax.set_ylabel(metric.upper() if metric == "f1" else metric.capitalize())
    ax.set_title(f"Per-Class {metric.upper() if metric == 'f1' else metric.capitalize()}")
    ax.grid(True, axis="y", alpha=0.3)
    ax.legend(loc="best", fontsize=8)
    fig.tight_layout()
    return fig


def plot_model_ranking(
    report: EvaluationReport,
    figsize: tuple[float, float] = (12, 5),
):
    """Side-by-side bars of accuracy (roster order) and mean F1 (ranked)."""
    import matplotlib.pyplot as plt

    fig, (ax_acc, ax_f1) = plt.subplots(1, 2, figsize=figsize)
    evals = report.evaluations
    if not evals:
        return fig

    names = list(evals)
    acc = [evals[n].accuracy for n in names]
    bars = ax_acc.bar(names, acc, color=(0.2, 0.6, 0.8))
    ax_acc.bar_label(bars, fmt="%.3f", fontsize=8)
    ax_acc.set_ylim(0.0, 1.05)
    ax_acc.set_title("Overall Accuracy")
    ax_acc.tick_params(axis="x", rotation=45)

    ranked = report.ranking
    f1 = [evals[n].mean_f1 for n in ranked]
    bars = ax_f1.bar(ranked, f1, color=(0.8, 0.4, 0.2))
    ax_f1.bar_label(bars, fmt="%.3f", fontsize=8)
    ax_f1.set_ylim(0.0, 1.05)
    ax_f1.set_title("Average F1 Score (ranked)")
    ax_f1.tick_params(axis="x", rotation=45)

    fig.tight_layout()
    return fig
