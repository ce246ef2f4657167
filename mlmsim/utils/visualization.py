"""
Visualization utilities for MLMSim.

Plots replication tables and sampling distributions.
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd

__all__ = []


def _pyplot():
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError("matplotlib required for plotting: pip install matplotlib") from None
    return plt


def plot_replications(table: pd.DataFrame, true_value: float, title: Optional[str] = None):
    """Plot the sampling distribution and confidence intervals of a replication table.

    The left panel is a histogram of the estimates with the true value and
    the mean estimate marked. The right panel draws every confidence
    interval, sorted by estimate; intervals missing the true value are red.

    Args:
        table: Replication table (``estimate``, ``lower``, ``upper`` columns).
        true_value: Ground-truth parameter value.
        title: Figure title.

    Returns:
        The matplotlib ``Figure``.

    Raises:
        ImportError: If ``matplotlib`` is not installed.
    """
    plt = _pyplot()

    fig, (ax_hist, ax_ci) = plt.subplots(1, 2, figsize=(12, 5))
    estimates = table["estimate"].to_numpy(dtype=float)

    ax_hist.hist(estimates, bins="auto", color="#4C72B0", alpha=0.7, edgecolor="white")
    ax_hist.axvline(true_value, color="red", linestyle="--", linewidth=2, label=f"True value ({true_value:g})")
    ax_hist.axvline(estimates.mean(), color="black", linewidth=1.5, label=f"Mean estimate ({estimates.mean():.3f})")
    ax_hist.set_xlabel("Estimate", fontsize=12)
    ax_hist.set_ylabel("Replications", fontsize=12)
    ax_hist.legend(loc="upper right")
    ax_hist.grid(True, alpha=0.3)

    ordered = table.sort_values("estimate")
    covered = (ordered["lower"] <= true_value) & (true_value <= ordered["upper"])
    positions = np.arange(len(ordered))
    colors = np.where(covered, "#4C72B0", "red")
    ax_ci.hlines(positions, ordered["lower"], ordered["upper"], colors=colors, linewidth=1)
    ax_ci.plot(ordered["estimate"], positions, "o", color="black", markersize=2)
    ax_ci.axvline(true_value, color="red", linestyle="--", linewidth=2)
    ax_ci.set_xlabel("Confidence interval", fontsize=12)
    ax_ci.set_ylabel("Replication (sorted by estimate)", fontsize=12)
    ax_ci.set_title(f"Coverage: {covered.mean():.1%}", fontsize=12)
    ax_ci.grid(True, alpha=0.3)

    if title:
        fig.suptitle(title, fontsize=14, fontweight="bold")
    fig.tight_layout()
    return fig


def plot_sampling_distribution(samples: Sequence[np.ndarray], labels: Sequence[str], title: Optional[str] = None):
    """Overlay histograms of one or more sampling distributions.

    Args:
        samples: Arrays of statistic values, e.g. means and medians.
        labels: One legend label per array.
        title: Axes title.

    Returns:
        The matplotlib ``Figure``.
    """
    plt = _pyplot()

    if len(samples) != len(labels):
        raise ValueError(f"Got {len(samples)} sample arrays but {len(labels)} labels")

    fig, ax = plt.subplots(figsize=(8, 5))
    colors = plt.get_cmap("Set1")(np.linspace(0, 1, max(len(samples), 2)))

    for i, (values, label) in enumerate(zip(samples, labels)):
        values = np.asarray(values, dtype=float)
        ax.hist(values, bins="auto", density=True, alpha=0.5, color=colors[i], label=f"{label} (SD {values.std(ddof=1):.3f})")

    ax.set_xlabel("Statistic value", fontsize=12)
    ax.set_ylabel("Density", fontsize=12)
    ax.grid(True, alpha=0.3)
    ax.legend()
    if title:
        ax.set_title(title, fontsize=14, fontweight="bold")
    fig.tight_layout()
    return fig
