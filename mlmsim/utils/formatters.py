"""
Text formatting of replication summaries.
"""

from typing import Optional

__all__ = []

_ROWS = [
    ("Mean estimate", "mean_estimate"),
    ("Mean SE", "mean_se"),
    ("SD of estimates", "sd_estimate"),
    ("CI coverage", "coverage"),
    ("Bias", "bias"),
    ("Relative bias", "relative_bias"),
    ("SE bias", "se_bias"),
    ("Relative SE bias", "relative_se_bias"),
    ("RMSE (bias^2 + variance)", "rmse"),
]


def _format_value(key: str, value: Optional[float]) -> str:
    if value is None:
        return "undefined"
    if key == "coverage":
        return f"{value:.1%}"
    return f"{value:.4f}"


def _format_summary(summary, parameter: str, n_failed: int = 0, model: Optional[str] = None) -> str:
    """Render a ``SummaryStatistics`` as a fixed-width table."""
    lines = [
        f"Parameter: {parameter} (true value {summary.true_value:g})",
        f"Replications used: {summary.n_replications}" + (f" ({n_failed} failed fits excluded)" if n_failed else ""),
    ]
    if model:
        lines.append(f"Fitted model: {model}")
    lines.append("-" * 44)
    width = max(len(label) for label, _ in _ROWS)
    for label, key in _ROWS:
        lines.append(f"{label:<{width}}  {_format_value(key, getattr(summary, key)):>14}")
    return "\n".join(lines)
