"""
Plotting and regression helpers for scraped result tables.

These functions take the cleaned DataFrames produced by the scrapers
and return matplotlib axes or summary tables; callers decide whether to
show or save figures.
"""

from dataclasses import dataclass
from typing import Optional
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats


@dataclass
class RegressionSummary:
    """Ordinary least squares fit of ``y`` on ``x``."""
    x: str
    y: str
    slope: float
    intercept: float
    r_value: float
    p_value: float
    stderr: float
    n: int

    @property
    def r_squared(self) -> float:
        return self.r_value ** 2

    def predict(self, values):
        return self.intercept + self.slope * np.asarray(values, dtype=float)

    def summary(self) -> str:
        return (
            f"{self.y} ~ {self.x} (n={self.n})\n"
            f"  slope      {self.slope:.4f} (SE {self.stderr:.4f})\n"
            f"  intercept  {self.intercept:.4f}\n"
            f"  R²         {self.r_squared:.4f}\n"
            f"  p-value    {self.p_value:.4g}"
        )


def _numeric_pairs(frame: pd.DataFrame, x: str, y: str) -> pd.DataFrame:
    for column in (x, y):
        if column not in frame.columns:
            raise ValueError(f"Column {column!r} not in table")
    pairs = pd.DataFrame({
        x: pd.to_numeric(frame[x], errors='coerce'),
        y: pd.to_numeric(frame[y], errors='coerce'),
    })
    return pairs.dropna()


def fit_regression(frame: pd.DataFrame, x: str, y: str) -> RegressionSummary:
    """
    Fit a simple linear regression of one column on another.

    Rows where either value is missing or non-numeric are dropped.

    Parameters
    ----------
    frame : pd.DataFrame
        Cleaned table
    x, y : str
        Predictor and response columns

    Returns
    -------
    RegressionSummary

    Raises
    ------
    ValueError
        If a column is missing or fewer than 3 usable rows remain
    """
    pairs = _numeric_pairs(frame, x, y)
    if len(pairs) < 3:
        raise ValueError(f"Need at least 3 numeric rows to regress {y} on {x}, got {len(pairs)}")

    fit = stats.linregress(pairs[x], pairs[y])
    return RegressionSummary(
        x=x,
        y=y,
        slope=float(fit.slope),
        intercept=float(fit.intercept),
        r_value=float(fit.rvalue),
        p_value=float(fit.pvalue),
        stderr=float(fit.stderr),
        n=len(pairs)
    )


def plot_columns(
    frame: pd.DataFrame,
    x: str,
    y: str,
    kind: str = "bar",
    ax: Optional[plt.Axes] = None,
    figsize=(10, 6)
) -> plt.Axes:
    """
    Plot one column against another as a bar or scatter chart.

    Parameters
    ----------
    frame : pd.DataFrame
        Table to plot
    x, y : str
        Columns for the horizontal and vertical axes
    kind : str
        "bar" or "scatter"
    ax : matplotlib Axes, optional
        Axes to draw on; a new figure is created when omitted
    """
    if kind not in ("bar", "scatter"):
        raise ValueError(f"Unknown plot kind: {kind}")

    if ax is None:
        _, ax = plt.subplots(figsize=figsize)

    if kind == "bar":
        sns.barplot(data=frame, x=x, y=y, ax=ax)
        ax.tick_params(axis='x', labelrotation=45)
    else:
        sns.scatterplot(data=frame, x=x, y=y, ax=ax)

    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(f"{y} by {x}")
    plt.tight_layout()
    return ax


def plot_regression(
    frame: pd.DataFrame,
    x: str,
    y: str,
    ax: Optional[plt.Axes] = None,
    figsize=(8, 6)
) -> plt.Axes:
    """Scatter ``y`` against ``x`` with the fitted line and its R² in the title."""
    fit = fit_regression(frame, x, y)
    pairs = _numeric_pairs(frame, x, y)

    if ax is None:
        _, ax = plt.subplots(figsize=figsize)

    sns.regplot(data=pairs, x=x, y=y, ax=ax, scatter_kws={'alpha': 0.7})
    ax.set_title(f"{y} vs {x} (R² = {fit.r_squared:.3f})")
    plt.tight_layout()
    return ax


def winners(frame: pd.DataFrame) -> pd.DataFrame:
    """Highest-polling candidate in each constituency."""
    ranked = frame.dropna(subset=['votes'])
    if ranked.empty:
        return ranked.copy()
    top = ranked.loc[ranked.groupby('constituency', sort=False)['votes'].idxmax()]
    return top.reset_index(drop=True)


def party_summary(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Per-party totals across all scraped constituencies.

    Columns: candidates, seats, votes, mean_vote_share. Rows are sorted
    by seats won, then total votes. Candidates without a party label are
    grouped under "Unknown".
    """
    labelled = frame.assign(party=frame['party'].fillna('Unknown'))
    seats = winners(labelled)['party'].value_counts()

    summary = labelled.groupby('party').agg(
        candidates=('candidate', 'count'),
        votes=('votes', 'sum'),
        mean_vote_share=('vote_share', 'mean'),
    )
    summary.insert(1, 'seats', seats.reindex(summary.index, fill_value=0).astype(int))

    return summary.sort_values(['seats', 'votes'], ascending=False)
