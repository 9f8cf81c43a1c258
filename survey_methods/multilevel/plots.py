"""
Multilevel Plots
================

Figures for the multilevel transcripts, written together to one PDF:

1. Fitted values against the level-1 predictor, one line per group
   (random-intercept vs random-slope models).
2. One panel per group with the observed points and that group's own
   OLS regression line.

Usage:
    figs = [fitted_lines_plot(df, m1.result.fittedvalues, "standlrt", "school", ...)]
    save_plots(figs, output_dir / "MultilevelSchoolsPlots.pdf")
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Union

import matplotlib
matplotlib.use("Agg")  # Headless backend

import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages
import numpy as np
import pandas as pd
import seaborn as sns


def fitted_lines_plot(
    data: pd.DataFrame,
    fitted: Union[pd.Series, np.ndarray],
    x: str,
    group: str,
    title: str,
    xlabel: Optional[str] = None,
    ylabel: str = "Fitted value",
    points: bool = False,
) -> plt.Figure:
    """
    Fitted values vs ``x`` with a separate line for each group.

    With ``points=True`` the fitted values are also drawn as markers
    (useful when there are only a handful of groups).
    """
    if len(fitted) != len(data):
        raise ValueError(f"Got {len(fitted)} fitted values for {len(data)} rows")
    frame = pd.DataFrame({
        x: data[x].to_numpy(),
        'fitted': np.asarray(fitted, dtype=float),
        group: data[group].astype(str).to_numpy(),
    }).sort_values([group, x])

    n_groups = frame[group].nunique()
    palette = sns.color_palette("husl", n_groups)

    fig, ax = plt.subplots(figsize=(7, 5))
    sns.lineplot(
        data=frame, x=x, y='fitted', hue=group, units=group, estimator=None,
        palette=palette, legend=n_groups <= 10, linewidth=1.5 if n_groups <= 10 else 0.8, ax=ax,
    )
    if points:
        sns.scatterplot(data=frame, x=x, y='fitted', hue=group, palette=palette, legend=False, ax=ax)
    ax.set_title(title)
    ax.set_xlabel(xlabel or x)
    ax.set_ylabel(ylabel)
    fig.tight_layout()
    return fig


def group_panels_plot(
    data: pd.DataFrame,
    x: str,
    y: str,
    group: str,
    title: str,
    xlabel: Optional[str] = None,
    ylabel: Optional[str] = None,
    col_wrap: int = 8,
) -> plt.Figure:
    """One panel per group: observed points and the group's regression line."""
    grid = sns.lmplot(
        data=data, x=x, y=y, col=group, col_wrap=min(col_wrap, data[group].nunique()),
        ci=None, height=1.6, aspect=1.0,
        scatter_kws={'s': 4, 'color': 'darkblue', 'alpha': 0.6},
        line_kws={'color': 'black', 'linewidth': 1},
    )
    grid.set_titles("{col_name}", size=7)
    grid.set_axis_labels(xlabel or x, ylabel or y)
    grid.figure.suptitle(title)
    grid.figure.tight_layout()
    return grid.figure


def save_plots(figures: Iterable[plt.Figure], path: Union[str, Path]) -> Path:
    """Write the figures to a multi-page PDF and close them."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with PdfPages(path) as pdf:
        for fig in figures:
            pdf.savefig(fig)
            plt.close(fig)
    return path
