"""
Trajectory figures.

Four panels against time: temperature, density, entropy per nucleon and the
mass fractions of the nuclides that rise above a threshold during the run.
"""

from pathlib import Path
from typing import Optional, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

DARK_STYLE = {
    'font.family': 'monospace',
    'axes.facecolor': '#0d1117',
    'figure.facecolor': '#0d1117',
    'axes.edgecolor': '#30363d',
    'axes.labelcolor': '#c9d1d9',
    'text.color': '#c9d1d9',
    'xtick.color': '#8b949e',
    'ytick.color': '#8b949e',
    'grid.color': '#21262d',
}

# Mass fractions below this over the whole run are not drawn
X_PLOT_THRESHOLD = 1e-6


def plot_trajectory(history: pd.DataFrame, save_path: Union[str, Path, None] = None,
                    title: Optional[str] = None):
    """
    Plot a run history (one row per committed step).

    Returns the figure; it is saved and closed when `save_path` is given.
    """
    if history.empty:
        raise ValueError("History is empty; nothing to plot.")

    # log axes need positive times
    history = history[history["time"] > 0.0]

    with plt.style.context('dark_background'), plt.rc_context(DARK_STYLE):
        fig, axes = plt.subplots(2, 2, figsize=(12, 8), sharex=True)
        t = history["time"].to_numpy()

        ax = axes[0, 0]
        ax.plot(t, history["t9"], color='#f85149', linewidth=2)
        ax.set_ylabel('T9')
        ax.set_title('Temperature')

        ax = axes[0, 1]
        ax.plot(t, history["rho"], color='#58a6ff', linewidth=2)
        ax.set_yscale('log')
        ax.set_ylabel('rho (g/cm^3)')
        ax.set_title('Density')

        ax = axes[1, 0]
        ax.plot(t, history["entropy"], color='#3fb950', linewidth=2)
        ax.set_ylabel('s (k_B / nucleon)')
        ax.set_title('Entropy per Nucleon')

        ax = axes[1, 1]
        for column in [c for c in history.columns if c.startswith("X_")]:
            x = history[column].to_numpy()
            if np.max(x) > X_PLOT_THRESHOLD:
                ax.plot(t, np.clip(x, 1e-30, None), linewidth=1.5, label=column[2:])
        ax.set_yscale('log')
        ax.set_ylim(X_PLOT_THRESHOLD, 2.0)
        ax.set_ylabel('X')
        ax.set_title('Mass Fractions')
        ax.legend(fontsize=8, loc='lower left', ncol=2)

        for ax in axes.flat:
            ax.set_xscale('log')
            ax.grid(True, alpha=0.3)
        for ax in axes[1]:
            ax.set_xlabel('t (s)')

        if title:
            fig.suptitle(title)
        plt.tight_layout()

        if save_path is not None:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')
            plt.close(fig)

    return fig
