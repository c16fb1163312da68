"""
Matplotlib-based visualization for the compression experiments.

These functions create static plots of training and evolution progress.
"""

import numpy as np
from pathlib import Path
from typing import Optional, List, Tuple, Dict, Union

# Matplotlib imports with non-GUI backend
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt


def plot_training_cost(
    history: Dict[str, List[float]],
    figsize: Tuple[int, int] = (8, 8),
    title: str = 'epochs vs cost',
    ax: Optional[plt.Axes] = None,
) -> plt.Figure:
    """
    Scatter plot of loss magnitude against iteration index.

    Args:
        history: Trainer history with 'loss' and optionally 'iteration'
        figsize: Figure size in inches
        title: Plot title
        ax: Existing axes to plot on

    Returns:
        matplotlib Figure
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    loss = history['loss']
    iterations = history.get('iteration') or list(range(len(loss)))

    ax.scatter(iterations, loss, s=2, marker='o', color='black')
    ax.set_title(title)
    ax.set_xlabel('epochs')
    ax.set_ylabel('cost')
    ax.grid(True, alpha=0.3)

    return fig


def plot_fitness_trajectory(
    trajectory: List[float],
    pixels: Optional[int] = None,
    figsize: Tuple[int, int] = (8, 5),
    title: str = 'Best fitness per generation',
) -> plt.Figure:
    """
    Plot the best fitness of every generation.

    Args:
        trajectory: Best fitness per generation (lower is better)
        pixels: If given, fitness is divided by this pixel count
        figsize: Figure size
        title: Plot title

    Returns:
        matplotlib Figure
    """
    fig, ax = plt.subplots(figsize=figsize)

    values = np.asarray(trajectory, dtype=float)
    if pixels:
        values = values / pixels

    ax.plot(range(len(values)), values, 'b-', linewidth=2)
    ax.set_xlabel('Generation')
    ax.set_ylabel('Fitness per pixel' if pixels else 'Fitness')
    ax.set_title(title)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig


def save_figure(fig: plt.Figure, path: Union[str, Path], dpi: int = 100) -> Path:
    """Save a figure to disk and release it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi)
    plt.close(fig)
    return path
