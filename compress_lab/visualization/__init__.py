"""Visualization utilities for the compression experiments."""

from .plots import (
    plot_training_cost,
    plot_fitness_trajectory,
    save_figure,
)

__all__ = [
    'plot_training_cost',
    'plot_fitness_trajectory',
    'save_figure',
]
