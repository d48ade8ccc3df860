"""
Visualization components for robo drivetrain simulation runs.
"""

from .plotter import plot_drive_log

__all__ = [
    "plot_drive_log"
]
