"""
Plots for drivetrain simulation runs.

Classes/Functions:
    plot_drive_log: Trajectory, velocity tracking and voltage panels for a run

Author: Scientific Computing Team
License: MIT
"""

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.gridspec as gridspec
from typing import Optional
import logging

from ..simulation.runner import DriveLog

logger = logging.getLogger(__name__)


def plot_drive_log(
    log: DriveLog,
    save_path: Optional[str] = None,
    show: bool = False,
    title: str = "Drivetrain simulation"
) -> plt.Figure:
    """
    Plot a recorded simulation run.

    Layout:
        Left column: odometry vs. true XY trajectory (equal aspect)
        Right column: commanded vs. measured wheel velocity, applied voltages

    Args:
        log: Recorded run
        save_path: File to save the figure to, if given
        show: Call plt.show() after drawing
        title: Figure title

    Returns:
        The matplotlib figure
    """
    fig = plt.figure(figsize=(12, 7))
    grid = gridspec.GridSpec(2, 2, figure=fig, width_ratios=[1.2, 1.0])

    ax_path = fig.add_subplot(grid[:, 0])
    ax_path.plot(log.true_x, log.true_y, color="0.6", linewidth=3, label="True path")
    ax_path.plot(log.x, log.y, color="tab:blue", linewidth=1.2, label="Odometry")
    if len(log):
        ax_path.plot(log.x[-1], log.y[-1], marker="o", color="tab:blue")
        # Heading arrow at the final pose
        ax_path.quiver(log.x[-1], log.y[-1], np.cos(log.heading[-1]), np.sin(log.heading[-1]),
                       color="tab:red", scale=15, width=0.006)
    ax_path.set_xlabel("x [m]")
    ax_path.set_ylabel("y [m]")
    ax_path.set_aspect("equal", adjustable="datalim")
    ax_path.grid(True, alpha=0.3)
    ax_path.legend(loc="best")

    ax_velocity = fig.add_subplot(grid[0, 1])
    ax_velocity.plot(log.time, log.left_setpoint, "--", color="tab:green", label="Left setpoint")
    ax_velocity.plot(log.time, log.left_velocity, color="tab:green", alpha=0.8, label="Left measured")
    ax_velocity.plot(log.time, log.right_setpoint, "--", color="tab:purple", label="Right setpoint")
    ax_velocity.plot(log.time, log.right_velocity, color="tab:purple", alpha=0.8, label="Right measured")
    ax_velocity.set_ylabel("Wheel velocity [m/s]")
    ax_velocity.grid(True, alpha=0.3)
    ax_velocity.legend(loc="lower right", fontsize=8)

    ax_voltage = fig.add_subplot(grid[1, 1], sharex=ax_velocity)
    ax_voltage.plot(log.time, log.left_voltage, color="tab:green", label="Left")
    ax_voltage.plot(log.time, log.right_voltage, color="tab:purple", label="Right")
    ax_voltage.set_xlabel("Time [s]")
    ax_voltage.set_ylabel("Voltage [V]")
    ax_voltage.grid(True, alpha=0.3)
    ax_voltage.legend(loc="lower right", fontsize=8)

    fig.suptitle(title)
    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=120)
        logger.info(f"Saved plot to {save_path}")
    if show:
        plt.show()

    return fig
