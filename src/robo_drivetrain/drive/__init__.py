"""
Drivetrain facade for robo drivetrain.

This module contains the drivetrain configuration, the facade that runs the
velocity loops and odometry each tick, and the command scheduling surface
used by the host loop.
"""

from .constants import DriveConstants, FeedforwardGains, PIDGains
from .command import RunCommand, CommandScheduler
from .drivetrain import Drive, DriveState, VoltageCommand

__all__ = [
    "DriveConstants",
    "FeedforwardGains",
    "PIDGains",
    "RunCommand",
    "CommandScheduler",
    "Drive",
    "DriveState",
    "VoltageCommand"
]
