"""
Planar geometry types for robo drivetrain.

Headings, poses, arc twists and wheel readings shared by the controller,
odometry and simulator.
"""

from .pose import Rotation2d, Pose2d, Twist2d, WheelState, DriveSnapshot

__all__ = [
    "Rotation2d",
    "Pose2d",
    "Twist2d",
    "WheelState",
    "DriveSnapshot"
]
