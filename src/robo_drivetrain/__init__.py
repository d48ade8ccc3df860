"""
Robo Drivetrain: Closed-Loop Differential Drive Control with Odometry

A Python package for the control core of a differential-drive mobile robot.

This package implements:
- Per-side wheel velocity control (feedforward + PID)
- Differential drive odometry from wheel travel and a heading sensor
- A physics simulation of the drivetrain used when no hardware is attached
- A drivetrain facade selecting real or simulated sensors once at construction

Real and simulated sensors feed the same odometry and control code, so a
drivetrain behaves identically on hardware and in simulation.
"""

from .geometry import Rotation2d, Pose2d, Twist2d, WheelState, DriveSnapshot
from .control import SimpleMotorFeedforward, PIDController, VelocityController
from .sensors import DifferentialDriveOdometry, DrivetrainHardware, WheelSide, SensorReadingError
from .simulation import DCMotor, DifferentialDrivetrainSim
from .drive import Drive, DriveState, DriveConstants, CommandScheduler

__version__ = "1.0.0"
__author__ = "Robo Drivetrain Team"

__all__ = [
    "Rotation2d",
    "Pose2d",
    "Twist2d",
    "WheelState",
    "DriveSnapshot",
    "SimpleMotorFeedforward",
    "PIDController",
    "VelocityController",
    "DifferentialDriveOdometry",
    "DrivetrainHardware",
    "WheelSide",
    "SensorReadingError",
    "DCMotor",
    "DifferentialDrivetrainSim",
    "Drive",
    "DriveState",
    "DriveConstants",
    "CommandScheduler"
]
