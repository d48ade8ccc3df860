"""
Sensor modules for robo drivetrain.

This module contains the hardware interfaces, the real and simulated motion
sources, sensor health bookkeeping and the differential drive odometry.
"""

from .hardware import SensorReadingError, MotorController, Gyro, WheelSide, DrivetrainHardware
from .health import SensorHealth
from .odometry import DifferentialDriveOdometry
from .source import MotionSource, RealSource, SimulatedSource, build_drivetrain_sim, select_motion_source

__all__ = [
    "SensorReadingError",
    "MotorController",
    "Gyro",
    "WheelSide",
    "DrivetrainHardware",
    "SensorHealth",
    "DifferentialDriveOdometry",
    "MotionSource",
    "RealSource",
    "SimulatedSource",
    "build_drivetrain_sim",
    "select_motion_source"
]
