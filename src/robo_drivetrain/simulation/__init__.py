"""
Simulation components for robo drivetrain.

This module contains the DC motor characterization and the differential
drivetrain physics model used in place of hardware.

Components:
    - DCMotor: Motor constants derived from datasheet values
    - DifferentialDrivetrainSim: Voltage-driven drivetrain dynamics with
      seeded measurement noise

Mathematical Models:
    - Permanent-magnet DC motor electrical/mechanical model
    - Exact zero-order-hold discretization of the wheel dynamics
    - Constant-curvature pose integration
"""

from .motor import DCMotor
from .drivetrain import DifferentialDrivetrainSim

__all__ = [
    "DCMotor",
    "DifferentialDrivetrainSim"
]
