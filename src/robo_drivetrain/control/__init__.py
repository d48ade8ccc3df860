"""
Velocity control for robo drivetrain.

This module contains the feedforward model, the discrete PID controller and
the per-side velocity controller that combines them.
"""

from .feedforward import SimpleMotorFeedforward
from .pid import PIDController
from .velocity import VelocityController

__all__ = [
    "SimpleMotorFeedforward",
    "PIDController",
    "VelocityController"
]
