"""
Immutable drivetrain configuration.

All gains, conversion factors and physical constants are collected in
frozen dataclasses and passed to constructors, so several drivetrains can
coexist (e.g. in simulation tests) without sharing mutable globals.
"""

import numpy as np
from typing import Tuple
from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class FeedforwardGains:
    """Feedforward model gains."""

    ks: float = 0.1     # Static friction voltage [V]
    kv: float = 2.1     # Velocity gain [V·s/m]
    ka: float = 0.0     # Acceleration gain [V·s²/m]

    def __post_init__(self):
        """Validate feedforward gains."""
        if any(gain < 0 for gain in (self.ks, self.kv, self.ka)):
            raise ValueError("Feedforward gains must be non-negative")


@dataclass(frozen=True)
class PIDGains:
    """Velocity feedback gains."""

    kp: float = 1.0                 # Proportional gain [V·s/m]
    ki: float = 2.0                 # Integral gain [V/m]
    kd: float = 0.0                 # Derivative gain [V·s²/m]
    integrator_range: float = 4.0   # Bound on the integral contribution [V]

    def __post_init__(self):
        """Validate feedback gains."""
        if any(gain < 0 for gain in (self.kp, self.ki, self.kd)):
            raise ValueError("PID gains must be non-negative")
        if self.integrator_range < 0:
            raise ValueError(f"Integrator range must be non-negative, got {self.integrator_range}")


@dataclass(frozen=True)
class DriveConstants:
    """
    Physical and control constants of the drivetrain.

    Raw encoder units are motor rotations and motor RPM; the derived
    ``position_factor`` and ``velocity_factor`` convert them to wheel
    meters and meters/second.
    """

    # Control
    feedforward: FeedforwardGains = field(default_factory=FeedforwardGains)
    pid: PIDGains = field(default_factory=PIDGains)
    max_speed: float = 4.0          # Wheel speed at a normalized command of 1.0 [m/s]
    max_voltage: float = 12.0       # Bus voltage ceiling [V]
    period: float = 0.02            # Control tick period [s]

    # Mechanics
    gearing: float = 8.45           # Motor rotations per wheel rotation
    wheel_radius: float = 0.0762    # [m]
    track_width: float = 0.6        # [m]
    mass: float = 25.0              # [kg]
    moment_of_inertia: float = 2.0  # Yaw inertia [kg·m²]
    motors_per_side: int = 2
    left_inverted: bool = True

    # Simulated measurement noise [x, y, heading, vL, vR, pL, pR]
    measurement_std_devs: Tuple[float, ...] = (0.001, 0.001, 0.001, 0.1, 0.1, 0.005, 0.005)

    def __post_init__(self):
        """Validate drivetrain constants."""
        positive = {
            'max_speed': self.max_speed,
            'max_voltage': self.max_voltage,
            'period': self.period,
            'gearing': self.gearing,
            'wheel_radius': self.wheel_radius,
            'track_width': self.track_width,
            'mass': self.mass,
            'moment_of_inertia': self.moment_of_inertia,
        }
        for name, value in positive.items():
            if not np.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        if self.motors_per_side < 1:
            raise ValueError(f"motors_per_side must be at least 1, got {self.motors_per_side}")
        if len(self.measurement_std_devs) != 7:
            raise ValueError(
                f"measurement_std_devs must have 7 elements, got {len(self.measurement_std_devs)}"
            )
        if any(std < 0 for std in self.measurement_std_devs):
            raise ValueError("measurement_std_devs must be non-negative")

    @property
    def position_factor(self) -> float:
        """Wheel meters per motor rotation."""
        return 2.0 * np.pi * self.wheel_radius / self.gearing

    @property
    def velocity_factor(self) -> float:
        """Wheel meters/second per motor RPM."""
        return self.position_factor / 60.0

    def without_noise(self) -> "DriveConstants":
        """Copy of these constants with simulated measurement noise disabled."""
        return replace(self, measurement_std_devs=(0.0,) * 7)
