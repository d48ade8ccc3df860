"""
Open-loop feedforward model for a permanent-magnet DC motor drivetrain.

Mathematical Model:
    The steady-state voltage required to hold a wheel at velocity v while
    accelerating at a is affine in v and a:

    V_ff = kS * sign(v) + kV * v + kA * a

    Where:
    - kS: static friction voltage (V)
    - kV: velocity gain (V per m/s)
    - kA: acceleration gain (V per m/s²)

    sign(0) = 0, so a zero demand never produces a static-friction term.
"""

import numpy as np


class SimpleMotorFeedforward:
    """
    Static friction plus linear velocity/acceleration feedforward.

    Attributes:
        ks: Static friction gain (volts)
        kv: Velocity gain (volts per meter/second)
        ka: Acceleration gain (volts per meter/second²)
    """

    def __init__(self, ks: float, kv: float, ka: float = 0.0):
        """
        Initialize the feedforward model.

        Args:
            ks: Static friction gain (V), must be non-negative
            kv: Velocity gain (V·s/m), must be non-negative
            ka: Acceleration gain (V·s²/m), must be non-negative

        Raises:
            ValueError: If any gain is negative or non-finite
        """
        for name, value in (("ks", ks), ("kv", kv), ("ka", ka)):
            if not np.isfinite(value) or value < 0:
                raise ValueError(f"Feedforward gain {name} must be finite and non-negative, got {value}")

        self.ks = ks
        self.kv = kv
        self.ka = ka

    def calculate(self, velocity: float, acceleration: float = 0.0) -> float:
        """
        Compute the feedforward voltage for a velocity setpoint.

        Args:
            velocity: Commanded velocity (m/s)
            acceleration: Commanded acceleration (m/s²)

        Returns:
            Feedforward voltage; exactly 0.0 when both inputs are zero
        """
        return float(self.ks * np.sign(velocity) + self.kv * velocity + self.ka * acceleration)

    def max_achievable_velocity(self, max_voltage: float, acceleration: float = 0.0) -> float:
        """Largest steady velocity reachable with ``max_voltage`` available."""
        if self.kv == 0:
            return float("inf")
        return (max_voltage - self.ks - self.ka * acceleration) / self.kv

    def __repr__(self) -> str:
        return f"SimpleMotorFeedforward(ks={self.ks}, kv={self.kv}, ka={self.ka})"
