"""
Discrete PID controller for wheel velocity feedback.

Mathematical Model:
    e[k] = r[k] - y[k]
    I[k] = I[k-1] + e[k] * T
    D[k] = (e[k] - e[k-1]) / T
    u[k] = kP * e[k] + kI * I[k] + kD * D[k]

    Where T is the fixed controller period. The derivative term is zero on
    the first sample after construction or reset so that a fresh setpoint
    does not produce a derivative kick.

Anti-windup:
    When an integrator range is configured, kI * I[k] is clamped to
    [-integrator_range, +integrator_range].
"""

import numpy as np
from typing import Dict, Optional


class PIDController:
    """
    Fixed-period PID controller with resettable state.

    Each instance owns its accumulated error terms; instances are never
    shared between wheel sides.

    Attributes:
        kp: Proportional gain
        ki: Integral gain
        kd: Derivative gain
        period: Controller period in seconds
        integrator_range: Optional bound on the integral contribution
    """

    def __init__(
        self,
        kp: float,
        ki: float,
        kd: float,
        period: float = 0.02,
        integrator_range: Optional[float] = None
    ):
        """
        Initialize the PID controller.

        Args:
            kp: Proportional gain
            ki: Integral gain
            kd: Derivative gain
            period: Controller period (s), must be positive
            integrator_range: Symmetric bound on kI * integral, or None

        Raises:
            ValueError: If the period or integrator range is invalid
        """
        if period <= 0:
            raise ValueError(f"Controller period must be positive, got {period}")
        if integrator_range is not None and integrator_range < 0:
            raise ValueError(f"Integrator range must be non-negative, got {integrator_range}")

        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.period = period
        self.integrator_range = integrator_range

        self.reset()

    def set_gains(self, kp: float, ki: float, kd: float) -> None:
        """Update controller gains and clear accumulated state."""
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.reset()

    def reset(self) -> None:
        """Clear the integral and previous error."""
        self._integral = 0.0
        self._previous_error = 0.0
        self._position_error = 0.0
        self._velocity_error = 0.0
        self._has_measurement = False

    def calculate(self, measurement: float, setpoint: float) -> float:
        """
        Run one controller step.

        Args:
            measurement: Current process value
            setpoint: Desired process value

        Returns:
            Controller output
        """
        error = setpoint - measurement

        if self._has_measurement:
            self._velocity_error = (error - self._previous_error) / self.period
        else:
            self._velocity_error = 0.0

        self._integral += error * self.period
        if self.integrator_range is not None and self.ki != 0:
            bound = self.integrator_range / abs(self.ki)
            self._integral = float(np.clip(self._integral, -bound, bound))

        self._position_error = error
        self._previous_error = error
        self._has_measurement = True

        return self.kp * error + self.ki * self._integral + self.kd * self._velocity_error

    @property
    def position_error(self) -> float:
        """Most recent error (setpoint - measurement)."""
        return self._position_error

    @property
    def velocity_error(self) -> float:
        """Most recent error rate."""
        return self._velocity_error

    @property
    def integral(self) -> float:
        return self._integral

    def at_setpoint(self, tolerance: float) -> bool:
        return self._has_measurement and abs(self._position_error) <= tolerance

    def get_state(self) -> Dict[str, float]:
        """Get the current controller state."""
        return {
            'kp': self.kp,
            'ki': self.ki,
            'kd': self.kd,
            'integral': self._integral,
            'previous_error': self._previous_error
        }
