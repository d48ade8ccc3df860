"""
Per-side wheel velocity controller.

Combines the feedforward model with PID feedback:

    V = V_ff(v_cmd) + PID(v_meas, v_cmd)

The output is not clamped here; the drivetrain clamps to the bus voltage
before forwarding to an actuator or the simulator.
"""

import logging

from .feedforward import SimpleMotorFeedforward
from .pid import PIDController

logger = logging.getLogger(__name__)


class VelocityController:
    """
    Feedforward plus PID velocity loop for one wheel side.

    Attributes:
        feedforward: Open-loop voltage model
        pid: Closed-loop correction on the velocity error
        name: Label used in diagnostics ("left" / "right")
    """

    def __init__(self, feedforward: SimpleMotorFeedforward, pid: PIDController, name: str = ""):
        self.feedforward = feedforward
        self.pid = pid
        self.name = name
        self._last_output = 0.0

    def calculate(self, commanded_velocity: float, measured_velocity: float) -> float:
        """
        Compute the voltage that should drive the wheel to the commanded velocity.

        Args:
            commanded_velocity: Target wheel velocity (m/s)
            measured_velocity: Current wheel velocity (m/s)

        Returns:
            Signed voltage command (unclamped)
        """
        feedforward_volts = self.feedforward.calculate(commanded_velocity)
        feedback_volts = self.pid.calculate(measured_velocity, commanded_velocity)

        self._last_output = feedforward_volts + feedback_volts
        return self._last_output

    def reset(self) -> None:
        """Clear the feedback state, e.g. when the drivetrain is re-enabled."""
        self.pid.reset()
        self._last_output = 0.0
        logger.debug(f"{self.name or 'velocity'} controller reset")

    @property
    def last_output(self) -> float:
        return self._last_output

    def __repr__(self) -> str:
        return f"VelocityController(name={self.name!r}, {self.feedforward!r})"
