"""
Differential Drivetrain Simulator

This module stands in for the motors, encoders and gyro when no physical
hardware is attached. Given the voltages applied to each side it predicts
wheel positions, wheel velocities and robot heading, with optional
measurement noise drawn from a seeded generator.

Mathematical Framework:
    Per-side wheel velocity dynamics are linear in the applied voltages.
    With gearing G, wheel radius r, mass m, moment of inertia J and half
    track width r_b:

    C1 = -G² Kt / (Kv R r²)
    C2 =  G Kt / (R r)

    A1 = (1/m + r_b²/J) C1      A2 = (1/m - r_b²/J) C1
    B1 = (1/m + r_b²/J) C2      B2 = (1/m - r_b²/J) C2

    d/dt [v_L, v_R] = [[A1, A2], [A2, A1]] [v_L, v_R] + [[B1, B2], [B2, B1]] [V_L, V_R]

    Wheel positions integrate the velocities, so the augmented system
    z = [v_L, v_R, p_L, p_R] is linear and time-invariant. It is discretized
    exactly under a zero-order hold on the inputs:

    exp([[A_c, B_c], [0, 0]] * dt) = [[A_d, B_d], [0, I]]

    Heading and planar position follow from the wheel travel:

    θ  = θ_0 + ((p_R - p_L) - (p_R0 - p_L0)) / track_width
    Δs = (Δp_L + Δp_R) / 2, integrated along a constant-curvature arc

State Vector:
    [x, y, heading, v_L, v_R, p_L, p_R]

Author: Scientific Computing Team
License: MIT
"""

import numpy as np
import scipy.linalg
from typing import Dict, Optional, Sequence, Tuple
import logging
import warnings

from ..geometry import Pose2d, Rotation2d, Twist2d
from .motor import DCMotor

logger = logging.getLogger(__name__)

# State vector indices
X, Y, HEADING, LEFT_VELOCITY, RIGHT_VELOCITY, LEFT_POSITION, RIGHT_POSITION = range(7)
STATE_SIZE = 7


class DifferentialDrivetrainSim:
    """
    Physics model of a two-sided drivetrain driven by DC motors.

    Attributes:
        motor: Motor group driving each side
        gearing: Motor rotations per wheel rotation
        moment_of_inertia: Rotational inertia about the vertical axis (kg·m²)
        mass: Drivetrain mass (kg)
        wheel_radius: Wheel radius (m)
        track_width: Distance between the left and right wheels (m)
        measurement_std_devs: Noise std devs [x, y, heading, vL, vR, pL, pR]
    """

    def __init__(
        self,
        motor: DCMotor,
        gearing: float,
        moment_of_inertia: float,
        mass: float,
        wheel_radius: float,
        track_width: float,
        measurement_std_devs: Optional[Sequence[float]] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize the drivetrain simulator.

        Args:
            motor: Motor group on each side
            gearing: Gear reduction (> 0)
            moment_of_inertia: Yaw moment of inertia (kg·m², > 0)
            mass: Drivetrain mass (kg, > 0)
            wheel_radius: Wheel radius (m, > 0)
            track_width: Track width (m, > 0)
            measurement_std_devs: Seven noise std devs, or None for no noise
            seed: Seed for the measurement noise generator

        Raises:
            ValueError: If any physical parameter is non-positive or the noise
                specification has the wrong shape
        """
        for name, value in (("gearing", gearing), ("moment of inertia", moment_of_inertia),
                            ("mass", mass), ("wheel radius", wheel_radius),
                            ("track width", track_width)):
            if not np.isfinite(value) or value <= 0:
                raise ValueError(f"Drivetrain {name} must be positive, got {value}")

        self.motor = motor
        self.gearing = gearing
        self.moment_of_inertia = moment_of_inertia
        self.mass = mass
        self.wheel_radius = wheel_radius
        self.track_width = track_width

        if measurement_std_devs is None:
            self.measurement_std_devs = np.zeros(STATE_SIZE)
        else:
            self.measurement_std_devs = np.asarray(measurement_std_devs, dtype=float)
            if self.measurement_std_devs.shape != (STATE_SIZE,):
                raise ValueError(
                    f"Measurement std devs must have {STATE_SIZE} elements, "
                    f"got {self.measurement_std_devs.shape}"
                )
            if np.any(self.measurement_std_devs < 0):
                raise ValueError("Measurement std devs must be non-negative")

        self._rng = np.random.default_rng(seed)
        self._a_continuous, self._b_continuous = self._build_plant()
        self._discrete_cache: Dict[float, Tuple[np.ndarray, np.ndarray]] = {}

        self._state = np.zeros(STATE_SIZE)
        self._measurement = np.zeros(STATE_SIZE)
        self._inputs = np.zeros(2)

    def _build_plant(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Build the continuous-time system for z = [vL, vR, pL, pR].

        Returns:
            Tuple of (A, B) with shapes (4, 4) and (4, 2)
        """
        motor = self.motor
        half_track = self.track_width / 2.0

        c1 = -(self.gearing ** 2) * motor.kt / (motor.kv * motor.resistance * self.wheel_radius ** 2)
        c2 = self.gearing * motor.kt / (motor.resistance * self.wheel_radius)

        same_side = 1.0 / self.mass + half_track ** 2 / self.moment_of_inertia
        cross_side = 1.0 / self.mass - half_track ** 2 / self.moment_of_inertia

        a = np.zeros((4, 4))
        a[0:2, 0:2] = [[same_side * c1, cross_side * c1],
                       [cross_side * c1, same_side * c1]]
        a[2, 0] = 1.0
        a[3, 1] = 1.0

        b = np.zeros((4, 2))
        b[0:2, :] = [[same_side * c2, cross_side * c2],
                     [cross_side * c2, same_side * c2]]

        return a, b

    def _discretize(self, dt: float) -> Tuple[np.ndarray, np.ndarray]:
        """Zero-order-hold discretization, cached per time step."""
        cached = self._discrete_cache.get(dt)
        if cached is not None:
            return cached

        block = np.zeros((6, 6))
        block[0:4, 0:4] = self._a_continuous
        block[0:4, 4:6] = self._b_continuous
        phi = scipy.linalg.expm(block * dt)

        discrete = (phi[0:4, 0:4], phi[0:4, 4:6])
        self._discrete_cache[dt] = discrete
        logger.debug(f"Discretized drivetrain plant for dt={dt:.4f}s")
        return discrete

    def set_inputs(self, left_voltage: float, right_voltage: float) -> None:
        """
        Set the voltages applied to each side until the next call.

        Voltages beyond the motor's nominal voltage are clamped, as the
        battery cannot supply more.
        """
        limit = self.motor.nominal_voltage
        self._inputs = np.clip(np.array([left_voltage, right_voltage], dtype=float), -limit, limit)

    def update(self, dt: float) -> None:
        """
        Advance the simulation by one time step.

        Args:
            dt: Time step (s)

        Raises:
            ValueError: If the time step is not positive
        """
        if not np.isfinite(dt) or dt <= 0:
            raise ValueError(f"Time step must be positive, got {dt}")
        if dt > 0.1:
            warnings.warn(f"Large time step {dt:.3f}s may reduce simulation fidelity")

        a_discrete, b_discrete = self._discretize(dt)

        previous = self._state.copy()
        wheels = previous[[LEFT_VELOCITY, RIGHT_VELOCITY, LEFT_POSITION, RIGHT_POSITION]]
        wheels = a_discrete @ wheels + b_discrete @ self._inputs

        left_travel = wheels[2] - previous[LEFT_POSITION]
        right_travel = wheels[3] - previous[RIGHT_POSITION]

        start = Pose2d(previous[X], previous[Y], Rotation2d(previous[HEADING]))
        end = start.exp(Twist2d(
            dx=(left_travel + right_travel) / 2.0,
            dtheta=(right_travel - left_travel) / self.track_width,
        ))

        self._state = np.array([
            end.x, end.y, end.rotation.radians,
            wheels[0], wheels[1], wheels[2], wheels[3],
        ])

        noise = self._rng.normal(0.0, 1.0, STATE_SIZE) * self.measurement_std_devs
        self._measurement = self._state + noise

    def _measured(self, index: int) -> float:
        return float(self._measurement[index])

    @property
    def heading(self) -> Rotation2d:
        return Rotation2d(self._measurement[HEADING])

    @property
    def left_position(self) -> float:
        return self._measured(LEFT_POSITION)

    @property
    def left_velocity(self) -> float:
        return self._measured(LEFT_VELOCITY)

    @property
    def right_position(self) -> float:
        return self._measured(RIGHT_POSITION)

    @property
    def right_velocity(self) -> float:
        return self._measured(RIGHT_VELOCITY)

    @property
    def pose(self) -> Pose2d:
        """True (noise-free) pose of the simulated robot."""
        return Pose2d(float(self._state[X]), float(self._state[Y]), Rotation2d(self._state[HEADING]))

    @property
    def state(self) -> np.ndarray:
        """Copy of the true state [x, y, heading, vL, vR, pL, pR]."""
        return self._state.copy()

    @property
    def inputs(self) -> Tuple[float, float]:
        return float(self._inputs[0]), float(self._inputs[1])

    @property
    def current_draw(self) -> float:
        """Total current drawn by both sides (A)."""
        total = 0.0
        for velocity, voltage in ((self._state[LEFT_VELOCITY], self._inputs[0]),
                                  (self._state[RIGHT_VELOCITY], self._inputs[1])):
            motor_speed = velocity / self.wheel_radius * self.gearing
            # Coasting motors draw no current
            if voltage != 0.0:
                total += abs(self.motor.current(motor_speed, voltage))
        return float(total)

    def max_free_speed(self) -> float:
        """Wheel surface speed at the motor's free speed (m/s)."""
        return self.motor.free_speed / self.gearing * self.wheel_radius

    def reset(self, pose: Optional[Pose2d] = None) -> None:
        """
        Reset to rest at the given pose with zeroed wheel positions.

        Args:
            pose: Starting pose. Defaults to the origin.
        """
        pose = pose or Pose2d()
        self._state = np.array([pose.x, pose.y, pose.rotation.radians, 0.0, 0.0, 0.0, 0.0])
        self._measurement = self._state.copy()
        self._inputs = np.zeros(2)

    def __repr__(self) -> str:
        return (f"DifferentialDrivetrainSim(gearing={self.gearing}, mass={self.mass}kg, "
                f"track_width={self.track_width:.3f}m)")
