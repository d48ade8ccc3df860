"""
Drivetrain facade: closed-loop wheel velocity control plus odometry.

The facade owns both velocity controllers, the odometry and the motion
source. Per tick the host first applies a command (``drive`` or
``drive_open_loop``), then calls ``periodic`` which advances the motion
source and updates the pose.

State Machine:
    IDLE    -> DRIVING   on any drive command
    DRIVING -> DRIVING   while a command arrives every tick
    DRIVING -> IDLE      when a tick passes without a command, or on stop()

    Leaving IDLE resets both velocity controllers so integral state from a
    previous drive never carries over. A tick without a command stops the
    motors rather than letting the last output persist.

Thread Safety:
    All public operations hold one re-entrant lock. Poses are immutable, so
    pose() always returns a consistent snapshot.
"""

import numpy as np
import threading
import logging
from typing import Callable, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

from ..control import PIDController, SimpleMotorFeedforward, VelocityController
from ..geometry import DriveSnapshot, Pose2d
from ..sensors import (DifferentialDriveOdometry, DrivetrainHardware, SensorHealth,
                       SensorReadingError, select_motion_source)
from .command import RunCommand
from .constants import DriveConstants

logger = logging.getLogger(__name__)


class DriveState(Enum):
    """Drivetrain activity states."""
    IDLE = "idle"
    DRIVING = "driving"


@dataclass(frozen=True)
class VoltageCommand:
    """Voltages sent to each side for one tick (volts)."""
    left: float = 0.0
    right: float = 0.0


class Drive:
    """
    Differential drivetrain with per-side velocity control and odometry.

    Attributes:
        constants: Gains, conversion factors and physical constants
        sensor_health: Accepted/rejected sensor reading statistics
    """

    def __init__(
        self,
        constants: Optional[DriveConstants] = None,
        hardware: Optional[DrivetrainHardware] = None,
        initial_pose: Optional[Pose2d] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize the drivetrain.

        Args:
            constants: Drivetrain configuration. Defaults to DriveConstants().
            hardware: Physical devices. When None the drivetrain is simulated.
            initial_pose: Starting pose. Defaults to the origin.
            seed: Seed for simulated measurement noise

        Raises:
            SensorReadingError: If the hardware cannot be read at construction
        """
        self.constants = constants or DriveConstants()
        self._lock = threading.RLock()

        self._source = select_motion_source(hardware, self.constants, seed)
        if self._source.is_simulated and initial_pose is not None:
            self._source.sim.reset(initial_pose)

        self._left_controller = self._build_controller("left")
        self._right_controller = self._build_controller("right")

        self.sensor_health = SensorHealth()

        snapshot = self._source.snapshot()
        self._odometry = DifferentialDriveOdometry(
            snapshot.heading, snapshot.left.position, snapshot.right.position, initial_pose
        )
        self._last_snapshot = snapshot

        self._state = DriveState.IDLE
        self._closed_loop = False
        self._commanded_since_tick = False
        self._last_voltages = VoltageCommand()

        logger.info(f"Drivetrain initialized ({'simulated' if self.is_simulated else 'real'})")

    def _build_controller(self, name: str) -> VelocityController:
        ff = self.constants.feedforward
        gains = self.constants.pid
        return VelocityController(
            SimpleMotorFeedforward(ff.ks, ff.kv, ff.ka),
            PIDController(gains.kp, gains.ki, gains.kd, self.constants.period,
                          integrator_range=gains.integrator_range),
            name=name,
        )

    def _reset_controllers(self) -> None:
        self._left_controller.reset()
        self._right_controller.reset()

    def drive(self, left_speed: float, right_speed: float) -> VoltageCommand:
        """
        Drive both sides at normalized speeds under closed-loop control.

        Args:
            left_speed: Left speed in [-1, 1], scaled by max_speed
            right_speed: Right speed in [-1, 1], scaled by max_speed

        Returns:
            Voltages forwarded to the motion source (clamped to max_voltage)
        """
        with self._lock:
            if self._state is DriveState.IDLE or not self._closed_loop:
                self._reset_controllers()

            left_target = float(np.clip(left_speed, -1.0, 1.0)) * self.constants.max_speed
            right_target = float(np.clip(right_speed, -1.0, 1.0)) * self.constants.max_speed

            left_volts = self._left_controller.calculate(left_target, self._last_snapshot.left.velocity)
            right_volts = self._right_controller.calculate(right_target, self._last_snapshot.right.velocity)

            limit = self.constants.max_voltage
            command = VoltageCommand(
                left=float(np.clip(left_volts, -limit, limit)),
                right=float(np.clip(right_volts, -limit, limit)),
            )
            self._source.apply_voltages(command.left, command.right)

            self._last_voltages = command
            self._closed_loop = True
            self._mark_driving()
            return command

    def drive_open_loop(self, left_duty: float, right_duty: float) -> None:
        """
        Drive both sides with duty cycles, bypassing the velocity controllers.

        Args:
            left_duty: Left duty cycle, clamped to [-1, 1]
            right_duty: Right duty cycle, clamped to [-1, 1]
        """
        with self._lock:
            left = float(np.clip(left_duty, -1.0, 1.0))
            right = float(np.clip(right_duty, -1.0, 1.0))
            self._source.apply_open_loop(left, right)

            self._last_voltages = VoltageCommand(left * self.constants.max_voltage,
                                                 right * self.constants.max_voltage)
            self._closed_loop = False
            self._mark_driving()

    def _mark_driving(self) -> None:
        if self._state is DriveState.IDLE:
            logger.debug("Drivetrain IDLE -> DRIVING")
        self._state = DriveState.DRIVING
        self._commanded_since_tick = True

    def stop(self) -> None:
        """Command zero output and return to IDLE."""
        with self._lock:
            self._halt()

    def _halt(self) -> None:
        self._source.apply_voltages(0.0, 0.0)
        self._last_voltages = VoltageCommand()
        if self._state is DriveState.DRIVING:
            logger.debug("Drivetrain DRIVING -> IDLE")
        self._state = DriveState.IDLE
        self._closed_loop = False
        self._reset_controllers()

    def periodic(self) -> Pose2d:
        """
        Advance one control tick: update the motion source and the pose.

        A tick without a new command stops the drivetrain. A rejected sensor
        reading leaves the pose unchanged for this tick.

        Returns:
            Pose after this tick
        """
        with self._lock:
            if self._state is DriveState.DRIVING and not self._commanded_since_tick:
                self._halt()
            self._commanded_since_tick = False

            self._source.update(self.constants.period)

            try:
                snapshot = self._source.snapshot()
            except SensorReadingError as e:
                self.sensor_health.record_failure()
                logger.warning(f"Sensor reading rejected, pose not updated: {e}")
                return self._odometry.pose

            self.sensor_health.record_success()
            self._last_snapshot = snapshot
            return self._odometry.update_snapshot(snapshot)

    def pose(self) -> Pose2d:
        """Current pose estimate."""
        with self._lock:
            return self._odometry.pose

    def reset_pose(self, pose: Pose2d) -> None:
        """
        Reset the pose estimate (and the simulated robot, if simulated).

        The odometry is re-based on a fresh reading, so wheel travel since the
        last tick is not added to the new pose.

        Args:
            pose: New pose

        Raises:
            SensorReadingError: If the sensors cannot be read. The pose
                estimate is left unchanged.
        """
        with self._lock:
            if self._source.is_simulated:
                self._source.sim.reset(pose)

            try:
                snapshot = self._source.snapshot()
            except SensorReadingError as e:
                self.sensor_health.record_failure()
                logger.warning(f"Sensor reading rejected, pose not reset: {e}")
                raise

            self.sensor_health.record_success()
            self._last_snapshot = snapshot
            self._odometry.reset_position(pose, snapshot.heading,
                                          snapshot.left.position, snapshot.right.position)
            logger.info(f"Pose reset to x={pose.x:.3f}, y={pose.y:.3f}, "
                        f"heading={pose.rotation.degrees:.1f}deg")

    def drive_command(self, left_speed: Callable[[], float],
                      right_speed: Callable[[], float]) -> RunCommand:
        """
        Command that samples both speed suppliers and drives every tick.

        Args:
            left_speed: Supplier of the normalized left speed
            right_speed: Supplier of the normalized right speed
        """
        return RunCommand(lambda: self.drive(left_speed(), right_speed()), name="drive")

    @property
    def state(self) -> DriveState:
        return self._state

    @property
    def is_simulated(self) -> bool:
        return self._source.is_simulated

    @property
    def simulation(self):
        """The drivetrain simulator, or None when running on hardware."""
        return getattr(self._source, "sim", None)

    @property
    def last_voltages(self) -> VoltageCommand:
        return self._last_voltages

    @property
    def last_snapshot(self) -> DriveSnapshot:
        return self._last_snapshot

    @property
    def controllers(self) -> Tuple[VelocityController, VelocityController]:
        return self._left_controller, self._right_controller

    def __repr__(self) -> str:
        pose = self._odometry.pose
        return (f"Drive(state={self._state.value}, simulated={self.is_simulated}, "
                f"pose=({pose.x:.3f}, {pose.y:.3f}, {pose.rotation.degrees:.1f}deg))")
