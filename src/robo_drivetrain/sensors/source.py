"""
Motion sources: where the drivetrain's wheel and heading readings come from.

Exactly one source feeds the odometry and the velocity feedback. With
hardware attached it is ``RealSource`` (encoders and gyro); without it is
``SimulatedSource`` (the drivetrain physics model). Both produce the same
``DriveSnapshot``, so everything downstream runs the same code path.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..geometry import DriveSnapshot, WheelState
from ..simulation import DCMotor, DifferentialDrivetrainSim
from .hardware import DrivetrainHardware

logger = logging.getLogger(__name__)


class MotionSource(ABC):
    """Actuator sink and sensor source for one drivetrain."""

    is_simulated: bool = False

    @abstractmethod
    def apply_voltages(self, left_volts: float, right_volts: float) -> None:
        """Forward closed-loop voltage commands to the actuators."""

    @abstractmethod
    def apply_open_loop(self, left_duty: float, right_duty: float) -> None:
        """Forward duty cycles in [-1, 1] to the actuators."""

    def update(self, dt: float) -> None:
        """Advance the source by one tick. Physical sensors need nothing."""

    @abstractmethod
    def snapshot(self) -> DriveSnapshot:
        """Read wheel states and heading for the current tick."""


class RealSource(MotionSource):
    """Physical motors, encoders and gyro."""

    is_simulated = False

    def __init__(self, hardware: DrivetrainHardware):
        self.hardware = hardware
        self.hardware.gyro.reset()

    def apply_voltages(self, left_volts: float, right_volts: float) -> None:
        self.hardware.left.set_voltage(left_volts)
        self.hardware.right.set_voltage(right_volts)

    def apply_open_loop(self, left_duty: float, right_duty: float) -> None:
        self.hardware.left.set_open_loop(left_duty)
        self.hardware.right.set_open_loop(right_duty)

    def snapshot(self) -> DriveSnapshot:
        """
        Read the encoders and gyro.

        Raises:
            SensorReadingError: If any device reports a non-finite value
        """
        return DriveSnapshot(
            left=self.hardware.left.read(),
            right=self.hardware.right.read(),
            heading=self.hardware.read_heading(),
        )


class SimulatedSource(MotionSource):
    """Drivetrain physics model standing in for the hardware."""

    is_simulated = True

    def __init__(self, sim: DifferentialDrivetrainSim, bus_voltage: Optional[float] = None):
        self.sim = sim
        # Voltage a duty cycle of 1.0 corresponds to
        self.bus_voltage = bus_voltage if bus_voltage is not None else sim.motor.nominal_voltage

    def apply_voltages(self, left_volts: float, right_volts: float) -> None:
        self.sim.set_inputs(left_volts, right_volts)

    def apply_open_loop(self, left_duty: float, right_duty: float) -> None:
        self.sim.set_inputs(left_duty * self.bus_voltage, right_duty * self.bus_voltage)

    def update(self, dt: float) -> None:
        self.sim.update(dt)

    def snapshot(self) -> DriveSnapshot:
        return DriveSnapshot(
            left=WheelState(self.sim.left_position, self.sim.left_velocity),
            right=WheelState(self.sim.right_position, self.sim.right_velocity),
            heading=self.sim.heading,
        )


def build_drivetrain_sim(constants, seed: Optional[int] = None) -> DifferentialDrivetrainSim:
    """
    Build the simulator described by a set of drivetrain constants.

    Args:
        constants: DriveConstants describing the mechanics and noise
        seed: Seed for the measurement noise generator

    Returns:
        Configured simulator at rest at the origin
    """
    return DifferentialDrivetrainSim(
        motor=DCMotor.mini_cim(constants.motors_per_side),
        gearing=constants.gearing,
        moment_of_inertia=constants.moment_of_inertia,
        mass=constants.mass,
        wheel_radius=constants.wheel_radius,
        track_width=constants.track_width,
        measurement_std_devs=constants.measurement_std_devs,
        seed=seed,
    )


def select_motion_source(
    hardware: Optional[DrivetrainHardware],
    constants,
    seed: Optional[int] = None
) -> MotionSource:
    """
    Choose the motion source once, at construction time.

    Args:
        hardware: Physical devices, or None when running without hardware
        constants: DriveConstants used to build the simulator
        seed: Seed for simulated measurement noise

    Returns:
        RealSource if hardware is present, SimulatedSource otherwise
    """
    if hardware is not None:
        logger.info("Drivetrain hardware present, using physical sensors")
        return RealSource(hardware)

    logger.info("No drivetrain hardware present, using drivetrain simulation")
    return SimulatedSource(build_drivetrain_sim(constants, seed), bus_voltage=constants.max_voltage)
