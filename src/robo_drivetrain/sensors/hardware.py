"""
Hardware interfaces consumed by the drivetrain.

Motor controller and gyro drivers live outside this package; these
protocols define what the drivetrain needs from them. ``WheelSide`` binds a
leader motor and its followers into one side of the drivetrain and turns
raw encoder units into meters and meters/second.
"""

import numpy as np
from typing import Protocol, Sequence
from dataclasses import dataclass

from ..geometry import Rotation2d, WheelState


class SensorReadingError(ValueError):
    """Raised when a sensor reports a non-finite value."""


class MotorController(Protocol):
    """
    Interface for a motor controller with an integrated encoder.

    Position and velocity are reported in raw encoder units (e.g. motor
    rotations and rotations per minute).
    """

    def set_open_loop(self, duty_cycle: float) -> None:
        """Apply a duty cycle in [-1, 1]."""
        ...

    def set_voltage(self, volts: float) -> None:
        """Apply a voltage, compensated by the controller for bus sag."""
        ...

    def get_position(self) -> float:
        ...

    def get_velocity(self) -> float:
        ...

    def follow(self, leader: "MotorController") -> None:
        """Mirror every output of ``leader`` from now on."""
        ...


class Gyro(Protocol):
    """Interface for a single-axis heading sensor."""

    def reset(self) -> None:
        """Zero the heading."""
        ...

    def get_heading(self) -> Rotation2d:
        ...


class WheelSide:
    """
    One side of the drivetrain: a leader motor plus mechanically slaved followers.

    Followers are bound to the leader once at construction and are never
    commanded directly afterwards.

    Attributes:
        leader: Motor controller that receives commands and owns the encoder
        followers: Motor controllers mirroring the leader
        position_factor: Meters per raw position unit
        velocity_factor: Meters/second per raw velocity unit
        inverted: True if positive motor output drives this side backwards
    """

    def __init__(
        self,
        leader: MotorController,
        followers: Sequence[MotorController] = (),
        position_factor: float = 1.0,
        velocity_factor: float = 1.0,
        inverted: bool = False,
        name: str = ""
    ):
        if position_factor <= 0 or velocity_factor <= 0:
            raise ValueError("Encoder conversion factors must be positive")

        self.leader = leader
        self.followers = list(followers)
        self.position_factor = position_factor
        self.velocity_factor = velocity_factor
        self.inverted = inverted
        self.name = name
        self._sign = -1.0 if inverted else 1.0

        for follower in self.followers:
            follower.follow(leader)

    def set_voltage(self, volts: float) -> None:
        self.leader.set_voltage(self._sign * volts)

    def set_open_loop(self, duty_cycle: float) -> None:
        self.leader.set_open_loop(self._sign * duty_cycle)

    def read(self) -> WheelState:
        """
        Read the side's position and velocity in physical units.

        Raises:
            SensorReadingError: If the encoder reports a non-finite value
        """
        raw_position = self.leader.get_position()
        raw_velocity = self.leader.get_velocity()
        if not (np.isfinite(raw_position) and np.isfinite(raw_velocity)):
            raise SensorReadingError(
                f"{self.name or 'wheel'} encoder reported non-finite reading "
                f"(position={raw_position}, velocity={raw_velocity})"
            )

        return WheelState(
            position=self._sign * raw_position * self.position_factor,
            velocity=self._sign * raw_velocity * self.velocity_factor,
        )


@dataclass
class DrivetrainHardware:
    """
    The physical devices of a drivetrain.

    Passing one of these to the drivetrain selects the real sensor path;
    omitting it selects the simulator.
    """
    left: WheelSide
    right: WheelSide
    gyro: Gyro

    @classmethod
    def from_constants(
        cls,
        constants,
        left_leader: MotorController,
        right_leader: MotorController,
        gyro: Gyro,
        left_followers: Sequence[MotorController] = (),
        right_followers: Sequence[MotorController] = ()
    ) -> "DrivetrainHardware":
        """
        Assemble the drivetrain from motor controllers reporting motor
        rotations and RPM.

        Args:
            constants: DriveConstants providing the encoder conversion
                factors and which side is inverted
            left_leader: Left motor controller owning the encoder
            right_leader: Right motor controller owning the encoder
            gyro: Heading sensor
            left_followers: Left motor controllers slaved to the leader
            right_followers: Right motor controllers slaved to the leader
        """
        left = WheelSide(
            left_leader, left_followers,
            position_factor=constants.position_factor,
            velocity_factor=constants.velocity_factor,
            inverted=constants.left_inverted,
            name="left",
        )
        right = WheelSide(
            right_leader, right_followers,
            position_factor=constants.position_factor,
            velocity_factor=constants.velocity_factor,
            inverted=False,
            name="right",
        )
        return cls(left=left, right=right, gyro=gyro)

    def read_heading(self) -> Rotation2d:
        """
        Read the gyro heading.

        Raises:
            SensorReadingError: If the gyro cannot produce a finite heading
        """
        try:
            heading = self.gyro.get_heading()
        except ValueError as e:
            raise SensorReadingError(f"Gyro reported invalid heading: {e}") from e
        if not isinstance(heading, Rotation2d):
            raise SensorReadingError(f"Gyro reported invalid heading: {heading!r}")
        return heading
