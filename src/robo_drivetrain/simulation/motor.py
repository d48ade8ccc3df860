"""
Brushed/brushless DC motor characterization for drivetrain simulation.

Mathematical Model:
    A permanent-magnet DC motor obeys

    V = I * R + ω / Kv
    τ = Kt * I

    Where:
    - R  = V_nominal / I_stall                     (winding resistance, Ω)
    - Kv = ω_free / (V_nominal - R * I_free)       (rad/s per volt)
    - Kt = τ_stall / I_stall                       (N·m per amp)

    Ganged motors on one gearbox add their stall torque and currents while
    sharing the free speed.
"""

import numpy as np
from dataclasses import dataclass


def rpm_to_rad_per_sec(rpm: float) -> float:
    return rpm * 2.0 * np.pi / 60.0


@dataclass(frozen=True)
class DCMotor:
    """
    Characterization of one or more identical motors driving a gearbox.

    Attributes:
        nominal_voltage: Voltage at which the datasheet values are measured (V)
        stall_torque: Stall torque of the group (N·m)
        stall_current: Stall current of the group (A)
        free_current: Free-running current of the group (A)
        free_speed: Free speed (rad/s)
        count: Number of motors in the group
    """
    nominal_voltage: float
    stall_torque: float
    stall_current: float
    free_current: float
    free_speed: float
    count: int = 1

    def __post_init__(self):
        """Validate motor parameters."""
        if self.nominal_voltage <= 0:
            raise ValueError(f"Nominal voltage must be positive, got {self.nominal_voltage}")
        if self.stall_torque <= 0 or self.stall_current <= 0:
            raise ValueError("Stall torque and stall current must be positive")
        if self.free_current < 0 or self.free_current >= self.stall_current:
            raise ValueError(f"Free current must be in [0, stall current), got {self.free_current}")
        if self.free_speed <= 0:
            raise ValueError(f"Free speed must be positive, got {self.free_speed}")
        if self.count < 1:
            raise ValueError(f"Motor count must be at least 1, got {self.count}")

    @classmethod
    def _ganged(cls, count: int, nominal_voltage: float, stall_torque: float,
                stall_current: float, free_current: float, free_speed_rpm: float) -> "DCMotor":
        return cls(
            nominal_voltage=nominal_voltage,
            stall_torque=stall_torque * count,
            stall_current=stall_current * count,
            free_current=free_current * count,
            free_speed=rpm_to_rad_per_sec(free_speed_rpm),
            count=count,
        )

    @classmethod
    def mini_cim(cls, count: int = 1) -> "DCMotor":
        return cls._ganged(count, 12.0, 1.41, 89.0, 3.0, 5840.0)

    @classmethod
    def cim(cls, count: int = 1) -> "DCMotor":
        return cls._ganged(count, 12.0, 2.42, 133.0, 2.7, 5310.0)

    @classmethod
    def neo(cls, count: int = 1) -> "DCMotor":
        return cls._ganged(count, 12.0, 2.6, 105.0, 1.8, 5676.0)

    @property
    def resistance(self) -> float:
        return self.nominal_voltage / self.stall_current

    @property
    def kv(self) -> float:
        """Speed constant in rad/s per volt."""
        return self.free_speed / (self.nominal_voltage - self.resistance * self.free_current)

    @property
    def kt(self) -> float:
        """Torque constant in N·m per amp."""
        return self.stall_torque / self.stall_current

    def current(self, speed: float, voltage: float) -> float:
        """
        Current drawn at a given shaft speed and applied voltage.

        Args:
            speed: Motor shaft speed (rad/s)
            voltage: Applied voltage (V)

        Returns:
            Current in amps (signed)
        """
        return (voltage - speed / self.kv) / self.resistance

    def torque(self, current: float) -> float:
        return current * self.kt
