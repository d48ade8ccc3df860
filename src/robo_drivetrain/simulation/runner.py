"""
Closed-loop simulation runs of a simulated drivetrain.

``run_simulation`` drives a simulated ``Drive`` through the command
scheduler for a fixed duration and records every tick, so velocity tracking
and odometry can be analysed or plotted afterwards.
"""

import numpy as np
import logging
from typing import Callable, List, Tuple, Union
from dataclasses import dataclass, field

from ..drive import CommandScheduler, Drive
from ..geometry import Pose2d

logger = logging.getLogger(__name__)

SpeedProfile = Union[float, Callable[[float], float]]


@dataclass
class DriveLog:
    """Per-tick record of a simulation run (one array element per tick)."""

    time: np.ndarray
    x: np.ndarray
    y: np.ndarray
    heading: np.ndarray
    true_x: np.ndarray
    true_y: np.ndarray
    left_setpoint: np.ndarray
    right_setpoint: np.ndarray
    left_velocity: np.ndarray
    right_velocity: np.ndarray
    left_voltage: np.ndarray
    right_voltage: np.ndarray

    def __len__(self) -> int:
        return len(self.time)


@dataclass
class SimulationMetrics:
    """Summary of a simulation run."""

    distance_traveled: float = 0.0
    final_pose: Pose2d = field(default_factory=Pose2d)
    odometry_error: float = 0.0          # Distance between odometry and true pose [m]
    steady_state_error: float = 0.0      # Mean |setpoint - velocity| over the last 20% [m/s]
    max_abs_voltage: float = 0.0


def _as_profile(speed: SpeedProfile) -> Callable[[float], float]:
    if callable(speed):
        return speed
    return lambda t: speed


def run_simulation(
    drive: Drive,
    left_speed: SpeedProfile,
    right_speed: SpeedProfile,
    duration: float
) -> Tuple[DriveLog, SimulationMetrics]:
    """
    Run a simulated drivetrain under closed-loop control.

    Args:
        drive: Simulated drivetrain
        left_speed: Normalized left speed, constant or a function of time
        right_speed: Normalized right speed, constant or a function of time
        duration: Simulated time (s)

    Returns:
        Tuple of (per-tick log, summary metrics)

    Raises:
        ValueError: If the drivetrain is not simulated or duration is not positive
    """
    if not drive.is_simulated:
        raise ValueError("run_simulation requires a simulated drivetrain")
    if duration <= 0:
        raise ValueError(f"Duration must be positive, got {duration}")

    period = drive.constants.period
    steps = int(round(duration / period))
    left_profile = _as_profile(left_speed)
    right_profile = _as_profile(right_speed)

    clock = [0.0]
    scheduler = CommandScheduler()
    scheduler.register(drive)
    scheduler.schedule(drive.drive_command(lambda: left_profile(clock[0]),
                                           lambda: right_profile(clock[0])))

    rows: List[Tuple[float, ...]] = []
    sim = drive.simulation
    max_speed = drive.constants.max_speed

    for step in range(steps):
        clock[0] = step * period
        scheduler.run()

        pose = drive.pose()
        true_pose = sim.pose
        snapshot = drive.last_snapshot
        voltages = drive.last_voltages
        rows.append((
            clock[0] + period,
            pose.x, pose.y, pose.heading,
            true_pose.x, true_pose.y,
            float(np.clip(left_profile(clock[0]), -1.0, 1.0)) * max_speed,
            float(np.clip(right_profile(clock[0]), -1.0, 1.0)) * max_speed,
            snapshot.left.velocity, snapshot.right.velocity,
            voltages.left, voltages.right,
        ))

    columns = np.array(rows).T if rows else np.zeros((12, 0))
    log = DriveLog(*columns)

    logger.info(f"Simulated {steps} ticks ({duration:.2f}s)")
    return log, compute_metrics(log, drive)


def compute_metrics(log: DriveLog, drive: Drive) -> SimulationMetrics:
    """
    Summarize a simulation run.

    Args:
        log: Recorded run
        drive: Drivetrain the run was recorded from

    Returns:
        SimulationMetrics for the run
    """
    if len(log) == 0:
        return SimulationMetrics(final_pose=drive.pose())

    distance = float(np.sum(np.hypot(np.diff(log.true_x), np.diff(log.true_y))))

    tail = slice(int(len(log) * 0.8), None)
    errors = np.concatenate([
        np.abs(log.left_setpoint[tail] - log.left_velocity[tail]),
        np.abs(log.right_setpoint[tail] - log.right_velocity[tail]),
    ])

    final_pose = drive.pose()
    return SimulationMetrics(
        distance_traveled=distance,
        final_pose=final_pose,
        odometry_error=final_pose.distance_to(drive.simulation.pose),
        steady_state_error=float(np.mean(errors)),
        max_abs_voltage=float(np.max(np.abs(np.concatenate([log.left_voltage, log.right_voltage])))),
    )
