"""
Differential drive odometry for planar pose estimation.

This module integrates wheel travel and an absolute heading sensor into a
2D pose. The heading sensor is authoritative: the heading change between
ticks is taken from it, never from the difference in wheel travel.

Mathematical Model:
    Each tick, with left/right wheel positions p_L, p_R and sensor heading θ:

    Δs = ((p_L - p_L_prev) + (p_R - p_R_prev)) / 2     # arc length
    Δθ = (θ + θ_offset) - θ_prev                        # heading change

    The pose is advanced along a constant-curvature arc using the SE(2)
    exponential map, which removes the curvature bias of straight-line
    (Euler) integration:

    pose_new = pose_prev ⊕ exp(Δs, 0, Δθ)

    θ_offset = θ_initial_pose - θ_sensor_at_construction maps the sensor's
    frame onto the world frame.

Drift:
    Errors accumulate without bound; there is no absolute correction source.

References:
    - Siegwart, R., Nourbakhsh, I. R. (2004). Introduction to Autonomous Mobile Robots
    - Thrun, S., Burgard, W., Fox, D. (2005). Probabilistic Robotics
"""

import numpy as np
import logging
from typing import Optional

from ..geometry import DriveSnapshot, Pose2d, Rotation2d, Twist2d

logger = logging.getLogger(__name__)


class DifferentialDriveOdometry:
    """
    Pose estimator for a differential drive robot.

    Attributes:
        pose: Current pose estimate in the world frame
    """

    def __init__(
        self,
        heading: Rotation2d,
        left_position: float,
        right_position: float,
        initial_pose: Optional[Pose2d] = None
    ):
        """
        Initialize odometry at a known pose.

        Args:
            heading: Heading sensor reading at construction
            left_position: Left wheel position at construction (m)
            right_position: Right wheel position at construction (m)
            initial_pose: Pose of the robot at construction. Defaults to origin.

        Raises:
            ValueError: If a wheel position is non-finite
        """
        self.reset_position(initial_pose or Pose2d(), heading, left_position, right_position)

    @staticmethod
    def _validate_positions(left_position: float, right_position: float) -> None:
        if not (np.isfinite(left_position) and np.isfinite(right_position)):
            raise ValueError(
                f"Wheel positions must be finite, got left={left_position}, right={right_position}"
            )

    def reset_position(
        self,
        pose: Pose2d,
        heading: Rotation2d,
        left_position: float,
        right_position: float
    ) -> None:
        """
        Reset the pose estimate.

        This is an explicit external action; the periodic update never calls it.

        Args:
            pose: New pose of the robot
            heading: Current heading sensor reading
            left_position: Current left wheel position (m)
            right_position: Current right wheel position (m)
        """
        self._validate_positions(left_position, right_position)

        self._pose = pose
        self._previous_angle = pose.rotation
        self._heading_offset = pose.rotation - heading
        self._previous_left = float(left_position)
        self._previous_right = float(right_position)

        logger.debug(f"Odometry reset to x={pose.x:.3f}, y={pose.y:.3f}, "
                     f"heading={pose.rotation.degrees:.1f}deg")

    def update(self, heading: Rotation2d, left_position: float, right_position: float) -> Pose2d:
        """
        Advance the pose estimate with one tick of sensor readings.

        Args:
            heading: Absolute heading sensor reading
            left_position: Absolute left wheel position (m)
            right_position: Absolute right wheel position (m)

        Returns:
            Updated pose estimate

        Raises:
            ValueError: If a wheel position is non-finite
        """
        self._validate_positions(left_position, right_position)

        delta_left = left_position - self._previous_left
        delta_right = right_position - self._previous_right

        self._previous_left = float(left_position)
        self._previous_right = float(right_position)

        angle = heading + self._heading_offset
        twist = Twist2d(
            dx=(delta_left + delta_right) / 2.0,
            dy=0.0,
            dtheta=(angle - self._previous_angle).radians,
        )

        # Trust the sensor heading exactly rather than the integrated one
        self._pose = self._pose.exp(twist).with_rotation(angle)
        self._previous_angle = angle

        return self._pose

    def update_snapshot(self, snapshot: DriveSnapshot) -> Pose2d:
        """Advance the pose estimate from a drivetrain snapshot."""
        return self.update(snapshot.heading, snapshot.left.position, snapshot.right.position)

    @property
    def pose(self) -> Pose2d:
        return self._pose

    def __repr__(self) -> str:
        return (f"DifferentialDriveOdometry(x={self._pose.x:.3f}, y={self._pose.y:.3f}, "
                f"heading={self._pose.rotation.degrees:.1f}deg)")
