"""
Planar geometry primitives for differential drive pose estimation.

This module provides the immutable value types shared by the controller,
odometry and simulator: headings, poses, arc twists and per-side wheel
readings.

Mathematical Model:
    A heading is stored as an angle in [-π, π] together with its cosine
    and sine, so composition and difference never accumulate wrap-around:

    θ_a ⊕ θ_b = atan2(sin θ_a cos θ_b + cos θ_a sin θ_b,
                      cos θ_a cos θ_b - sin θ_a sin θ_b)

    A twist (dx, dy, dθ) applied to a pose follows the SE(2) exponential
    map, i.e. the robot is assumed to travel along a constant-curvature arc:

    s = sin(dθ)/dθ,   c = (1 - cos(dθ))/dθ
    Δx_body = dx * s - dy * c
    Δy_body = dx * c + dy * s

References:
    - Lynch, K. M., Park, F. C. (2017). Modern Robotics, Chapter 3
    - Thrun, S., Burgard, W., Fox, D. (2005). Probabilistic Robotics
"""

import numpy as np
from typing import Tuple
from dataclasses import dataclass, field


# Below this rotation the Taylor expansion of the exponential map is used
_SMALL_ANGLE = 1e-9


def _require_finite(name: str, *values: float) -> None:
    if not np.all(np.isfinite(values)):
        raise ValueError(f"{name} must be finite, got {values}")


class Rotation2d:
    """
    Normalized planar heading.

    Rotations compose with ``+``, subtract with ``-`` and compare by value.
    The stored angle is always wrapped into [-π, π].
    """

    __slots__ = ("_radians", "_cos", "_sin")

    def __init__(self, radians: float = 0.0):
        _require_finite("Rotation angle", radians)
        self._cos = float(np.cos(radians))
        self._sin = float(np.sin(radians))
        self._radians = float(np.arctan2(self._sin, self._cos))

    @classmethod
    def from_degrees(cls, degrees: float) -> "Rotation2d":
        return cls(np.radians(degrees))

    @classmethod
    def from_components(cls, x: float, y: float) -> "Rotation2d":
        """Build a rotation from a (not necessarily unit) direction vector."""
        if np.hypot(x, y) < 1e-12:
            raise ValueError("Cannot build a rotation from a zero-length vector")
        return cls(np.arctan2(y, x))

    @property
    def radians(self) -> float:
        return self._radians

    @property
    def degrees(self) -> float:
        return float(np.degrees(self._radians))

    @property
    def cos(self) -> float:
        return self._cos

    @property
    def sin(self) -> float:
        return self._sin

    def rotate_by(self, other: "Rotation2d") -> "Rotation2d":
        return Rotation2d.from_components(
            self._cos * other._cos - self._sin * other._sin,
            self._cos * other._sin + self._sin * other._cos,
        )

    def __add__(self, other: "Rotation2d") -> "Rotation2d":
        return self.rotate_by(other)

    def __sub__(self, other: "Rotation2d") -> "Rotation2d":
        return self.rotate_by(-other)

    def __neg__(self) -> "Rotation2d":
        return Rotation2d(-self._radians)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Rotation2d):
            return NotImplemented
        return abs(self._cos - other._cos) < 1e-9 and abs(self._sin - other._sin) < 1e-9

    def __hash__(self) -> int:
        # -π and π are the same heading
        radians = self._radians
        if radians <= -np.pi + 1e-9:
            radians += 2.0 * np.pi
        return hash(round(radians, 9))

    def __repr__(self) -> str:
        return f"Rotation2d(radians={self._radians:.4f}, degrees={self.degrees:.2f})"


@dataclass(frozen=True)
class Twist2d:
    """
    Incremental motion along a constant-curvature arc, expressed in the
    robot frame at the start of the motion.

    Attributes:
        dx: Forward displacement (meters)
        dy: Lateral displacement (meters), zero for a differential drive
        dtheta: Heading change (radians)
    """
    dx: float = 0.0
    dy: float = 0.0
    dtheta: float = 0.0


@dataclass(frozen=True)
class Pose2d:
    """
    Robot position and orientation in the fixed world frame.

    Attributes:
        x: World x-coordinate (meters)
        y: World y-coordinate (meters)
        rotation: Heading of the robot
    """
    x: float = 0.0
    y: float = 0.0
    rotation: Rotation2d = field(default_factory=Rotation2d)

    def __post_init__(self):
        _require_finite("Pose coordinates", self.x, self.y)

    @property
    def translation(self) -> Tuple[float, float]:
        return self.x, self.y

    @property
    def heading(self) -> float:
        """Heading in radians."""
        return self.rotation.radians

    def exp(self, twist: Twist2d) -> "Pose2d":
        """
        Apply a twist to this pose using the SE(2) exponential map.

        Args:
            twist: Arc motion expressed in this pose's frame

        Returns:
            Pose reached after travelling along the arc
        """
        dtheta = twist.dtheta
        sin_theta = np.sin(dtheta)
        cos_theta = np.cos(dtheta)

        if abs(dtheta) < _SMALL_ANGLE:
            s = 1.0 - dtheta ** 2 / 6.0
            c = 0.5 * dtheta
        else:
            s = sin_theta / dtheta
            c = (1.0 - cos_theta) / dtheta

        body_dx = twist.dx * s - twist.dy * c
        body_dy = twist.dx * c + twist.dy * s

        # Rotate the body-frame displacement into the world frame
        world_dx = body_dx * self.rotation.cos - body_dy * self.rotation.sin
        world_dy = body_dx * self.rotation.sin + body_dy * self.rotation.cos

        return Pose2d(
            float(self.x + world_dx),
            float(self.y + world_dy),
            self.rotation + Rotation2d(dtheta),
        )

    def relative_to(self, other: "Pose2d") -> "Pose2d":
        """Express this pose in the frame of ``other``."""
        dx = self.x - other.x
        dy = self.y - other.y
        return Pose2d(
            dx * other.rotation.cos + dy * other.rotation.sin,
            -dx * other.rotation.sin + dy * other.rotation.cos,
            self.rotation - other.rotation,
        )

    def with_rotation(self, rotation: Rotation2d) -> "Pose2d":
        return Pose2d(self.x, self.y, rotation)

    def distance_to(self, other: "Pose2d") -> float:
        return float(np.hypot(self.x - other.x, self.y - other.y))


@dataclass(frozen=True)
class WheelState:
    """
    Position and velocity of one wheel side in physical units.

    Attributes:
        position: Distance travelled by the wheel (meters)
        velocity: Wheel surface speed (meters/second)
    """
    position: float = 0.0
    velocity: float = 0.0

    def is_finite(self) -> bool:
        return bool(np.isfinite(self.position) and np.isfinite(self.velocity))


@dataclass(frozen=True)
class DriveSnapshot:
    """
    One coherent reading of the drivetrain sensors for a single tick.

    Produced either by the physical sensors or by the simulator, never both.
    """
    left: WheelState
    right: WheelState
    heading: Rotation2d
