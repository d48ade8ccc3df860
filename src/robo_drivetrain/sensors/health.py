"""
Sensor health bookkeeping for the drivetrain motion source.

A reading is rejected when any channel (wheel position, wheel velocity,
heading) is non-finite. Rejected readings never reach the odometry; the
health record counts them so that a persistently faulty sensor becomes
visible instead of silently freezing the pose.

Mathematical Model:
    reliability = max(0.0, 1.0 - decay * consecutive_failures)
    reliability = min(1.0, reliability + recovery_rate) on success
"""

import time


class SensorHealth:
    """
    Tracks accepted and rejected sensor readings.

    Attributes:
        is_operational: False once consecutive failures reach the threshold
        reliability: Float [0.0, 1.0] indicating measurement trustworthiness
        failure_count: Total number of rejected readings
        success_count: Total number of accepted readings
        consecutive_failures: Current rejected-reading streak
        last_success_time: Timestamp of the last accepted reading
    """

    def __init__(self, failure_threshold: int = 5, reliability_decay: float = 0.15):
        """
        Initialize sensor health monitor.

        Args:
            failure_threshold: Consecutive failures before marking inoperational
            reliability_decay: Reliability decrease per consecutive failure
        """
        if failure_threshold < 1:
            raise ValueError(f"Failure threshold must be at least 1, got {failure_threshold}")

        self._failure_threshold = failure_threshold
        self._reliability_decay = reliability_decay
        self._recovery_rate = 0.05
        self.reset_health()

    def record_failure(self) -> None:
        """Record a rejected reading and lower the reliability score."""
        self.failure_count += 1
        self.consecutive_failures += 1

        penalty = min(0.9, self._reliability_decay * self.consecutive_failures)
        self.reliability = max(0.0, 1.0 - penalty)

        if self.consecutive_failures >= self._failure_threshold:
            self.is_operational = False

    def record_success(self) -> None:
        """Record an accepted reading."""
        self.success_count += 1
        self.consecutive_failures = 0
        self.last_success_time = time.time()

        self.reliability = min(1.0, self.reliability + self._recovery_rate)

        if not self.is_operational and self.reliability > 0.5:
            self.is_operational = True

    def get_failure_rate(self) -> float:
        """Fraction of readings rejected so far."""
        total = self.failure_count + self.success_count
        if total == 0:
            return 0.0
        return self.failure_count / total

    def time_since_last_success(self) -> float:
        return time.time() - self.last_success_time

    def reset_health(self) -> None:
        """Reset statistics to the initial state."""
        self.is_operational = True
        self.reliability = 1.0
        self.failure_count = 0
        self.success_count = 0
        self.consecutive_failures = 0
        self.last_success_time = time.time()

    def get_health_summary(self) -> dict:
        return {
            'operational': self.is_operational,
            'reliability': self.reliability,
            'failure_count': self.failure_count,
            'success_count': self.success_count,
            'consecutive_failures': self.consecutive_failures,
            'failure_rate': self.get_failure_rate(),
            'time_since_success': self.time_since_last_success()
        }
