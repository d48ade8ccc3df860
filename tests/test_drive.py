import pytest
import numpy as np
import threading
from dataclasses import replace
from unittest.mock import Mock
import sys
import os

# Add the src directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from robo_drivetrain.drive import (Drive, DriveConstants, DriveState, CommandScheduler,
                                   RunCommand, FeedforwardGains, PIDGains)
from robo_drivetrain.geometry import Pose2d, Rotation2d
from robo_drivetrain.sensors import DrivetrainHardware, WheelSide, SensorReadingError


class FakeMotor:
    """Motor controller double recording the last command"""

    def __init__(self):
        self.position = 0.0
        self.velocity = 0.0
        self.voltage = None
        self.duty = None
        self.leader = None

    def set_open_loop(self, duty_cycle):
        self.duty = duty_cycle

    def set_voltage(self, volts):
        self.voltage = volts

    def get_position(self):
        return self.position

    def get_velocity(self):
        return self.velocity

    def follow(self, leader):
        self.leader = leader


class FakeGyro:
    def __init__(self):
        self.heading = Rotation2d()
        self.reset_count = 0
        self.fail = False

    def reset(self):
        self.reset_count += 1
        self.heading = Rotation2d()

    def get_heading(self):
        if self.fail:
            raise ValueError("gyro disconnected")
        return self.heading


def make_hardware(left_inverted=False):
    motors = {name: FakeMotor() for name in ("left", "left_follower", "right", "right_follower")}
    gyro = FakeGyro()
    hardware = DrivetrainHardware(
        left=WheelSide(motors["left"], [motors["left_follower"]], inverted=left_inverted, name="left"),
        right=WheelSide(motors["right"], [motors["right_follower"]], name="right"),
        gyro=gyro,
    )
    return hardware, motors, gyro


def quiet_constants():
    return DriveConstants().without_noise()


class TestDriveConstants:
    """Test configuration validation"""

    def test_defaults_are_valid(self):
        constants = DriveConstants()
        assert constants.max_speed > 0
        assert constants.position_factor == pytest.approx(2 * np.pi * 0.0762 / 8.45)
        assert constants.velocity_factor == pytest.approx(constants.position_factor / 60.0)

    def test_invalid_values_rejected(self):
        with pytest.raises(ValueError):
            DriveConstants(track_width=0.0)
        with pytest.raises(ValueError):
            DriveConstants(measurement_std_devs=(0.1,))
        with pytest.raises(ValueError):
            PIDGains(kp=-1.0)
        with pytest.raises(ValueError):
            FeedforwardGains(kv=-2.0)

    def test_without_noise(self):
        assert DriveConstants().without_noise().measurement_std_devs == (0.0,) * 7

    def test_constants_are_immutable(self):
        constants = DriveConstants()
        with pytest.raises(Exception):
            constants.max_speed = 10.0


class TestDriveSimulated:
    """Test the drivetrain facade without hardware"""

    def test_no_hardware_selects_simulation(self):
        drive = Drive(quiet_constants())
        assert drive.is_simulated
        assert drive.simulation is not None
        assert drive.state is DriveState.IDLE
        assert drive.pose() == Pose2d()

    def test_zero_command_yields_zero_voltage(self):
        """Commanding zero at rest applies exactly zero volts"""
        drive = Drive(quiet_constants())
        command = drive.drive(0.0, 0.0)
        assert command.left == 0.0
        assert command.right == 0.0

    def test_voltage_clamped_to_bus(self):
        """Out-of-range commands are clamped to the bus voltage"""
        drive = Drive(quiet_constants())
        command = drive.drive(5.0, -5.0)
        assert command.left == pytest.approx(12.0)
        assert command.right == pytest.approx(-12.0)
        assert drive.simulation.inputs == (12.0, -12.0)

    def test_drive_scales_by_max_speed(self):
        """Normalized speed is scaled by max_speed before control"""
        constants = quiet_constants()
        drive = Drive(constants)
        command = drive.drive(0.5, 0.25)

        ff = constants.feedforward
        gains = constants.pid
        expected_left = ff.ks + ff.kv * 2.0 + gains.kp * 2.0 + gains.ki * 2.0 * constants.period
        assert command.left == pytest.approx(expected_left)
        assert command.right < command.left

    def test_state_machine(self):
        """IDLE -> DRIVING on command, back to IDLE after a tick without one"""
        drive = Drive(quiet_constants())

        drive.drive(0.5, 0.5)
        assert drive.state is DriveState.DRIVING
        drive.periodic()
        assert drive.state is DriveState.DRIVING

        drive.drive(0.5, 0.5)
        drive.periodic()
        assert drive.state is DriveState.DRIVING

        drive.periodic()
        assert drive.state is DriveState.IDLE
        assert drive.simulation.inputs == (0.0, 0.0)
        assert drive.last_voltages.left == 0.0

    def test_controllers_reset_when_reenabled(self):
        """Integral state never carries over an idle period"""
        drive = Drive(quiet_constants())
        left, right = drive.controllers

        for _ in range(20):
            drive.drive(0.5, 0.5)
            drive.periodic()
        assert left.pid.integral != 0.0

        drive.stop()
        assert drive.state is DriveState.IDLE
        assert left.pid.integral == 0.0
        assert right.pid.integral == 0.0

    def test_controllers_independent(self):
        drive = Drive(quiet_constants())
        left, right = drive.controllers
        assert left is not right
        assert left.pid is not right.pid

    def test_closed_loop_convergence(self):
        """2.0 m/s command converges to within 2% and stays there"""
        drive = Drive(quiet_constants())
        assert drive.constants.max_speed * 0.5 == pytest.approx(2.0)

        true_velocities = []
        for _ in range(500):
            drive.drive(0.5, 0.5)
            drive.periodic()
            state = drive.simulation.state
            true_velocities.append((state[3], state[4]))

        tail = np.array(true_velocities[-100:])
        assert np.all(np.abs(tail - 2.0) < 0.02 * 2.0)

    def test_converges_with_sensor_noise(self):
        """Measurement noise does not prevent tracking"""
        drive = Drive(DriveConstants(), seed=7)
        for _ in range(500):
            drive.drive(0.5, 0.5)
            drive.periodic()
        state = drive.simulation.state
        assert state[3] == pytest.approx(2.0, rel=0.05)

    def test_straight_line_pose(self):
        """Equal commands move straight ahead"""
        drive = Drive(quiet_constants())
        for _ in range(150):
            drive.drive(0.5, 0.5)
            drive.periodic()

        pose = drive.pose()
        assert pose.x > 3.0
        assert pose.y == pytest.approx(0.0, abs=1e-6)
        assert pose.rotation.radians == pytest.approx(0.0, abs=1e-6)

    def test_odometry_tracks_simulated_truth(self):
        """Without noise odometry reproduces the simulator pose"""
        drive = Drive(quiet_constants())
        for i in range(300):
            drive.drive(0.3, 0.6 if i < 150 else -0.2)
            drive.periodic()

        pose = drive.pose()
        truth = drive.simulation.pose
        assert pose.distance_to(truth) < 1e-9
        assert pose.rotation == truth.rotation

    def test_initial_pose(self):
        start = Pose2d(1.0, 2.0, Rotation2d.from_degrees(90))
        drive = Drive(quiet_constants(), initial_pose=start)
        assert drive.pose() == start

        for _ in range(50):
            drive.drive(0.5, 0.5)
            drive.periodic()

        pose = drive.pose()
        assert pose.y > 2.0
        assert pose.x == pytest.approx(1.0, abs=1e-6)

    def test_reset_pose(self):
        drive = Drive(quiet_constants())
        for _ in range(20):
            drive.drive(0.5, 0.2)
            drive.periodic()

        target = Pose2d(-3.0, 4.0, Rotation2d(1.0))
        drive.reset_pose(target)

        assert drive.pose() == target
        assert drive.simulation.pose == target

    def test_open_loop(self):
        """Open-loop duty cycles are clamped and reach the simulator as volts"""
        drive = Drive(quiet_constants())
        drive.drive_open_loop(0.5, 2.0)
        assert drive.simulation.inputs == pytest.approx((6.0, 12.0))
        assert drive.state is DriveState.DRIVING

    def test_open_loop_logged_voltage_matches_applied(self):
        """The reported open-loop voltage is the voltage the simulator receives"""
        drive = Drive(replace(quiet_constants(), max_voltage=10.0))
        drive.drive_open_loop(0.5, -1.0)
        assert drive.simulation.inputs == pytest.approx((5.0, -10.0))
        assert (drive.last_voltages.left, drive.last_voltages.right) == pytest.approx((5.0, -10.0))

    def test_drive_command_resamples_suppliers(self):
        """The drive command reads both suppliers every tick"""
        drive = Drive(quiet_constants())
        speeds = {'left': 0.0, 'right': 0.0}
        command = drive.drive_command(lambda: speeds['left'], lambda: speeds['right'])

        command.execute()
        assert drive.last_voltages.left == 0.0

        speeds['left'] = 0.5
        command.execute()
        assert drive.last_voltages.left > 0.0
        assert drive.last_voltages.right == 0.0

    def test_concurrent_pose_reads(self):
        """Readers on another thread always see a complete pose"""
        drive = Drive(quiet_constants())
        errors = []
        done = threading.Event()

        def reader():
            while not done.is_set():
                pose = drive.pose()
                if not isinstance(pose, Pose2d) or not np.isfinite(pose.x):
                    errors.append(pose)

        thread = threading.Thread(target=reader)
        thread.start()
        try:
            for _ in range(200):
                drive.drive(0.4, 0.6)
                drive.periodic()
        finally:
            done.set()
            thread.join()

        assert errors == []


class TestDriveHardware:
    """Test the drivetrain facade with hardware attached"""

    def test_hardware_selects_real_source(self):
        hardware, motors, gyro = make_hardware()
        drive = Drive(quiet_constants(), hardware=hardware)
        assert not drive.is_simulated
        assert drive.simulation is None
        assert gyro.reset_count == 1

    def test_followers_bound_to_leaders(self):
        hardware, motors, gyro = make_hardware()
        assert motors["left_follower"].leader is motors["left"]
        assert motors["right_follower"].leader is motors["right"]

    def test_follower_bound_once_through_mock(self):
        leader = FakeMotor()
        follower = Mock()
        WheelSide(leader, [follower])
        follower.follow.assert_called_once_with(leader)

    def test_voltages_reach_leaders_only(self):
        hardware, motors, gyro = make_hardware(left_inverted=True)
        drive = Drive(quiet_constants(), hardware=hardware)

        command = drive.drive(0.5, 0.5)

        assert motors["left"].voltage == pytest.approx(-command.left)
        assert motors["right"].voltage == pytest.approx(command.right)
        assert motors["left_follower"].voltage is None
        assert motors["right_follower"].voltage is None

    def test_open_loop_clamped(self):
        hardware, motors, gyro = make_hardware()
        drive = Drive(quiet_constants(), hardware=hardware)
        drive.drive_open_loop(-3.0, 0.25)
        assert motors["left"].duty == -1.0
        assert motors["right"].duty == 0.25

    def test_conversion_factors_and_inversion(self):
        leader = FakeMotor()
        side = WheelSide(leader, position_factor=0.05, velocity_factor=0.001, inverted=True)
        leader.position = 10.0
        leader.velocity = 600.0

        state = side.read()

        assert state.position == pytest.approx(-0.5)
        assert state.velocity == pytest.approx(-0.6)

    def test_real_readings_drive_odometry(self):
        hardware, motors, gyro = make_hardware()
        drive = Drive(quiet_constants(), hardware=hardware)

        motors["left"].position = 1.0
        motors["right"].position = 1.0
        drive.periodic()

        assert drive.pose().x == pytest.approx(1.0)
        assert drive.pose().y == pytest.approx(0.0)

    def test_non_finite_reading_leaves_pose_stale(self):
        """A rejected reading is counted and the pose is not updated"""
        hardware, motors, gyro = make_hardware()
        drive = Drive(quiet_constants(), hardware=hardware)

        motors["left"].position = 0.5
        motors["right"].position = 0.5
        before = drive.periodic()

        motors["left"].position = float('nan')
        after = drive.periodic()

        assert after == before
        assert drive.sensor_health.failure_count == 1

        motors["left"].position = 1.0
        motors["right"].position = 1.0
        assert drive.periodic().x == pytest.approx(1.0)
        assert drive.sensor_health.consecutive_failures == 0

    def test_gyro_failure_is_a_reading_error(self):
        hardware, motors, gyro = make_hardware()
        drive = Drive(quiet_constants(), hardware=hardware)
        gyro.fail = True

        with pytest.raises(SensorReadingError):
            hardware.read_heading()

        drive.periodic()
        assert drive.sensor_health.failure_count == 1

    def test_reset_pose_uses_fresh_reading(self):
        """Wheel travel since the last tick is not added after a reset"""
        hardware, motors, gyro = make_hardware()
        drive = Drive(quiet_constants(), hardware=hardware)
        drive.periodic()

        motors["left"].position = 1.0
        motors["right"].position = 1.0
        drive.reset_pose(Pose2d())
        pose = drive.periodic()

        assert pose.x == pytest.approx(0.0)
        assert pose.y == pytest.approx(0.0)

    def test_reset_pose_with_unreadable_sensors(self):
        """A failed reading during reset raises and keeps the old pose"""
        hardware, motors, gyro = make_hardware()
        drive = Drive(quiet_constants(), hardware=hardware)
        motors["left"].position = 0.5
        motors["right"].position = 0.5
        before = drive.periodic()

        gyro.fail = True
        with pytest.raises(SensorReadingError):
            drive.reset_pose(Pose2d(5.0, 5.0))

        assert drive.pose() == before
        assert drive.sensor_health.failure_count == 1

    def test_hardware_from_constants(self):
        """Conversion factors and left inversion come from the constants"""
        constants = quiet_constants()
        left, right = FakeMotor(), FakeMotor()
        left_follower = FakeMotor()
        hardware = DrivetrainHardware.from_constants(
            constants, left, right, FakeGyro(), left_followers=[left_follower]
        )

        assert hardware.left.inverted
        assert not hardware.right.inverted
        assert left_follower.leader is left

        # One wheel revolution is `gearing` motor rotations
        left.position = -constants.gearing
        right.position = constants.gearing
        right.velocity = 60.0 * constants.gearing
        circumference = 2 * np.pi * constants.wheel_radius
        assert hardware.left.read().position == pytest.approx(circumference)
        assert hardware.right.read().position == pytest.approx(circumference)
        assert hardware.right.read().velocity == pytest.approx(circumference)

        hardware.left.set_voltage(3.0)
        assert left.voltage == -3.0

    def test_hardware_simulation_parity(self):
        """Real-shaped and simulated-shaped readings give the same pose"""
        simulated = Drive(quiet_constants())
        hardware, motors, gyro = make_hardware()
        real = Drive(quiet_constants(), hardware=hardware)

        for i in range(200):
            simulated.drive(0.6, 0.2 if i < 100 else 0.7)
            simulated.periodic()

            snapshot = simulated.last_snapshot
            motors["left"].position = snapshot.left.position
            motors["left"].velocity = snapshot.left.velocity
            motors["right"].position = snapshot.right.position
            motors["right"].velocity = snapshot.right.velocity
            gyro.heading = snapshot.heading
            real.periodic()

        assert real.pose().x == pytest.approx(simulated.pose().x, abs=1e-12)
        assert real.pose().y == pytest.approx(simulated.pose().y, abs=1e-12)
        assert real.pose().rotation == simulated.pose().rotation

    def test_unreadable_hardware_at_construction_raises(self):
        hardware, motors, gyro = make_hardware()
        motors["right"].velocity = float('inf')
        with pytest.raises(SensorReadingError):
            Drive(quiet_constants(), hardware=hardware)


class TestCommandScheduler:
    """Test tick ordering of the command scheduler"""

    def test_commands_run_before_periodic(self):
        calls = []
        subsystem = Mock()
        subsystem.periodic.side_effect = lambda: calls.append("periodic")

        scheduler = CommandScheduler()
        scheduler.register(subsystem)
        scheduler.schedule(RunCommand(lambda: calls.append("command")))

        scheduler.run()
        scheduler.run()

        assert calls == ["command", "periodic", "command", "periodic"]
        assert scheduler.tick_count == 2

    def test_cancel(self):
        command = RunCommand(lambda: None)
        scheduler = CommandScheduler()
        scheduler.schedule(command)
        assert scheduler.is_scheduled(command)

        scheduler.cancel(command)
        scheduler.run()

        assert not scheduler.is_scheduled(command)
        assert command.execution_count == 0

    def test_drive_through_scheduler(self):
        drive = Drive(quiet_constants())
        scheduler = CommandScheduler()
        scheduler.register(drive)
        command = drive.drive_command(lambda: 0.5, lambda: 0.5)
        scheduler.schedule(command)

        for _ in range(50):
            scheduler.run()
        assert drive.state is DriveState.DRIVING
        assert drive.pose().x > 0.5

        scheduler.cancel(command)
        scheduler.run()
        assert drive.state is DriveState.IDLE


if __name__ == "__main__":
    pytest.main([__file__])
