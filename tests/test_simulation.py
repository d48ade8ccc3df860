import pytest
import numpy as np
import sys
import os

# Add the src directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from robo_drivetrain.simulation import DCMotor, DifferentialDrivetrainSim


NOISE = [0.001, 0.001, 0.001, 0.1, 0.1, 0.005, 0.005]


def make_sim(std_devs=None, seed=None):
    return DifferentialDrivetrainSim(
        motor=DCMotor.mini_cim(2),
        gearing=8.45,
        moment_of_inertia=2.0,
        mass=25.0,
        wheel_radius=0.0762,
        track_width=0.6,
        measurement_std_devs=std_devs,
        seed=seed,
    )


class TestDCMotor:
    """Test DC motor characterization"""

    def test_ganged_motors_add_torque_and_current(self):
        """Stall torque and currents scale with the motor count"""
        single = DCMotor.mini_cim(1)
        double = DCMotor.mini_cim(2)
        assert double.stall_torque == pytest.approx(2 * single.stall_torque)
        assert double.stall_current == pytest.approx(2 * single.stall_current)
        assert double.free_speed == pytest.approx(single.free_speed)

    def test_derived_constants(self):
        """R, Kv and Kt follow from the datasheet values"""
        motor = DCMotor.mini_cim(1)
        assert motor.resistance == pytest.approx(12.0 / 89.0)
        assert motor.kt == pytest.approx(1.41 / 89.0)
        expected_kv = motor.free_speed / (12.0 - motor.resistance * 3.0)
        assert motor.kv == pytest.approx(expected_kv)

    def test_stall_current(self):
        """At zero speed and nominal voltage the motor draws stall current"""
        motor = DCMotor.neo(1)
        assert motor.current(0.0, 12.0) == pytest.approx(105.0)

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            DCMotor(12.0, 1.0, 50.0, 60.0, 500.0)
        with pytest.raises(ValueError):
            DCMotor.cim(0)


class TestDifferentialDrivetrainSim:
    """Test the drivetrain physics model"""

    def test_starts_at_rest(self):
        sim = make_sim()
        assert sim.left_position == 0.0
        assert sim.right_velocity == 0.0
        assert sim.heading.radians == 0.0

    def test_steady_state_velocity_matches_back_emf_limit(self):
        """Constant voltage settles at V * Kv * r / G"""
        sim = make_sim()
        sim.set_inputs(6.0, 6.0)
        for _ in range(250):
            sim.update(0.02)

        expected = 6.0 * sim.motor.kv * sim.wheel_radius / sim.gearing
        assert sim.left_velocity == pytest.approx(expected, rel=1e-3)
        assert sim.right_velocity == pytest.approx(expected, rel=1e-3)

    def test_straight_line(self):
        """Equal voltages drive straight along the initial heading"""
        sim = make_sim()
        sim.set_inputs(4.0, 4.0)
        for _ in range(100):
            sim.update(0.02)

        pose = sim.pose
        assert pose.x > 0.5
        assert pose.y == pytest.approx(0.0, abs=1e-9)
        assert pose.rotation.radians == pytest.approx(0.0, abs=1e-9)
        assert pose.x == pytest.approx((sim.left_position + sim.right_position) / 2, rel=1e-9)

    def test_turn_in_place(self):
        """Opposite voltages rotate counter-clockwise without translating"""
        sim = make_sim()
        sim.set_inputs(-3.0, 3.0)
        for _ in range(10):
            sim.update(0.02)

        assert sim.heading.radians > 0.0
        assert abs(sim.pose.x) < 1e-9
        assert abs(sim.pose.y) < 1e-9
        expected_heading = (sim.right_position - sim.left_position) / sim.track_width
        assert sim.heading.radians == pytest.approx(expected_heading)

    def test_inputs_clamped_to_nominal_voltage(self):
        """The battery cannot supply more than its nominal voltage"""
        sim = make_sim()
        sim.set_inputs(20.0, -15.0)
        assert sim.inputs == (12.0, -12.0)

    def test_deterministic_with_same_seed(self):
        """Identical voltage sequences and seeds give identical outputs"""
        voltages = [(np.sin(i * 0.1) * 8.0, np.cos(i * 0.07) * 8.0) for i in range(200)]

        runs = []
        for _ in range(2):
            sim = make_sim(std_devs=NOISE, seed=42)
            trace = []
            for left, right in voltages:
                sim.set_inputs(left, right)
                sim.update(0.02)
                trace.append((sim.left_position, sim.left_velocity, sim.right_position,
                              sim.right_velocity, sim.heading.radians))
            runs.append(np.array(trace))

        np.testing.assert_array_equal(runs[0], runs[1])

    def test_noise_depends_on_seed(self):
        """Different seeds give different measurements of the same motion"""
        a = make_sim(std_devs=NOISE, seed=1)
        b = make_sim(std_devs=NOISE, seed=2)
        for sim in (a, b):
            sim.set_inputs(5.0, 5.0)
            sim.update(0.02)

        np.testing.assert_array_equal(a.state, b.state)
        assert a.left_velocity != b.left_velocity

    def test_no_noise_measurement_equals_state(self):
        sim = make_sim()
        sim.set_inputs(3.0, 2.0)
        sim.update(0.02)
        state = sim.state
        assert sim.left_position == state[5]
        assert sim.right_velocity == state[4]

    def test_current_draw_at_stall(self):
        """At rest each side draws V / R"""
        sim = make_sim()
        sim.set_inputs(6.0, 6.0)
        assert sim.current_draw == pytest.approx(2 * 6.0 / sim.motor.resistance)

    def test_reset(self):
        from robo_drivetrain.geometry import Pose2d, Rotation2d

        sim = make_sim()
        sim.set_inputs(5.0, 5.0)
        sim.update(0.02)
        sim.reset(Pose2d(1.0, 2.0, Rotation2d(0.5)))

        assert sim.pose.x == 1.0
        assert sim.heading.radians == pytest.approx(0.5)
        assert sim.left_velocity == 0.0
        assert sim.inputs == (0.0, 0.0)

    def test_invalid_time_step(self):
        sim = make_sim()
        with pytest.raises(ValueError):
            sim.update(0.0)

    def test_large_time_step_warns(self):
        sim = make_sim()
        with pytest.warns(UserWarning):
            sim.update(0.5)

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            make_sim(std_devs=[0.1, 0.1])
        with pytest.raises(ValueError):
            DifferentialDrivetrainSim(DCMotor.mini_cim(2), 8.45, 2.0, -1.0, 0.0762, 0.6)


if __name__ == "__main__":
    pytest.main([__file__])
