#!/usr/bin/env python3
"""
Drivetrain simulation demo.

Drives the simulated differential drivetrain at constant normalized wheel
speeds and reports velocity tracking and odometry accuracy.

Run with: robo-drivetrain --duration 10 --left 0.5 --right 0.4
"""

import argparse
import logging
from dataclasses import replace
from typing import List, Optional

from .drive import Drive, DriveConstants
from .simulation.runner import run_simulation


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Differential drivetrain simulation demo')
    parser.add_argument('--duration', type=float, default=10.0,
                        help='Simulated time in seconds (default: 10)')
    parser.add_argument('--left', type=float, default=0.5,
                        help='Normalized left speed in [-1, 1] (default: 0.5)')
    parser.add_argument('--right', type=float, default=0.5,
                        help='Normalized right speed in [-1, 1] (default: 0.5)')
    parser.add_argument('--max-speed', type=float, default=None,
                        help='Wheel speed at a command of 1.0, m/s')
    parser.add_argument('--seed', type=int, default=None,
                        help='Seed for simulated sensor noise')
    parser.add_argument('--no-noise', action='store_true',
                        help='Disable simulated sensor noise')
    parser.add_argument('--plot', metavar='PATH', default=None,
                        help='Save a plot of the run to PATH')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable debug logging')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    constants = DriveConstants()
    if args.max_speed is not None:
        constants = replace(constants, max_speed=args.max_speed)
    if args.no_noise:
        constants = constants.without_noise()

    drive = Drive(constants=constants, seed=args.seed)
    log, metrics = run_simulation(drive, args.left, args.right, args.duration)

    pose = metrics.final_pose
    print("=== Drivetrain Simulation ===")
    print(f"Duration:            {args.duration:.2f} s ({len(log)} ticks)")
    print(f"Commanded speeds:    left={args.left:+.2f}, right={args.right:+.2f}")
    print(f"Final pose:          x={pose.x:.3f} m, y={pose.y:.3f} m, heading={pose.rotation.degrees:.1f} deg")
    print(f"Distance traveled:   {metrics.distance_traveled:.3f} m")
    print(f"Odometry error:      {metrics.odometry_error:.4f} m")
    print(f"Steady-state error:  {metrics.steady_state_error:.4f} m/s")
    print(f"Peak voltage:        {metrics.max_abs_voltage:.2f} V")

    health = drive.sensor_health.get_health_summary()
    print(f"Sensor readings:     {health['success_count']} accepted, {health['failure_count']} rejected "
          f"(failure rate {health['failure_rate']:.1%})")

    if args.plot:
        from .visualization import plot_drive_log
        plot_drive_log(log, save_path=args.plot)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
