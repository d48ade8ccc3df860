"""
Minimal tick-driven command scheduling.

The host calls ``CommandScheduler.run()`` once per control period. Each run
executes every scheduled command, then calls ``periodic()`` on every
registered subsystem, so a tick always applies commands before updating
the pose.
"""

import logging
from typing import Callable, List, Protocol

logger = logging.getLogger(__name__)


class Subsystem(Protocol):
    def periodic(self) -> object:
        ...


class RunCommand:
    """
    Command that runs an action every tick until cancelled.

    Attributes:
        action: Callable invoked on every execute()
        name: Label used in diagnostics
    """

    def __init__(self, action: Callable[[], object], name: str = "run"):
        self.action = action
        self.name = name
        self.execution_count = 0

    def initialize(self) -> None:
        self.execution_count = 0

    def execute(self) -> None:
        self.action()
        self.execution_count += 1

    def is_finished(self) -> bool:
        return False

    def end(self, interrupted: bool) -> None:
        logger.debug(f"Command {self.name} ended (interrupted={interrupted})")

    def __repr__(self) -> str:
        return f"RunCommand(name={self.name!r})"


class CommandScheduler:
    """Runs scheduled commands and subsystem periodic updates once per tick."""

    def __init__(self):
        self._commands: List[RunCommand] = []
        self._subsystems: List[Subsystem] = []
        self.tick_count = 0

    def register(self, subsystem: Subsystem) -> None:
        if subsystem not in self._subsystems:
            self._subsystems.append(subsystem)

    def schedule(self, command: RunCommand) -> None:
        if command in self._commands:
            return
        command.initialize()
        self._commands.append(command)
        logger.debug(f"Scheduled {command.name}")

    def cancel(self, command: RunCommand) -> None:
        if command in self._commands:
            self._commands.remove(command)
            command.end(True)

    def is_scheduled(self, command: RunCommand) -> bool:
        return command in self._commands

    def run(self) -> None:
        """Run one tick."""
        for command in list(self._commands):
            command.execute()
            if command.is_finished():
                self._commands.remove(command)
                command.end(False)

        for subsystem in self._subsystems:
            subsystem.periodic()

        self.tick_count += 1
