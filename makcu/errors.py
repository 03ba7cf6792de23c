"""Exceptions raised while talking to a Makcu device."""

from __future__ import annotations


class MakcuError(Exception):
    """Base class for every error raised by this package."""

    _label = ""

    @property
    def message(self) -> str:
        """The detail text the error was created with."""
        return str(self.args[0]) if self.args else ""

    def __str__(self) -> str:
        if self._label:
            return f"{self._label}: {self.message}"
        return self.message


class MakcuConnectionError(MakcuError, ConnectionError):
    """The port could not be opened, or the device is not connected."""

    _label = "Connection error"


class CommandError(MakcuError):
    """A command failed or the device answered with an error."""

    _label = "Command error"


class CommandTimeout(MakcuError, TimeoutError):
    """A tracked command got no answer in time."""

    def __init__(self, command_id: int) -> None:
        super().__init__(command_id)
        self.command_id = command_id

    def __str__(self) -> str:
        return f"Timeout for command {self.command_id}"