"""
Shell Errors

Every failure a command can report. All of them are caught at the command
boundary (ShellKernel.execute) and rendered as plain text; none of them
terminate the kernel.
"""


class ShellError(Exception):
    """Base class for errors rendered as plain-text command output."""


class NotAttached(ShellError):
    """A command other than `attach` ran while no page is attached."""

    def __init__(self, message: str = "Not attached to a tab. Run 'attach' first.") -> None:
        super().__init__(message)


class NoSuchPath(ShellError):
    """A cd/cat/click target does not exist in the current listing."""

    def __init__(self, name: str, message: str = "No such file or directory") -> None:
        self.name = name
        super().__init__(f"{name}: {message}")


class NotADirectory(ShellError):
    """A cd target resolved to a file."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name}: Not a directory")


class StaleReference(ShellError):
    """
    An actuator call used a backend reference the live document no longer has.

    Raised by ElementActuator implementations and surfaced verbatim.
    """


class IngestionFailure(ShellError):
    """attach/refresh could not retrieve an accessibility tree."""
