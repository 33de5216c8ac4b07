"""Custom exception hierarchy for hostwatch."""


class HostwatchError(Exception):
    """Base for all hostwatch errors."""


class SpawnError(HostwatchError):
    """The command could not be started (missing or invalid executable)."""


class CommandTimeoutError(HostwatchError):
    """The command exceeded its wall-clock budget and was killed."""


class CommandInterruptedError(HostwatchError):
    """The caller stopped waiting for a running command."""


class ProcessNotFoundError(HostwatchError):
    """No OS process with the given pid exists."""


class KillRefusedError(HostwatchError):
    """The OS declined to terminate the process (insufficient permission)."""


class OSQueryError(HostwatchError):
    """A process-table or hardware probe failed."""
