"""Project-specific exception types."""

from __future__ import annotations


class VPhoneError(RuntimeError):
    """Base error for launcher failures that abort with exit code 1."""


class MissingPrerequisiteError(VPhoneError):
    """Raised when required host tools are not on PATH."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            'Missing required tools: ' + ', '.join(self.missing)
        )


class MissingArchiveError(VPhoneError):
    """Raised when neither the archive nor its split parts exist."""


class BootProcessExitedError(VPhoneError):
    """Raised when the boot process dies before the VM became reachable."""

    def __init__(self, returncode: int | None):
        self.returncode = returncode
        super().__init__(
            f'VM process exited unexpectedly (code={returncode}).'
        )


class ShutdownRequested(BaseException):
    """Raised from a signal handler to unwind into the shutdown path."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f'Received signal {signum}')
