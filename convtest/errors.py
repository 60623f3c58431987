# SPDX-License-Identifier: ISC
#
# errors.py
# Failure types raised while checking a topology
#

"""
Error taxonomy.

`CheckFailure` and its subclasses fail the phase they are raised in.
`ExecutionError` is never retried by the poller, an `AssertionMismatch`
only fails a phase when raised by a fatal match, and a `ConvergenceTimeout`
always names the check and the attempt budget that ran out.
"""


class ConvtestError(Exception):
    """Base class for all convtest exceptions."""


class TopologyError(ConvtestError, ValueError):
    """Raised when a topology or its expected state is malformed."""


class CheckFailure(ConvtestError):
    """Raised when a check fails and the enclosing phase must stop."""


class ExecutionError(CheckFailure):
    "A command could not be run on a host, or exited with an error."

    def __init__(self, host, args, returncode=None, output="", error=""):
        self.host = host
        self.command = tuple(args)
        self.returncode = returncode
        self.output = output
        self.error = error
        msg = "{}: command '{}' failed".format(host, " ".join(self.command))
        if returncode is not None:
            msg += " (rc {})".format(returncode)
        if error:
            msg += ": {}".format(error.strip())
        super().__init__(msg)


class AssertionMismatch(CheckFailure, AssertionError):
    "Command output did not contain the expected pattern."

    def __init__(self, pattern, output, desc=None):
        self.pattern = pattern
        self.output = output
        self.desc = desc
        msg = "output does not match '{}'".format(pattern)
        if desc:
            msg = "{}: {}".format(desc, msg)
        super().__init__(msg)


class ConvergenceTimeout(CheckFailure, AssertionError):
    "A poll ran out of attempts before its condition held."

    def __init__(self, desc, count, wait, output=None):
        self.desc = desc
        self.count = count
        self.wait = wait
        self.output = output
        super().__init__(
            "{} (gave up after {} attempts, {}s apart)".format(desc, count, wait)
        )


class PollCancelled(CheckFailure):
    """Raised when a poll is cancelled between attempts."""


class PhaseSkipped(ConvtestError):
    "A phase was not run because an earlier phase failed."

    def __init__(self, name, reason):
        self.name = name
        self.reason = reason
        super().__init__("{}: skipped, {}".format(name, reason))


class MultipleFailures(CheckFailure):
    "Several checks of one phase failed (collected with keep-going)."

    def __init__(self, failures):
        self.failures = list(failures)
        lines = ["{} checks failed:".format(len(self.failures))]
        lines.extend("  {}".format(f) for f in self.failures)
        super().__init__("\n".join(lines))
