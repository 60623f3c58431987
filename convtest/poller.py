# SPDX-License-Identifier: ISC
#
# poller.py
# Bounded polling for asynchronous convergence
#

"""
Convergence poller.

`poll()` calls an attempt function until it reports a match or the attempt
budget runs out, sleeping a fixed interval between attempts that did not
match. Only a mismatch is retried: an `ExecutionError` raised by the attempt
propagates at once. The budget (`count` attempts, `wait` seconds apart) is
always given by the caller.
"""

import enum
import functools
import time
from dataclasses import dataclass
from typing import Optional

from convtest.errors import ConvergenceTimeout, PollCancelled
from convtest.topolog import logger


class PollOutcome(enum.Enum):
    CONVERGED = "converged"
    TIMED_OUT = "timed-out"


@dataclass(frozen=True)
class PollResult:
    "Result of one `poll()` call."

    outcome: PollOutcome
    attempts: int
    sleeps: int
    output: Optional[str] = None

    @property
    def converged(self):
        return self.outcome is PollOutcome.CONVERGED


def _func_name(func):
    if isinstance(func, functools.partial):
        return func.func.__name__
    return getattr(func, "__name__", "<unknown>")


def poll(attempt, count, wait, sleep=time.sleep, cancel=None):
    """
    Run `attempt` up to `count` times waiting `wait` seconds between tries.

    `attempt` takes no arguments and returns a `(matched, output)` tuple. It
    may raise `ExecutionError`, which is not retried.

    `cancel` is an optional `threading.Event`; when set, polling stops before
    the next attempt with `PollCancelled`.

    Returns a `PollResult` which is `CONVERGED` on the first match or
    `TIMED_OUT` after exactly `count` unmatched attempts.
    """
    if count < 1:
        raise ValueError("count must be at least 1, got {}".format(count))
    if wait < 0:
        raise ValueError("wait must not be negative, got {}".format(wait))

    func_name = _func_name(attempt)
    logger.debug(
        "'{}' polling started (interval {} secs, maximum {} tries)".format(
            func_name, wait, count
        )
    )

    start_time = time.time()
    sleeps = 0
    output = None
    for tries in range(1, count + 1):
        if cancel is not None and cancel.is_set():
            raise PollCancelled(
                "'{}' cancelled after {} tries".format(func_name, tries - 1)
            )

        matched, output = attempt()
        if matched:
            logger.debug(
                "'{}' succeeded after {} tries, {:.2f} seconds".format(
                    func_name, tries, time.time() - start_time
                )
            )
            return PollResult(PollOutcome.CONVERGED, tries, sleeps, output)

        if tries < count:
            sleep(wait)
            sleeps += 1

    logger.error(
        "'{}' failed after {} tries, {:.2f} seconds".format(
            func_name, count, time.time() - start_time
        )
    )
    return PollResult(PollOutcome.TIMED_OUT, count, sleeps, output)


def wait_for(attempt, count, wait, desc, sleep=time.sleep, cancel=None):
    """
    Same as `poll()` but raises `ConvergenceTimeout`, naming `desc` and the
    attempt budget, when the condition never held.
    """
    result = poll(attempt, count, wait, sleep=sleep, cancel=cancel)
    if not result.converged:
        raise ConvergenceTimeout(desc, count, wait, result.output)
    return result
