# SPDX-License-Identifier: ISC
#
# sequencer.py
# Ordered execution of test phases
#

"""
Test phase sequencer.

A run is a fixed, ordered list of named phases. Phases execute strictly in
declared order; the first phase that fails aborts the run and every phase
after it is marked skipped. Results of the phases that already ran are kept,
so a report always shows which phase failed and why.

Phase bodies iterate their work items with `PhaseContext.each()`, which
stops at the first failing item unless the context was created with
`keep_going=True`, in which case every item is checked and all failures are
reported together.
"""

import enum
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from convtest.errors import CheckFailure, MultipleFailures, PhaseSkipped, PollCancelled
from convtest.topolog import logger, step


class PhaseState(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunState(enum.Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class Phase:
    name: str
    func: Callable[["PhaseContext"], Any]
    desc: str = ""


@dataclass
class PhaseResult:
    name: str
    state: PhaseState = PhaseState.PENDING
    failures: List[Exception] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def passed(self):
        return self.state is PhaseState.PASSED


@dataclass(frozen=True)
class CheckResult:
    "Outcome of one work item inside a phase."

    item: Any
    failure: Optional[CheckFailure] = None

    @property
    def ok(self):
        return self.failure is None


class PhaseContext(object):
    """
    Everything a phase needs: the topology, the expected state, an executor
    and the run configuration.
    * `keep_going`: check every item of a phase even after a failure.
    * `sleep`: sleep function, replaced in unit tests.
    * `cancel`: optional `threading.Event` honoured by pollers.
    """

    def __init__(
        self,
        topology,
        expected,
        executor,
        config,
        keep_going=False,
        sleep=time.sleep,
        cancel=None,
        local_executor=None,
    ):
        self.topology = topology
        self.expected = expected
        self.executor = executor
        self.config = config
        self.keep_going = keep_going
        self.sleep = sleep
        self.cancel = cancel
        self.local_executor = local_executor

    def each(self, items, check):
        """
        Runs `check(item)` for every item in order and returns the list of
        `CheckResult`. The first failure is raised at once unless
        `keep_going` is set, then all failures are raised together once every
        item was checked.
        """
        results = []
        for item in items:
            try:
                check(item)
            except CheckFailure as failure:
                if not self.keep_going or isinstance(failure, PollCancelled):
                    raise
                logger.error("check failed: %s", failure)
                results.append(CheckResult(item, failure))
            else:
                results.append(CheckResult(item))

        failures = [r.failure for r in results if not r.ok]
        if len(failures) == 1:
            raise failures[0]
        if failures:
            raise MultipleFailures(failures)
        return results


@dataclass(frozen=True)
class RunReport:
    state: RunState
    results: tuple

    @property
    def passed(self):
        return self.state is RunState.COMPLETED

    @property
    def failed_phase(self):
        for result in self.results:
            if result.state is PhaseState.FAILED:
                return result
        return None

    def summary(self):
        lines = []
        for result in self.results:
            lines.append(
                "{:<20} {:<8} {:.2f}s".format(
                    result.name, result.state.value, result.elapsed
                )
            )
            for failure in result.failures:
                lines.append("    {}".format(failure))
        lines.append("run {}".format(self.state.value))
        return "\n".join(lines)


class Sequencer(object):
    "Runs an ordered list of phases."

    def __init__(self, phases):
        self.phases = OrderedDict()
        for phase in phases:
            if phase.name in self.phases:
                raise ValueError("duplicate phase '{}'".format(phase.name))
            self.phases[phase.name] = phase
        self.reset()

    def __str__(self):
        return "Sequencer<{}>".format(",".join(self.phases))

    def reset(self):
        "Forget every result, the next run starts from the first phase."
        self.state = RunState.NOT_STARTED
        self.results = OrderedDict(
            (name, PhaseResult(name)) for name in self.phases
        )

    def names(self):
        return list(self.phases)

    def report(self):
        return RunReport(self.state, tuple(self.results.values()))

    def _abort(self):
        self.state = RunState.ABORTED
        for result in self.results.values():
            if result.state is PhaseState.PENDING:
                result.state = PhaseState.SKIPPED

    def _execute(self, phase, context):
        result = self.results[phase.name]
        result.state = PhaseState.RUNNING
        if self.state is RunState.NOT_STARTED:
            self.state = RunState.IN_PROGRESS

        step("phase '{}' {}".format(phase.name, phase.desc).rstrip(), reset=True)
        start_time = time.time()
        try:
            phase.func(context)
        except MultipleFailures as failure:
            result.failures.extend(failure.failures)
            result.state = PhaseState.FAILED
            raise
        except Exception as failure:
            result.failures.append(failure)
            result.state = PhaseState.FAILED
            raise
        finally:
            result.elapsed = time.time() - start_time
            if result.state is PhaseState.FAILED:
                logger.error("phase '%s' failed", phase.name)
                self._abort()

        result.state = PhaseState.PASSED
        logger.info("phase '%s' passed in %.2f seconds", phase.name, result.elapsed)
        if all(r.passed for r in self.results.values()):
            self.state = RunState.COMPLETED
        return result

    def run(self, context):
        """
        Runs every phase in order from the first and returns a `RunReport`.
        A failed check is recorded in the report, not raised. Any other
        error also fails the phase and aborts the run, then propagates.
        """
        self.reset()
        for phase in self.phases.values():
            try:
                self._execute(phase, context)
            except CheckFailure:
                break
        return self.report()

    def run_phase(self, name, context):
        """
        Runs the single phase `name`. Raises `PhaseSkipped` if an earlier
        phase already failed, and re-raises the failure of this phase.
        """
        phase = self.phases[name]
        result = self.results[name]
        if self.state is RunState.ABORTED:
            result.state = PhaseState.SKIPPED
            failed = self.report().failed_phase
            raise PhaseSkipped(name, "phase '{}' failed".format(failed.name))
        if result.state is not PhaseState.PENDING:
            raise ValueError("phase '{}' already ran in this run".format(name))
        return self._execute(phase, context)
