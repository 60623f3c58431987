# SPDX-License-Identifier: ISC
"""
Fixtures for the convtest library unit tests.
"""

import pytest

from convtest.config import RunConfig
from convtest.executor import Executor

PING_OK = "3 packets transmitted, 3 packets received, 0% packet loss"
PING_LOST = "3 packets transmitted, 0 packets received, 100% packet loss"


class FakeExecutor(Executor):
    """
    Executor that records every call and answers with `handler(host, args)`.
    The handler returns the output or raises.
    """

    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def execute(self, host, *args):
        self.calls.append((host,) + args)
        return self.handler(host, args)


def converged_output(host, args):
    "Output of a healthy, converged topology."
    if args[0] == "ping":
        return PING_OK
    if args[0] == "ps":
        return "  412 ?        Ss     0:00 bird -c /etc/bird/bird.conf\n"
    if args[0] == "birdc":
        peer = args[-1]
        return "{}   BGP      master   up     10:01:02    Established\n".format(peer)
    if args[:3] == ("ip", "route", "show"):
        return "{} via 192.168.1.1 dev eth1 proto bird\n".format(args[3])
    return ""


@pytest.fixture
def fake_executor():
    "Returns a factory for `FakeExecutor`, defaults to a converged topology."

    def _make(handler=converged_output):
        return FakeExecutor(handler)

    return _make


@pytest.fixture
def sleeps():
    "List of durations passed to `fake_sleep`."
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append


@pytest.fixture
def fast_config():
    "Small budgets and no waiting."
    return RunConfig(
        executor="local",
        neighbor_count=3,
        route_count=2,
        poll_wait=0,
        flap_wait=0,
        settle_wait=0,
    )
