# SPDX-License-Identifier: ISC
#
# config.py
# Run configuration for convergence tests
#

"""
Run configuration.

Values are read from the `[convtest]` section of `pytest.ini` at the root of
the test tree. Every retry budget is a named value here and is passed
explicitly to the poller at each call site.
"""

import configparser
import os
from dataclasses import dataclass, fields, replace

CWD = os.path.dirname(os.path.realpath(__file__))

CONFIG_SECTION = "convtest"

# Configuration defaults
convtest_defaults = {
    "verbosity": "info",
    "executor": "docker",
    "neighbor_count": "120",
    "route_count": "60",
    "poll_wait": "1",
    "flap_wait": "1",
    "settle_wait": "1",
    "ping_count": "3",
    "fib_dump_cmd": "vnet show ip fib",
}

EXECUTOR_TYPES = ("docker", "netns", "local")


@dataclass(frozen=True)
class RunConfig:
    "Typed view of the `[convtest]` section."

    verbosity: str = "info"
    executor: str = "docker"
    neighbor_count: int = 120
    route_count: int = 60
    poll_wait: float = 1.0
    flap_wait: float = 1.0
    settle_wait: float = 1.0
    ping_count: int = 3
    fib_dump_cmd: str = "vnet show ip fib"

    def __post_init__(self):
        if self.executor not in EXECUTOR_TYPES:
            raise ValueError(
                "unknown executor '{}', expected one of {}".format(
                    self.executor, ", ".join(EXECUTOR_TYPES)
                )
            )
        for name in ("neighbor_count", "route_count", "ping_count"):
            if getattr(self, name) < 1:
                raise ValueError("{} must be at least 1".format(name))
        for name in ("poll_wait", "flap_wait", "settle_wait"):
            if getattr(self, name) < 0:
                raise ValueError("{} must not be negative".format(name))

    def replace(self, **kwargs):
        "Return a copy with the given values overridden."
        return replace(self, **kwargs)


def load_config(path=None):
    """
    Loads the configuration file `pytest.ini` (by default the one located at
    the root of the test tree) and returns a `RunConfig`.
    """
    config = configparser.ConfigParser(convtest_defaults)
    if path is None:
        path = os.path.join(CWD, "../pytest.ini")
    config.read(path)
    if not config.has_section(CONFIG_SECTION):
        config.add_section(CONFIG_SECTION)

    values = {}
    for field in fields(RunConfig):
        if field.type is int:
            values[field.name] = config.getint(CONFIG_SECTION, field.name)
        elif field.type is float:
            values[field.name] = config.getfloat(CONFIG_SECTION, field.name)
        else:
            values[field.name] = config.get(CONFIG_SECTION, field.name)
    return RunConfig(**values)
