# SPDX-License-Identifier: ISC
#
# topolog.py
# Logging helpers for convergence tests
#

"""
Logging utilities for convergence tests.

All library code logs through `logger`. pytest adds a file handler per test
module with `logstart()` and removes it again with `logfinish()`.
"""

import logging
import os

# Helper dictionary to convert config logging levels to Python's logging.
DEBUG_TOPO2LOGGING = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "output": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}
FORMAT = "%(asctime)s %(levelname)s: %(name)s: %(message)s"

handlers = {}
logger = logging.getLogger("convtest")


def get_test_logdir(nodeid=None, module=False):
    """Get log directory relative pathname."""
    # nodeid: bird_bgp/test_bird_bgp.py::test_neighbors[eth]
    # may be missing "::testname" if module is True
    if not nodeid:
        nodeid = os.environ["PYTEST_CURRENT_TEST"].split(" ")[0]

    cur_test = nodeid.replace("[", "_").replace("]", "_")
    if module:
        idx = cur_test.rfind("::")
        path = cur_test if idx == -1 else cur_test[:idx]
        testname = ""
    else:
        path, testname = cur_test.split("::")
        testname = testname.replace("/", ".")
    path = path[:-3].replace("/", ".")

    return path if module else os.path.join(path, testname)


def set_handler(lg, target=None):
    if target is None:
        h = logging.NullHandler()
    else:
        if isinstance(target, str):
            h = logging.FileHandler(filename=target, mode="w")
        else:
            h = logging.StreamHandler(stream=target)
        h.setFormatter(logging.Formatter(fmt=FORMAT))
    # Don't filter anything at the handler level
    h.setLevel(logging.DEBUG)
    lg.addHandler(h)
    return h


def set_log_level(lg, level):
    "Set the logging level."
    log_level = DEBUG_TOPO2LOGGING.get(level, level)
    lg.setLevel(log_level)


def logstart(nodeid, logpath):
    """Called from pytest before module setup."""
    logpath = logpath.absolute()

    logging.debug("logstart: adding logging for %s at %s", nodeid, logpath)
    root_logger = logging.getLogger()
    handler = logging.FileHandler(logpath, mode="w")
    handler.setFormatter(logging.Formatter(FORMAT))

    root_logger.addHandler(handler)
    handlers[nodeid] = handler
    return handler


def logfinish(nodeid, logpath):
    """Called from pytest after module teardown."""
    root_logger = logging.getLogger()

    if nodeid not in handlers:
        logging.critical("can't find log handler to remove")
        return

    logging.debug("logfinish: removing logging for %s at %s", nodeid, logpath)
    h = handlers.pop(nodeid)
    root_logger.removeHandler(h)
    h.flush()
    h.close()


class Stepper:
    """
    Prints step number for the test case step being executed
    """

    count = 1

    def __call__(self, msg, reset):
        if reset:
            Stepper.count = 1
            logger.info(msg)
        else:
            logger.info("STEP %s: '%s'", Stepper.count, msg)
            Stepper.count += 1


def step(msg, reset=False):
    """
    Log a numbered test step.
    * `msg`: step message body.
    * `reset`: reset step count to 1 when set to True.
    """
    _step = Stepper()
    _step(msg, reset)


console_handler = set_handler(logger, None)
set_log_level(logger, "debug")
