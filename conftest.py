# SPDX-License-Identifier: ISC
"""
Topology convergence test configuration
"""

import contextlib
import logging
import os
from pathlib import Path

import pytest

from convtest import topolog
from convtest.config import EXECUTOR_TYPES, load_config
from convtest.topolog import get_test_logdir, logger

CWD = os.path.dirname(os.path.realpath(__file__))


@contextlib.contextmanager
def log_handler(basename, logpath):
    topolog.logstart(basename, logpath)
    try:
        yield
    finally:
        topolog.logfinish(basename, logpath)


def pytest_addoption(parser):
    """
    Add options to run the topology tests against a live topology.
    """
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run topology tests against an already provisioned topology",
    )

    parser.addoption(
        "--executor",
        choices=EXECUTOR_TYPES,
        default=None,
        help="How commands reach the routers (overrides pytest.ini)",
    )

    parser.addoption(
        "--keep-going",
        action="store_true",
        default=False,
        help="Check every item of a phase before failing it",
    )

    parser.addoption(
        "--scenario",
        action="append",
        metavar="NAME",
        help="Only run the given scenario variant, can be given multiple times",
    )

    rundir_help = "directory for log files"
    parser.addini("rundir", rundir_help, default="/tmp/convtest")
    parser.addoption("--rundir", metavar="DIR", help=rundir_help)


def pytest_configure(config):
    "Set run directory, log file and the run configuration."
    config.addinivalue_line(
        "markers", "live: test needs a provisioned topology (see --live)"
    )

    rundir = config.option.rundir
    if not rundir:
        rundir = config.getini("rundir")
    if not rundir:
        rundir = "/tmp/convtest"
    config.option.rundir = rundir

    # Set the log_file (exec) to inside the rundir if not specified
    if not config.getoption("--log-file") and not config.getini("log_file"):
        config.option.log_file = os.path.join(rundir, "exec.log")

    runconfig = load_config(os.path.join(CWD, "pytest.ini"))
    if config.option.executor:
        runconfig = runconfig.replace(executor=config.option.executor)
    config.convtest_config = runconfig
    topolog.set_log_level(logger, runconfig.verbosity)


def pytest_collection_modifyitems(config, items):
    if config.getoption("--live"):
        return
    skip_live = pytest.mark.skip(reason="needs --live and a provisioned topology")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture(scope="session")
def runconfig(pytestconfig):
    "Run configuration read from pytest.ini and the command line."
    return pytestconfig.convtest_config


@pytest.fixture(autouse=True, scope="module")
def module_autouse(request):
    basename = get_test_logdir(request.node.nodeid, True)
    logdir = Path(request.config.option.rundir) / basename
    logpath = logdir / "exec.log"

    logdir.mkdir(mode=0o1777, parents=True, exist_ok=True)

    with log_handler(basename, logpath):
        yield


@pytest.fixture(autouse=True, scope="session")
def session_autouse():
    # Aligns logs nicely
    logging.addLevelName(logging.WARNING, " WARN")
    logging.addLevelName(logging.INFO, " INFO")

    logger.debug("Before the run")
    yield
    logger.debug("After the run")


def pytest_runtest_makereport(item, call):
    "Log all assert messages to default logger with error level"

    if call.excinfo is None:
        return

    modname = item.parent.module.__name__ if hasattr(item.parent, "module") else ""
    if call.excinfo.typename == "Skipped":
        logger.info(
            'test skipped at "{}/{}": {}'.format(modname, item.name, call.excinfo.value)
        )
    else:
        logger.error(
            'test failed at "{}/{}": {}'.format(modname, item.name, call.excinfo.value)
        )
