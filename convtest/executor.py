# SPDX-License-Identifier: ISC
#
# executor.py
# Run commands on topology hosts
#

"""
Command execution on topology hosts.

An executor takes a host name and an argument vector, runs the command on
that host and returns its standard output. Any failure to run the command,
or a non-zero exit status, raises `ExecutionError`. How a host name maps to
something that can run commands (a container, a network namespace) is up
to the executor subclass; all of them go through a munet `Commander`.
"""

import logging
import shlex
import subprocess

from munet.base import Commander, shell_quote

from convtest.errors import ExecutionError
from convtest.topolog import logger


class Executor(object):
    "Abstract command executor"

    def execute(self, host, *args):
        """
        Runs `args` on `host` and returns the command output. Raises
        `ExecutionError` when the command can't be run or fails.
        """
        raise NotImplementedError()

    def __call__(self, host, *args):
        return self.execute(host, *args)


class CommanderExecutor(Executor):
    """
    Executor that builds a host specific command line and runs it through a
    munet `Commander` on the local system.
    """

    # Argument prefix that places the command on the host, the host name
    # is appended to it.
    prefix = ()

    def __init__(self, commander=None):
        if commander is None:
            commander = Commander(
                self.__class__.__name__.lower(),
                logger=logging.getLogger("convtest.exec"),
            )
        self.commander = commander

    def __str__(self):
        return "{}<prefix={}>".format(self.__class__.__name__, " ".join(self.prefix))

    def host_command(self, host, args):
        "Returns the full argument list that runs `args` on `host`."
        return list(self.prefix) + [host] + list(args)

    def execute(self, host, *args):
        cmd = self.host_command(host, args)
        logger.debug("[%s] running: %s", host, " ".join(shell_quote(a) for a in cmd))
        try:
            rc, stdout, stderr = self.commander.cmd_status(cmd, warn=False)
        except (OSError, ValueError, subprocess.SubprocessError) as error:
            # undecodable output lands here as UnicodeDecodeError
            raise ExecutionError(host, args, error=str(error)) from error

        if rc != 0:
            logger.debug("[%s] rc %s, stderr: %s", host, rc, stderr)
            raise ExecutionError(host, args, rc, stdout, stderr)
        return stdout


class DockerExecutor(CommanderExecutor):
    "Runs commands inside the container named after the host."

    prefix = ("docker", "exec")


class NetnsExecutor(CommanderExecutor):
    "Runs commands inside the network namespace named after the host."

    prefix = ("ip", "netns", "exec")


class LocalExecutor(CommanderExecutor):
    "Runs commands on the local control process, the host name is only logged."

    def host_command(self, host, args):
        return list(args)


EXECUTORS = {
    "docker": DockerExecutor,
    "netns": NetnsExecutor,
    "local": LocalExecutor,
}


def get_executor(name, commander=None):
    "Returns a new executor instance for the configured executor `name`."
    try:
        cls = EXECUTORS[name]
    except KeyError:
        raise ValueError("unknown executor '{}'".format(name)) from None
    return cls(commander)


def dump_forwarding_state(executor, command="vnet show ip fib"):
    """
    Dumps the forwarding table of the local control process to the log.

    The dump is diagnostic only: a failure is logged and `None` is returned,
    it never fails the calling check.
    """
    args = shlex.split(command)
    try:
        output = executor.execute("localhost", *args)
    except ExecutionError as error:
        logger.warning("forwarding state dump failed: %s", error)
        return None

    logger.info("forwarding state ('%s'):\n%s", command, output)
    return output
