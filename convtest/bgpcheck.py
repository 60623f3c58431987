# SPDX-License-Identifier: ISC
#
# bgpcheck.py
# BGP convergence phases for BIRD routers
#

"""
BGP (BIRD) convergence phases.

    connectivity        directly connected neighbors answer pings
    bird                the bird process runs on every router
    neighbors           every expected BGP session is Established
    routes              every expected prefix is in the kernel table
    inter-connectivity  remote subnets answer pings through BGP routes
    flap                every interface goes down and up again

Each phase gets a `PhaseContext`; `build_phases()` returns them in the order
they must run.
"""

from convtest import assertions
from convtest.executor import dump_forwarding_state
from convtest.poller import wait_for
from convtest.sequencer import Phase
from convtest.topolog import logger
from convtest.topology import (
    HAS_ROUTE,
    PEERS_WITH,
    REACHES,
    REACHES_VIA_PROTOCOL,
    RUNS,
)

PING_RECEIVED = r"\b[1-9]\d* packets received"
BGP_ESTABLISHED = ".*Established.*"


def _dump_fib(ctx):
    if ctx.local_executor is None:
        logger.debug("no local executor, skipping forwarding state dump")
        return None
    return dump_forwarding_state(ctx.local_executor, ctx.config.fib_dump_cmd)


def ping(ctx, host, target):
    "Fatal check that `host` gets at least one echo reply from `target`."
    count = ctx.config.ping_count
    output = ctx.executor.execute(host, "ping", "-c{}".format(count), target)
    assertions.match(
        output,
        PING_RECEIVED,
        desc="{}: no ping reply from {}".format(host, target),
    )
    return output


def check_connectivity(ctx):
    "Ping directly connected addresses."

    def _check(fact):
        logger.info("Checking connectivity %s -> %s", fact.host, fact.target)
        ping(ctx, fact.host, fact.target)

    return ctx.each(ctx.expected.select(REACHES), _check)


def check_bird(ctx):
    "Check the routing daemon is running on every router."
    ctx.sleep(ctx.config.settle_wait)

    items = [(f.host, f.target) for f in ctx.expected.select(RUNS)]
    if not items:
        items = [(hostname, "bird") for hostname in ctx.topology.hostnames()]

    def _check(item):
        hostname, daemon = item
        logger.info("Checking %s on %s", daemon, hostname)
        output = ctx.executor.execute(hostname, "ps", "ax")
        assertions.match(
            output,
            ".*{}.*".format(daemon),
            desc="{}: {} not running".format(hostname, daemon),
        )

    return ctx.each(items, _check)


def check_neighbors(ctx):
    "Wait for every BGP session to reach the Established state."

    def _check(fact):
        logger.info("Checking BGP peer %s on %s", fact.target, fact.host)
        attempt = assertions.output_matcher(
            ctx.executor,
            fact.host,
            ("birdc", "show", "protocols", "all", fact.target),
            BGP_ESTABLISHED,
        )
        wait_for(
            attempt,
            ctx.config.neighbor_count,
            ctx.config.poll_wait,
            "No bgp peer established for {}: {}".format(fact.host, fact.target),
            sleep=ctx.sleep,
            cancel=ctx.cancel,
        )

    return ctx.each(ctx.expected.select(PEERS_WITH), _check)


def check_routes(ctx):
    "Wait for every expected prefix to be installed."

    def _check(fact):
        logger.info("Checking route %s on %s", fact.target, fact.host)
        attempt = assertions.output_matcher(
            ctx.executor,
            fact.host,
            ("ip", "route", "show", fact.target),
            fact.target,
        )
        wait_for(
            attempt,
            ctx.config.route_count,
            ctx.config.poll_wait,
            "No bgp route for {}: {}".format(fact.host, fact.target),
            sleep=ctx.sleep,
            cancel=ctx.cancel,
        )

    return ctx.each(ctx.expected.select(HAS_ROUTE), _check)


def check_inter_connectivity(ctx):
    "Ping remote subnets, reachable only through BGP learned routes."

    def _check(fact):
        logger.info("Checking inter-connectivity %s -> %s", fact.host, fact.target)
        ping(ctx, fact.host, fact.target)
        _dump_fib(ctx)

    return ctx.each(ctx.expected.select(REACHES_VIA_PROTOCOL), _check)


def flap_interface(ctx, hostname, ifname):
    "Take `ifname` down and up again on `hostname`, waiting after each toggle."
    logger.info("Flapping %s on %s", ifname, hostname)
    ctx.executor.execute(hostname, "ip", "link", "set", "down", ifname)
    ctx.sleep(ctx.config.flap_wait)
    ctx.executor.execute(hostname, "ip", "link", "set", "up", ifname)
    ctx.sleep(ctx.config.flap_wait)
    _dump_fib(ctx)


def check_flap(ctx):
    "Flap every interface of every router, in topology order."

    def _check(item):
        router, intf = item
        flap_interface(ctx, router.hostname, intf.ifname)

    return ctx.each(list(ctx.topology.interfaces()), _check)


def build_phases():
    "Returns the BGP phases in execution order."
    return [
        Phase("connectivity", check_connectivity, "(directly connected pings)"),
        Phase("bird", check_bird, "(routing daemon liveness)"),
        Phase("neighbors", check_neighbors, "(BGP sessions established)"),
        Phase("routes", check_routes, "(BGP routes installed)"),
        Phase("inter-connectivity", check_inter_connectivity, "(remote pings)"),
        Phase("flap", check_flap, "(interface down/up)"),
    ]
