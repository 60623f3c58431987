# SPDX-License-Identifier: ISC
#
# scenario.py
# Named topology variants sharing one set of phases
#

"""
Scenarios.

A scenario is a named variant of a test (e.g. "eth" with plain interfaces,
"vlan" with VLAN sub-interfaces). Variants only differ in their topology
file; they share the expected state and are all run through the same
phases and sequencer.
"""

import os

from convtest import bgpcheck
from convtest.sequencer import PhaseContext, Sequencer
from convtest.topolog import logger
from convtest.topology import ExpectedState, load_topology

# Four routers in a ring, one /24 per link:
#   R1 -120- R2 -222- R3 -111- R4 -150- R1
BIRD_BGP_EXPECTED = ExpectedState.from_pairs(
    reaches=[
        ("R1", "192.168.120.10"),
        ("R1", "192.168.150.4"),
        ("R2", "192.168.222.2"),
        ("R2", "192.168.120.5"),
        ("R3", "192.168.222.10"),
        ("R3", "192.168.111.4"),
        ("R4", "192.168.111.2"),
        ("R4", "192.168.150.5"),
    ],
    runs=[
        ("R1", "bird"),
        ("R2", "bird"),
        ("R3", "bird"),
        ("R4", "bird"),
    ],
    peers_with=[
        ("R1", "R2"),
        ("R1", "R4"),
        ("R2", "R1"),
        ("R2", "R3"),
        ("R3", "R2"),
        ("R3", "R4"),
        ("R4", "R1"),
        ("R4", "R3"),
    ],
    has_route=[
        ("R1", "192.168.222.0/24"),
        ("R1", "192.168.111.0/24"),
        ("R2", "192.168.150.0/24"),
        ("R2", "192.168.111.0/24"),
        ("R3", "192.168.120.0/24"),
        ("R3", "192.168.150.0/24"),
        ("R4", "192.168.120.0/24"),
        ("R4", "192.168.222.0/24"),
    ],
    reaches_via_protocol=[
        ("R1", "192.168.222.2"),
        ("R1", "192.168.111.2"),
        ("R2", "192.168.111.4"),
        ("R2", "192.168.150.4"),
        ("R3", "192.168.120.5"),
        ("R3", "192.168.150.5"),
        ("R4", "192.168.120.10"),
        ("R4", "192.168.222.10"),
    ],
)


class Scenario(object):
    "A named topology variant."

    def __init__(self, name, topology_file, expected, phases=None):
        self.name = name
        self.topology_file = topology_file
        self.expected = expected
        self.phases = phases if phases is not None else bgpcheck.build_phases
        self._topology = None

    def __str__(self):
        return 'Scenario<name="{}",topology="{}">'.format(
            self.name, self.topology_file
        )

    @property
    def topology(self):
        "Topology of this variant, loaded and checked on first use."
        if self._topology is None:
            topology = load_topology(self.topology_file)
            self.expected.validate(topology)
            logger.info(
                "scenario %s: loaded %d routers from %s",
                self.name,
                len(topology),
                self.topology_file,
            )
            self._topology = topology
        return self._topology

    def sequencer(self):
        "Returns a new sequencer, every run starts from the first phase."
        return Sequencer(self.phases())

    def context(self, executor, config, **kwargs):
        return PhaseContext(self.topology, self.expected, executor, config, **kwargs)

    def run(self, executor, config, **kwargs):
        "Runs all phases of this scenario and returns the `RunReport`."
        logger.info("running scenario %s", self.name)
        report = self.sequencer().run(self.context(executor, config, **kwargs))
        logger.info("scenario %s:\n%s", self.name, report.summary())
        return report


def bird_bgp_scenarios(basedir):
    """
    Returns the BIRD BGP variants, keyed by name. Topology files are read
    from `<basedir>/<variant>/topology.json`.
    """
    return {
        name: Scenario(
            name, os.path.join(basedir, name, "topology.json"), BIRD_BGP_EXPECTED
        )
        for name in ("eth", "vlan")
    }
