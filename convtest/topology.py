# SPDX-License-Identifier: ISC
#
# topology.py
# Router/interface model and expected state fixtures
#

"""
Topology model.

A `Topology` is an ordered, read-only list of routers, each with an ordered
list of interfaces. It is built once from a JSON document of the form:

    {
        "routers": [
            {
                "hostname": "R1",
                "interfaces": [
                    {"name": "eth1", "vlan": "10", "address": "192.168.120.5/24"}
                ]
            }
        ]
    }

The expected state of a run is literal fixture data: `Fact` triples of
(host, predicate, target), grouped in an `ExpectedState`.
"""

import json
from dataclasses import dataclass, field
from typing import Tuple

from convtest.errors import TopologyError

# Expected state predicates
REACHES = "reaches"
RUNS = "runs"
PEERS_WITH = "peers-with"
HAS_ROUTE = "has-route"
REACHES_VIA_PROTOCOL = "reaches-via-protocol"

PREDICATES = (REACHES, RUNS, PEERS_WITH, HAS_ROUTE, REACHES_VIA_PROTOCOL)


@dataclass(frozen=True)
class Interface:
    name: str
    vlan: str = ""
    address: str = ""

    @property
    def ifname(self):
        "Interface name as used in commands: `name` or `name.vlan`."
        if self.vlan != "":
            return self.name + "." + self.vlan
        return self.name


@dataclass(frozen=True)
class Router:
    hostname: str
    interfaces: Tuple[Interface, ...] = ()


def _vlan_tag(vlan):
    "VLAN id as a string, absent or null means untagged."
    return "" if vlan is None else str(vlan)


@dataclass(frozen=True)
class Topology:
    routers: Tuple[Router, ...] = ()

    def __post_init__(self):
        seen = set()
        for router in self.routers:
            if router.hostname in seen:
                raise TopologyError("duplicate router '{}'".format(router.hostname))
            seen.add(router.hostname)

    def __iter__(self):
        return iter(self.routers)

    def __len__(self):
        return len(self.routers)

    def __contains__(self, hostname):
        return any(r.hostname == hostname for r in self.routers)

    def router(self, hostname):
        for router in self.routers:
            if router.hostname == hostname:
                return router
        raise KeyError(hostname)

    def hostnames(self):
        return [r.hostname for r in self.routers]

    def interfaces(self):
        "Yields (router, interface) for every interface in declared order."
        for router in self.routers:
            for intf in router.interfaces:
                yield router, intf

    @classmethod
    def from_dict(cls, topodef):
        routers = []
        try:
            for rdef in topodef["routers"]:
                intfs = tuple(
                    Interface(
                        name=idef["name"],
                        vlan=_vlan_tag(idef.get("vlan")),
                        address=idef.get("address", ""),
                    )
                    for idef in rdef.get("interfaces", [])
                )
                routers.append(Router(rdef["hostname"], intfs))
        except (KeyError, TypeError) as error:
            raise TopologyError("invalid topology definition: {}".format(error))
        return cls(tuple(routers))


def load_topology(path):
    "Reads a JSON topology file and returns a `Topology`."
    with open(path, "r") as topof:
        try:
            topodef = json.load(topof)
        except json.JSONDecodeError as error:
            raise TopologyError("{}: {}".format(path, error))
    return Topology.from_dict(topodef)


@dataclass(frozen=True)
class Fact:
    "One expected (host, predicate, target) triple."

    host: str
    predicate: str
    target: str

    def __str__(self):
        return "{} {} {}".format(self.host, self.predicate, self.target)


@dataclass(frozen=True)
class ExpectedState:
    facts: Tuple[Fact, ...] = field(default_factory=tuple)

    def __post_init__(self):
        for fact in self.facts:
            if fact.predicate not in PREDICATES:
                raise TopologyError("unknown predicate in '{}'".format(fact))

    @classmethod
    def from_pairs(cls, **groups):
        """
        Builds the expected state from (host, target) pairs keyed by
        predicate, with '-' written as '_' in keyword names:

            ExpectedState.from_pairs(peers_with=[("R1", "R2")])
        """
        facts = []
        for key, pairs in groups.items():
            predicate = key.replace("_", "-")
            facts.extend(Fact(host, predicate, target) for host, target in pairs)
        return cls(tuple(facts))

    def select(self, predicate):
        "Returns the facts with `predicate`, in declared order."
        return [f for f in self.facts if f.predicate == predicate]

    def validate(self, topology):
        "Raises `TopologyError` if a fact names a host the topology lacks."
        for fact in self.facts:
            if fact.host not in topology:
                raise TopologyError("unknown host in '{}'".format(fact))
            if fact.predicate == PEERS_WITH and fact.target not in topology:
                raise TopologyError("unknown peer in '{}'".format(fact))
