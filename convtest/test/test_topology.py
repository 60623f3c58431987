#!/usr/bin/env python
# SPDX-License-Identifier: ISC

#
# test_topology.py
# Tests for the topology model and expected state.
#

"""
Tests for `Topology`, `Interface` and `ExpectedState`.
"""

import json
import os
import sys

import pytest

from convtest.errors import TopologyError
from convtest.topology import (
    ExpectedState,
    Fact,
    Interface,
    PEERS_WITH,
    REACHES,
    Router,
    Topology,
    load_topology,
)

CWD = os.path.dirname(os.path.realpath(__file__))
BIRD_BGP = os.path.join(CWD, "../../bird_bgp")


def test_ifname_untagged():
    assert Interface("eth0").ifname == "eth0"
    assert Interface("eth0", vlan="").ifname == "eth0"


def test_ifname_tagged():
    assert Interface("eth0", vlan="100").ifname == "eth0.100"
    assert Interface("eth-4-0", vlan="10").ifname == "eth-4-0.10"


def test_vlan_zero_is_tagged():
    topo = Topology.from_dict(
        {
            "routers": [
                {
                    "hostname": "R1",
                    "interfaces": [
                        {"name": "eth1", "vlan": 0},
                        {"name": "eth2", "vlan": None},
                        {"name": "eth3"},
                    ],
                }
            ]
        }
    )

    names = [i.ifname for _, i in topo.interfaces()]
    assert names == ["eth1.0", "eth2", "eth3"]


def test_interfaces_in_declared_order():
    topo = Topology.from_dict(
        {
            "routers": [
                {"hostname": "R2", "interfaces": [{"name": "b"}, {"name": "a"}]},
                {"hostname": "R1", "interfaces": [{"name": "c", "vlan": 5}]},
            ]
        }
    )

    items = [(r.hostname, i.ifname) for r, i in topo.interfaces()]
    assert items == [("R2", "b"), ("R2", "a"), ("R1", "c.5")]
    assert topo.hostnames() == ["R2", "R1"]
    assert "R1" in topo
    assert "R3" not in topo
    assert topo.router("R1").interfaces == (Interface("c", "5"),)


def test_router_lookup_unknown():
    topo = Topology((Router("R1"),))
    with pytest.raises(KeyError):
        topo.router("R9")


def test_duplicate_hostname():
    with pytest.raises(TopologyError):
        Topology((Router("R1"), Router("R1")))


def test_invalid_definition():
    with pytest.raises(TopologyError):
        Topology.from_dict({"routers": [{"interfaces": []}]})
    with pytest.raises(TopologyError):
        Topology.from_dict({})


def test_load_topology_files():
    "The shipped variants only differ in their VLAN tags."
    eth = load_topology(os.path.join(BIRD_BGP, "eth", "topology.json"))
    vlan = load_topology(os.path.join(BIRD_BGP, "vlan", "topology.json"))

    assert eth.hostnames() == ["R1", "R2", "R3", "R4"]
    assert vlan.hostnames() == eth.hostnames()
    assert all(i.ifname == i.name for _, i in eth.interfaces())
    assert all(i.ifname == i.name + "." + i.vlan for _, i in vlan.interfaces())
    assert len(list(eth.interfaces())) == 8


def test_load_topology_bad_json(tmp_path):
    path = tmp_path / "topology.json"
    path.write_text("{routers")
    with pytest.raises(TopologyError):
        load_topology(str(path))


def test_load_topology_from_file(tmp_path):
    path = tmp_path / "topology.json"
    path.write_text(
        json.dumps({"routers": [{"hostname": "R1", "interfaces": [{"name": "e1"}]}]})
    )
    topo = load_topology(str(path))
    assert len(topo) == 1


def test_expected_state_select_keeps_order():
    expected = ExpectedState.from_pairs(
        peers_with=[("R2", "R1"), ("R1", "R2")],
        reaches=[("R1", "10.0.0.1")],
    )

    assert expected.select(PEERS_WITH) == [
        Fact("R2", PEERS_WITH, "R1"),
        Fact("R1", PEERS_WITH, "R2"),
    ]
    assert expected.select(REACHES) == [Fact("R1", REACHES, "10.0.0.1")]
    assert expected.select("has-route") == []


def test_expected_state_unknown_predicate():
    with pytest.raises(TopologyError):
        ExpectedState((Fact("R1", "likes", "R2"),))


def test_expected_state_validate():
    topo = Topology((Router("R1"), Router("R2")))
    ExpectedState.from_pairs(peers_with=[("R1", "R2")]).validate(topo)

    with pytest.raises(TopologyError):
        ExpectedState.from_pairs(reaches=[("R3", "10.0.0.1")]).validate(topo)
    with pytest.raises(TopologyError):
        ExpectedState.from_pairs(peers_with=[("R1", "R7")]).validate(topo)


if __name__ == "__main__":
    sys.exit(pytest.main())
