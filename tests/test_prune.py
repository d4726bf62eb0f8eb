"""Tests for connection collection and pruning."""

import pytest

from conftest import CDL, ahu_template, conn, inst
from cdlx.export import ConnectionPruner, ExpandableSignals, collect_connections
from cdlx.export._prune import signal_name
from cdlx.model.instances import Connection, Endpoint
from cdlx.resolve import Classification, InstanceClassifier, InstanceIndex

Q = Classification.QUALIFIED
N = Classification.NOT_QUALIFIED


def _ep(instance, port):
    return Endpoint(instance=instance, port=port)


def _bus(port):
    """Endpoint on the expandable connector of the declaring instance."""
    return Endpoint(instance="", port=port)


@pytest.fixture
def index():
    tree = inst("top", "T", children=[
        inst("pid", CDL + "PID"),
        inst("lim", CDL + "Limiter"),
        inst("fan", "Fan"),
        inst("dam", "Damper"),
    ])
    return InstanceIndex(tree)


@pytest.fixture
def classes(index):
    return InstanceClassifier().classify_tree(index)


# ---------------------------------------------------------------------------
# Pruning rules
# ---------------------------------------------------------------------------

class TestPruneRules:
    def test_both_qualified_retained(self, index, classes):
        c = conn("pid.y", "lim.u")
        retained, ports = ConnectionPruner(index).prune([c], classes)
        assert retained == [c]
        assert ports == []

    def test_one_qualified_becomes_boundary_port(self, index, classes):
        retained, ports = ConnectionPruner(index).prune([conn("pid.y", "fan.u")], classes)
        assert retained == []
        assert len(ports) == 1
        port = ports[0]
        assert port.name == "fan_u"
        assert port.endpoint == _ep("pid", "y")
        assert port.external == [_ep("fan", "u")]

    def test_qualified_side_may_be_b(self, index, classes):
        _, ports = ConnectionPruner(index).prune([conn("fan.y", "lim.u")], classes)
        assert ports[0].endpoint == _ep("lim", "u")

    def test_equipment_link_dropped(self, index, classes):
        retained, ports = ConnectionPruner(index).prune([conn("fan.port_b", "dam.port_a")], classes)
        assert retained == []
        assert ports == []

    def test_annotated_equipment_link_dropped(self, index, classes):
        c = conn("fan.y", "dam.u", annotated=True)
        retained, ports = ConnectionPruner(index).prune([c], classes)
        assert retained == []
        assert ports == []

    def test_annotated_mixed_link_retained(self, index, classes):
        c = conn("pid.y", "fan.u", annotated=True)
        retained, ports = ConnectionPruner(index).prune([c], classes)
        assert retained == [c]
        assert ports == []

    def test_port_of_nested_connector(self, index, classes):
        c = Connection(a=_ep("pid", "bus.y"), b=_ep("lim", "u"))
        retained, _ = ConnectionPruner(index).prune([c], classes)
        assert retained == [c]

    def test_duplicate_port_names_numbered(self, index, classes):
        connections = [
            Connection(a=_ep("pid", "y"), b=_ep("fan", "u")),
            Connection(a=_ep("lim", "y"), b=_ep("fan", "u")),
        ]
        _, ports = ConnectionPruner(index).prune(connections, classes)
        assert [p.name for p in ports] == ["fan_u", "fan_u_2"]

    def test_same_endpoint_keeps_name(self, index, classes):
        connections = [conn("pid.y", "fan.u"), conn("pid.y", "fan.u")]
        _, ports = ConnectionPruner(index).prune(connections, classes)
        assert [p.name for p in ports] == ["fan_u", "fan_u"]


# ---------------------------------------------------------------------------
# Expandable connectors
# ---------------------------------------------------------------------------

class TestExpandable:
    def test_signal_name(self):
        assert signal_name(_bus("bus.ahu.y1SupFan")) == "ahu.y1SupFan"
        assert signal_name(_bus("bus")) is None

    def test_expandable_endpoint_never_qualified(self, index, classes):
        c = Connection(a=_ep("pid", "y"), b=_ep("lim", "bus.y"), b_expandable=True)
        retained, ports = ConnectionPruner(index).prune([c], classes)
        assert retained == []
        assert ports[0].name == "y"

    def test_annotated_expandable_link_not_retained(self, index, classes):
        c = Connection(a=_ep("fan", "y"), b=_bus("bus.ahu.y"), b_expandable=True, annotated=True)
        retained, ports = ConnectionPruner(index).prune([c], classes)
        assert retained == []
        assert ports == []

    def test_boundary_port_lists_equipment_behind_bus(self, index, classes):
        connections = [
            Connection(a=_ep("pid", "y"), b=_bus("bus.ahu.y1SupFan"), b_expandable=True),
            Connection(a=_bus("bus.ahu.y1SupFan"), b=_ep("fan", "y1"), a_expandable=True),
            Connection(a=_bus("bus.ahu.y1SupFan"), b=_ep("dam", "y1"), a_expandable=True),
        ]
        pruner = ConnectionPruner(index, ExpandableSignals(connections))
        retained, ports = pruner.prune(connections, classes)
        assert retained == []
        assert len(ports) == 1
        assert ports[0].name == "ahu_y1SupFan"
        assert ports[0].external == [_ep("fan", "y1"), _ep("dam", "y1")]

    def test_without_signal_map_external_is_empty(self, index, classes):
        c = Connection(a=_ep("pid", "y"), b=_bus("bus.ahu.y1SupFan"), b_expandable=True)
        _, ports = ConnectionPruner(index).prune([c], classes)
        assert ports[0].external == []

    def test_bus_to_bus_links_ignored(self):
        signals = ExpandableSignals([
            Connection(a=_bus("bus.a"), b=_bus("bus2.a"), a_expandable=True, b_expandable=True),
        ])
        assert signals.signals() == []

    def test_signals_enumerated(self):
        signals = ExpandableSignals([
            Connection(a=_bus("bus.ahu.y"), b=_ep("fan", "y"), a_expandable=True),
            Connection(a=_ep("pid", "u"), b=_bus("bus.ahu.u"), b_expandable=True),
        ])
        assert signals.signals() == ["ahu.u", "ahu.y"]
        assert "ahu.y" in signals
        assert signals.endpoints("ahu.u") == [_ep("pid", "u")]
        assert signals.endpoints("zz") == []


# ---------------------------------------------------------------------------
# Collection over a template
# ---------------------------------------------------------------------------

class TestCollect:
    def test_endpoints_made_absolute(self):
        connections = collect_connections(InstanceIndex(ahu_template()))
        names = {(c.a.qualified_name(), c.b.qualified_name()) for c in connections}
        assert ("fanSupDra.y", "bus.ahu.ySupFan") in names
        assert ("ctl.conTSup.y", "ctl.bus.ahu.ySupFan") in names
        assert ("ctl.conTSup.u_s", "ctl.TSupSet") in names

    def test_template_pruning(self):
        index = InstanceIndex(ahu_template())
        classes = InstanceClassifier().classify_tree(index)
        connections = collect_connections(index)
        retained, ports = ConnectionPruner(index, ExpandableSignals(connections)).prune(
            connections, classes,
        )
        assert [(c.a.qualified_name(), c.b.qualified_name()) for c in retained] == [
            ("ctl.conTSup.u_s", "ctl.TSupSet"),
        ]
        by_name = {p.name: p for p in ports}
        assert set(by_name) == {"secOutRel_TOut", "ahu_ySupFan"}
        assert by_name["ahu_ySupFan"].endpoint == _ep("ctl.conTSup", "y")
        assert by_name["ahu_ySupFan"].external == [_ep("fanSupDra", "y")]
        assert by_name["secOutRel_TOut"].external == [_ep("secOutRel", "TOut")]
