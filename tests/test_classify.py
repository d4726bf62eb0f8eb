"""Tests for the instance classifier."""

from conftest import CDL, ahu_template, inst
from cdlx.resolve import Classification, InstanceClassifier, InstanceIndex

Q = Classification.QUALIFIED
N = Classification.NOT_QUALIFIED


class TestClassify:
    def test_library_class_is_qualified(self):
        assert InstanceClassifier().classify(inst("pid", CDL + "CDL.Reals.PID")) == Q

    def test_equipment_class_is_not_qualified(self):
        assert InstanceClassifier().classify(inst("fan", "Templates.Components.Fan")) == N

    def test_prefix_must_match_at_start(self):
        assert InstanceClassifier().classify(inst("x", "Project." + CDL + "PID")) == N

    def test_marker_annotation(self):
        node = inst("x", "Project.Custom", annotations=['__cdl(export=true)'])
        assert InstanceClassifier().classify(node) == Q

    def test_other_annotations_ignored(self):
        node = inst("x", "Project.Custom", annotations=['Placement(transformation)'])
        assert InstanceClassifier().classify(node) == N

    def test_custom_prefixes_and_marker(self):
        classifier = InstanceClassifier(prefixes=["Lib.A.", "Lib.B."], marker="@export")
        assert classifier.classify(inst("a", "Lib.B.Block")) == Q
        assert classifier.classify(inst("b", CDL + "PID")) == N
        assert classifier.classify(inst("c", "X", annotations=["@export"])) == Q

    def test_same_class_same_result(self):
        classifier = InstanceClassifier()
        a = classifier.classify(inst("a", CDL + "PID"))
        b = classifier.classify(inst("b", CDL + "PID"))
        assert a == b == Q


class TestClassifyTree:
    def test_every_instance_classified(self):
        index = InstanceIndex(ahu_template())
        result = InstanceClassifier().classify_tree(index)
        assert list(result) == list(index.paths())
        assert result == {
            "": N,
            "dat": N,
            "secOutRel": N,
            "ctl": Q,
            "ctl.conTSup": Q,
            "fanSupDra": N,
        }

    def test_independent_of_parent(self):
        # A qualified instance under an unqualified one, and the reverse.
        tree = inst("top", "T", children=[
            inst("ctl", CDL + "Controller", children=[inst("helper", "Project.Helper")]),
            inst("fan", "Fan", children=[inst("pid", CDL + "PID")]),
        ])
        result = InstanceClassifier().classify_tree(InstanceIndex(tree))
        assert result["ctl.helper"] == N
        assert result["fan.pid"] == Q
