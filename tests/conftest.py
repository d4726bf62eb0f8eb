"""Shared test helpers for the cdlx test suite."""

from cdlx.model.expressions import (
    BinaryExpr,
    BinaryOp,
    IfBranch,
    IfExpr,
    LiteralExpr,
    ScopeKind,
    VariableRef,
)
from cdlx.model.instances import Connection, Endpoint, Instance, ParameterBinding

CDL = "Buildings.Controls.OBC."


def lit(value) -> LiteralExpr:
    """LiteralExpr from a Python value or a literal string."""
    if isinstance(value, bool):
        return LiteralExpr(value="true" if value else "false")
    return LiteralExpr(value=str(value))


def ref(name: str, scope: ScopeKind = ScopeKind.NONE) -> VariableRef:
    return VariableRef(name=name, scope=scope)


def binop(op: BinaryOp, left, right) -> BinaryExpr:
    return BinaryExpr(op=op, left=left, right=right)


def if_chain(branches, else_value) -> IfExpr:
    """if_chain([(cond, value), ...], else_value)"""
    return IfExpr(
        branches=[IfBranch(condition=c, value=v) for c, v in branches],
        else_value=else_value,
    )


def param(name: str, expression=None, scope: str | None = None, **kwargs) -> ParameterBinding:
    return ParameterBinding(name=name, expression=expression, scope=scope, **kwargs)


def inst(name: str, class_path: str = "Equipment.Generic", *, children=(), params=(), **kwargs) -> Instance:
    return Instance(
        name=name,
        class_path=class_path,
        children=list(children),
        parameters=list(params),
        **kwargs,
    )


def conn(a: str, b: str, **kwargs) -> Connection:
    """conn("ctl.y", "fan.u"): the last segment is the port.

    Use "instance:port" for a dotted port, e.g. ":bus.ahu.y1SupFan" for a
    signal on the expandable connector of the declaring instance.
    """
    return Connection(a=_endpoint(a), b=_endpoint(b), **kwargs)


def _endpoint(text: str) -> Endpoint:
    if ":" in text:
        instance, _, port = text.partition(":")
    else:
        instance, _, port = text.rpartition(".")
    return Endpoint(instance=instance, port=port)


def ahu_template(typ_sec_out: str = "OutdoorSection#SingleDamper") -> Instance:
    """A small air-handler template: equipment, a data record, one controller.

    ``ctl`` receives propagated parameters written at template level.
    """
    dat = inst(
        "dat", "Project.Data.AirHandler", is_record=True,
        params=[
            param("mAirSup_flow_nominal", lit(4000)),
            param("TSup_nominal", lit("285.15")),
        ],
    )
    sec_out_rel = inst(
        "secOutRel", "Templates.Components.OutdoorReliefReturnSection",
        params=[
            param("typSecOut", lit(typ_sec_out)),
            param("mAirSup_flow_nominal", ref("dat.mAirSup_flow_nominal"), scope=""),
            param("mAirSupDesign_flow", lit(4000)),
        ],
    )
    ctl = inst(
        "ctl", CDL + "ASHRAE.G36.AHUs.MultiZone.VAV.Controller",
        params=[
            param(
                "minOADes",
                if_chain(
                    [
                        (binop(BinaryOp.EQ, ref("secOutRel.typSecOut"), lit("OutdoorSection#SingleDamper")),
                         lit("MinOADesign#CommonDamper")),
                        (binop(BinaryOp.EQ, ref("secOutRel.typSecOut"), lit("OutdoorSection#DedicatedDampersAirflow")),
                         lit("MinOADesign#SeparateDamper_AFMS")),
                        (binop(BinaryOp.EQ, ref("secOutRel.typSecOut"), lit("OutdoorSection#DedicatedDampersPressure")),
                         lit("MinOADesign#SeparateDamper_DP")),
                    ],
                    lit("MinOADesign#CommonDamper"),
                ),
                scope="",
            ),
            param(
                "VPriSysMax_flow",
                binop(BinaryOp.DIV, ref("secOutRel.mAirSupDesign_flow"), lit("1.2")),
                scope="",
            ),
            param("TSup_nominal", ref("dat.TSup_nominal"), scope=""),
            param("have_perZonRehBox", lit(True)),
        ],
        children=[
            inst("conTSup", CDL + "CDL.Reals.PID", params=[param("k", lit("0.05"))]),
        ],
        connections=[
            conn("conTSup.y", ":bus.ahu.ySupFan", b_expandable=True),
            conn("conTSup.u_s", ":TSupSet"),
        ],
    )
    fan = inst("fanSupDra", "Templates.Components.Fans.SingleVariable", params=[param("nFan", lit(1))])
    return inst(
        "VAV", "Templates.AirHandlersFans.VAVMultiZone",
        children=[dat, sec_out_rel, ctl, fan],
        connections=[
            conn("fanSupDra.y", ":bus.ahu.ySupFan", b_expandable=True),
            conn("ctl.TSup", "secOutRel.TOut"),
            conn("fanSupDra.port_b", "secOutRel.port_a"),
        ],
    )
