"""Connection pruner: keeps the links a CDL document can express.

Rules, applied in order to every connection:

1. both endpoints on qualified instances -> retained
2. exactly one endpoint on a qualified instance, graphical annotation
   present -> retained
3. exactly one endpoint on a qualified instance -> dropped, recorded as a
   ``BoundaryPort`` on the qualified side
4. otherwise -> dropped silently, annotated or not

An endpoint under an expandable connector never counts as qualified and
never survives in a retained link: open-ended connectors have no CDL
counterpart.  The equipment endpoints behind such a connector are looked up
in a signal map built once, before pruning, from all connections.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict

from cdlx.model.export import BoundaryPort
from cdlx.model.instances import Connection, Endpoint
from cdlx.resolve import Classification, InstanceIndex, join_path

logger = logging.getLogger(__name__)

_NON_IDENT = re.compile(r"[^0-9A-Za-z_]+")


def collect_connections(index: InstanceIndex) -> list[Connection]:
    """All connections of the tree with endpoint paths made absolute."""
    result: list[Connection] = []
    for path, node in index.items():
        for conn in node.connections:
            result.append(conn.model_copy(update={
                "a": _absolute(path, conn.a),
                "b": _absolute(path, conn.b),
            }))
    return result


def _absolute(scope: str, endpoint: Endpoint) -> Endpoint:
    instance = join_path(scope, endpoint.instance) if endpoint.instance else scope
    return Endpoint(instance=instance, port=endpoint.port)


def signal_name(endpoint: Endpoint) -> str | None:
    """Signal carried by an endpoint under an expandable connector.

    The first port segment is the connector itself: ``bus.ahu.y1SupFan``
    carries ``ahu.y1SupFan``.  A whole connector carries no single signal.
    """
    _, _, signal = endpoint.port.partition(".")
    return signal or None


class ExpandableSignals:
    """Signal name -> endpoints attached to that signal from outside the bus."""

    def __init__(self, connections: list[Connection]) -> None:
        self._signals: dict[str, list[Endpoint]] = defaultdict(list)
        for conn in connections:
            # Bus-to-bus links only merge connectors; they attach no endpoint
            if conn.a_expandable == conn.b_expandable:
                continue
            bus_side, other = (conn.a, conn.b) if conn.a_expandable else (conn.b, conn.a)
            signal = signal_name(bus_side)
            if signal is not None and other not in self._signals[signal]:
                self._signals[signal].append(other)

    def __contains__(self, signal: str) -> bool:
        return signal in self._signals

    def endpoints(self, signal: str) -> list[Endpoint]:
        return list(self._signals.get(signal, ()))

    def signals(self) -> list[str]:
        return sorted(self._signals)


class ConnectionPruner:
    """Filters connections against the classification of their endpoints.

    Parameters
    ----------
    index : InstanceIndex
        Used to find the instance owning each endpoint.
    signals : ExpandableSignals | None
        Pre-enumerated expandable signals; without it boundary ports only
        list the directly connected equipment endpoint.
    """

    def __init__(self, index: InstanceIndex, signals: ExpandableSignals | None = None) -> None:
        self.index = index
        self.signals = signals

    def prune(
        self,
        connections: list[Connection],
        classifications: dict[str, Classification],
    ) -> tuple[list[Connection], list[BoundaryPort]]:
        retained: list[Connection] = []
        boundary: list[BoundaryPort] = []
        names: dict[str, Endpoint] = {}

        for conn in connections:
            a_in = self._qualified(conn.a, conn.a_expandable, classifications)
            b_in = self._qualified(conn.b, conn.b_expandable, classifications)
            has_expandable = conn.a_expandable or conn.b_expandable

            if a_in and b_in:
                retained.append(conn)
            elif conn.annotated and (a_in or b_in) and not has_expandable:
                retained.append(conn)
            elif a_in or b_in:
                inside, outside, outside_expandable = (
                    (conn.a, conn.b, conn.b_expandable) if a_in
                    else (conn.b, conn.a, conn.a_expandable)
                )
                port = self._boundary_port(inside, outside, outside_expandable, classifications)
                port.name = _unique(port.name, inside, names)
                boundary.append(port)
                logger.debug(
                    "Dropped link %s -> %s, boundary port '%s'",
                    inside.qualified_name(), outside.qualified_name(), port.name,
                )
            else:
                logger.debug(
                    "Dropped equipment link %s -> %s",
                    conn.a.qualified_name(), conn.b.qualified_name(),
                )

        logger.info(
            "Retained %d of %d connections, %d boundary ports",
            len(retained), len(connections), len(boundary),
        )
        return retained, boundary

    def _boundary_port(
        self,
        inside: Endpoint,
        outside: Endpoint,
        outside_expandable: bool,
        classifications: dict[str, Classification],
    ) -> BoundaryPort:
        signal = signal_name(outside) if outside_expandable else None
        if signal is not None:
            external = []
            if self.signals is not None:
                external = [
                    ep for ep in self.signals.endpoints(signal)
                    if ep != inside and not self._qualified(ep, False, classifications)
                ]
            return BoundaryPort(
                name=_identifier(signal), endpoint=inside, external=external,
            )
        return BoundaryPort(
            name=_identifier(outside.qualified_name()), endpoint=inside, external=[outside],
        )

    def _qualified(
        self, endpoint: Endpoint, expandable: bool, classifications: dict[str, Classification],
    ) -> bool:
        if expandable:
            return False
        owner = self._owner(endpoint.instance)
        return owner is not None and classifications.get(owner) == Classification.QUALIFIED

    def _owner(self, path: str) -> str | None:
        """Longest prefix of *path* that names an instance of the tree."""
        current = path
        while True:
            if current in self.index:
                return current
            if not current:
                return None
            current, _, _ = current.rpartition(".")


def _identifier(name: str) -> str:
    ident = _NON_IDENT.sub("_", name).strip("_")
    if not ident or ident[0].isdigit():
        ident = "p_" + ident
    return ident


def _unique(name: str, endpoint: Endpoint, taken: dict[str, Endpoint]) -> str:
    """Same name for the same endpoint, a numbered name for any other."""
    candidate, n = name, 1
    while candidate in taken and taken[candidate] != endpoint:
        n += 1
        candidate = f"{name}_{n}"
    taken[candidate] = endpoint
    return candidate
