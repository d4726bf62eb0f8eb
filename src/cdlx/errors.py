"""Errors raised while resolving and exporting a control sequence."""

from __future__ import annotations


class CdlExportError(Exception):
    """Base class for all export errors."""


class UnboundReferenceError(CdlExportError):
    """A reference has no declaration in any scope it may be looked up in."""

    def __init__(self, name: str, origin: str, detail: str = "") -> None:
        self.name = name
        self.origin = origin
        msg = f"Unbound reference '{name}' in scope '{origin or '<root>'}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class ResolutionCycleError(CdlExportError):
    """A parameter binding depends on itself.

    *chain* lists the ``(instance path, parameter)`` pairs of the cycle in
    the order they were entered, ending with the repeated pair.
    """

    def __init__(self, chain: list[tuple[str, str]]) -> None:
        self.chain = list(chain)
        rendered = " -> ".join(_qualify(path, name) for path, name in self.chain)
        super().__init__(f"Cyclic parameter binding: {rendered}")


class NonLiteralQualifiedParameterError(CdlExportError):
    """A parameter cannot be folded to a literal or a record field reference."""

    def __init__(self, path: str, parameter: str, reason: str) -> None:
        self.path = path
        self.parameter = parameter
        self.reason = reason
        super().__init__(
            f"Parameter '{_qualify(path, parameter)}' is not CDL-expressible: {reason}"
        )


class RecordOperandError(NonLiteralQualifiedParameterError):
    """A record field reference used as an operand of a larger expression.

    Raised by the evaluator, which does not know the binding being folded;
    the binding resolver re-raises it against the owning parameter.
    """

    def __init__(self, reference: str, record_field: str) -> None:
        super().__init__(
            "", reference, f"operand '{reference}' refers to record field '{record_field}'",
        )


class UnsupportedConstructError(CdlExportError):
    """An expression node or function call outside the supported subset."""


class EvaluationError(UnsupportedConstructError):
    """A supported construct that cannot be folded for these operands
    (division by zero, mismatched operand kinds, index out of range)."""


class RecordFieldMismatchError(CdlExportError):
    """A reference names a field that the record instance does not declare."""

    def __init__(self, record: str, field: str) -> None:
        self.record = record
        self.field = field
        super().__init__(f"Record '{record}' has no field '{field}'")


class ExportAbortedError(CdlExportError):
    """One or more qualified parameters failed; no document is produced."""

    def __init__(self, errors: list[CdlExportError]) -> None:
        self.errors = list(errors)
        lines = "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(
            f"Export aborted with {len(self.errors)} error(s):\n{lines}"
        )


class PolicyViolationError(CdlExportError):
    """The export uses a construct the configured target policy rejects."""


def _qualify(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name
