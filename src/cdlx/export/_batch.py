"""Batch export over many templates with cooperative cancellation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from cdlx.config import ExportConfig
from cdlx.errors import CdlExportError
from cdlx.model.export import ExportModel

from ._run import export_template

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of one template: exactly one of *model* / *error* is set."""

    index: int
    model: ExportModel | None = None
    error: CdlExportError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def export_batch(
    targets: Iterable[Any],
    config: ExportConfig | None = None,
    *,
    cancel: threading.Event | None = None,
) -> list[BatchResult]:
    """Export each target in turn.

    A failing template is recorded and the batch moves on.  *cancel* is
    checked between templates only; a template already being resolved
    always runs to completion.  Results cover the templates processed
    before cancellation.
    """
    results: list[BatchResult] = []
    for i, target in enumerate(targets):
        if cancel is not None and cancel.is_set():
            logger.warning("Batch export cancelled after %d template(s)", i)
            break
        try:
            results.append(BatchResult(index=i, model=export_template(target, config)))
        except CdlExportError as exc:
            logger.warning("Template %d failed: %s", i, exc)
            results.append(BatchResult(index=i, error=exc))
    return results
