"""Export configuration."""

from __future__ import annotations

from enum import Enum
from typing import Self

from pydantic import BaseModel, Field, model_validator

from cdlx.model.export import Grouping

DEFAULT_QUALIFIED_PREFIX = "Buildings.Controls.OBC."
DEFAULT_MARKER_PREFIX = "__cdl"


class RecordClassPolicy(str, Enum):
    """Class name written for records referenced by exported parameters."""

    DECLARED = "declared"
    PROJECT = "project"


class ExportConfig(BaseModel):
    """Knobs of one export run.

    Parameters
    ----------
    qualified_prefixes
        Class path prefixes of the control-sequence library.
    marker_prefix
        Annotation prefix that marks any other instance for export.
    grouping
        Document grouping applied by ``group_documents``.
    record_class_policy
        Keep the declared record class, or rewrite it under *project_package*.
    allow_conditionals
        Whether the target language accepts declared conditional bindings
        (checked by ``validate_export``, never by the resolver).
    max_workers
        Threads used to resolve independent top-level sequences.
    """

    qualified_prefixes: list[str] = Field(
        default_factory=lambda: [DEFAULT_QUALIFIED_PREFIX], min_length=1,
    )
    marker_prefix: str = DEFAULT_MARKER_PREFIX
    grouping: Grouping = Grouping.SEQUENCE
    record_class_policy: RecordClassPolicy = RecordClassPolicy.DECLARED
    project_package: str | None = None
    allow_conditionals: bool = True
    max_workers: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _check_policy(self) -> Self:
        if any(not p for p in self.qualified_prefixes):
            raise ValueError("qualified_prefixes must not contain empty prefixes")
        if not self.marker_prefix:
            raise ValueError("marker_prefix must not be empty")
        if (
            self.record_class_policy == RecordClassPolicy.PROJECT
            and not self.project_package
        ):
            raise ValueError("PROJECT record class policy requires 'project_package'")
        return self
