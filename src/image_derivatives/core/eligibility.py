"""Decide, per requested output, whether the original file can be copied verbatim.

A requested (width, format) output is copied instead of re-encoded only when
every condition below holds. They are checked in order and the first failing
condition names the reason:

1. the call enabled ``skip_original_processing``
2. the source is a file on disk (buffers and fetched URLs never qualify)
3. the resolved width equals the native width exactly
4. the resolved format matches the native format under the alias table
5. no transform was supplied for the call
6. the call did not force reprocessing
7. the destination is not the source file itself
"""

import os
from dataclasses import dataclass
from typing import Any, Optional

from .formats import formats_match
from .models import SkipAction, SkipReason
from .source import SourceDescriptor


@dataclass(frozen=True)
class RequestedOutput:
    """One (width, format) combination requested for a source."""

    requested_width: Any
    resolved_width: int
    requested_format: Any
    resolved_format: str


@dataclass(frozen=True)
class EligibilityContext:
    """Call-scoped, read-only inputs shared by every decision in a call."""

    optimization_enabled: bool
    transform_present: bool = False
    force_reprocess: bool = False


@dataclass(frozen=True)
class SkipDecision:
    action: SkipAction
    reason: SkipReason

    @property
    def is_copy(self) -> bool:
        return self.action is SkipAction.COPY


def _process(reason: SkipReason) -> SkipDecision:
    return SkipDecision(action=SkipAction.PROCESS, reason=reason)


def is_same_file(source_path: str, destination_path: str) -> bool:
    """True when ``destination_path`` names the source file itself."""
    if os.path.realpath(source_path) == os.path.realpath(destination_path):
        return True
    try:
        return os.path.samefile(source_path, destination_path)
    except OSError:
        return False


def decide(
    output: RequestedOutput,
    source: SourceDescriptor,
    context: EligibilityContext,
    destination_path: Optional[str] = None,
) -> SkipDecision:
    """
    Decide COPY or PROCESS for a single requested output.

    Pure and synchronous: no I/O beyond the self-copy path comparison.
    """
    if not context.optimization_enabled:
        return _process(SkipReason.OPTIMIZATION_DISABLED)
    if not source.is_file_addressable:
        return _process(SkipReason.NOT_FILE_ADDRESSABLE)
    if output.resolved_width != source.native_width:
        return _process(SkipReason.WIDTH_MISMATCH)
    if not formats_match(output.resolved_format, source.native_format):
        return _process(SkipReason.FORMAT_MISMATCH)
    if context.transform_present:
        return _process(SkipReason.TRANSFORM_PRESENT)
    if context.force_reprocess:
        return _process(SkipReason.FORCE_REPROCESS)
    if destination_path is not None and is_same_file(source.path, destination_path):
        return _process(SkipReason.SELF_COPY_GUARD)
    return SkipDecision(action=SkipAction.COPY, reason=SkipReason.ELIGIBLE)
