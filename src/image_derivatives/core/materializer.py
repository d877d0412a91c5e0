"""Execute skip decisions: copy the original, or run the pixel pipeline."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .cache import CacheKey
from .eligibility import RequestedOutput, SkipDecision, is_same_file
from .exceptions import ConfigurationError
from .formats import mime_type
from .image_utils import resolve_transform, scaled_height
from .models import GenerateOptions, OutputRecord
from .protocols import CacheProtocol, PixelPipelineProtocol, SourceAccessorProtocol
from .source import SourceDescriptor


@dataclass(frozen=True)
class OutputPlan:
    """Everything needed to materialize one requested output."""

    output: RequestedOutput
    decision: SkipDecision
    filename: str
    output_path: str
    url: str
    cache_key: CacheKey


class OutputMaterializer:
    """Turns an ``OutputPlan`` into an ``OutputRecord``, honouring the cache."""

    def __init__(
        self,
        source: SourceDescriptor,
        options: GenerateOptions,
        pipeline: PixelPipelineProtocol,
        accessor: SourceAccessorProtocol,
        cache: Optional[CacheProtocol] = None,
    ):
        self._source = source
        self._options = options
        self._pipeline = pipeline
        self._accessor = accessor
        self._cache = cache
        self._transform = resolve_transform(options.transform)

    def materialize(self, plan: OutputPlan) -> OutputRecord:
        if self._cache is None or not self._options.use_cache:
            return self._execute(plan)

        with self._cache.key_lock(plan.cache_key):
            cached = self._cache.lookup(plan.cache_key)
            if cached is not None:
                # Report this call's decision, not the one stored with the record
                return cached.model_copy(
                    update={"action": plan.decision.action, "reason": plan.decision.reason}
                )
            record = self._execute(plan)
            self._cache.store(plan.cache_key, record)
            return record

    def _execute(self, plan: OutputPlan) -> OutputRecord:
        if self._options.stats_only:
            return self._stats_only(plan)
        if plan.decision.is_copy:
            return self._copy(plan)
        return self._process(plan)

    def _stats_only(self, plan: OutputPlan) -> OutputRecord:
        width = plan.output.resolved_width
        height = scaled_height(self._source.native_width, self._source.native_height, width)
        size = self._source.size if plan.decision.is_copy else 0
        return self._record(plan, width, height, size)

    def _copy(self, plan: OutputPlan) -> OutputRecord:
        source = self._source
        if self._options.dry_run:
            return self._record(
                plan, source.native_width, source.native_height, source.size, buffer=source.data
            )
        self._accessor.copy_file(source.path, plan.output_path)
        return self._record(plan, source.native_width, source.native_height, source.size)

    def _process(self, plan: OutputPlan) -> OutputRecord:
        if self._options.use_cache and not self._options.dry_run:
            reused = self._reuse_existing(plan)
            if reused is not None:
                return reused

        format_id = plan.output.resolved_format
        data = self._pipeline.process(
            self._source.data,
            plan.output.resolved_width,
            format_id,
            self._options.encoding_options.get(format_id),
            self._transform,
        )
        width, height = self._pipeline.read_dimensions(data)

        if self._options.dry_run:
            return self._record(plan, width, height, len(data), buffer=data)
        if self._source.is_file_addressable and is_same_file(self._source.path, plan.output_path):
            raise ConfigurationError(f"Refusing to overwrite the source file {self._source.path}")
        self._accessor.write_bytes(plan.output_path, data)
        return self._record(plan, width, height, len(data))

    def _reuse_existing(self, plan: OutputPlan) -> Optional[OutputRecord]:
        """Reuse an encoded file already on disk at the destination."""
        path = Path(plan.output_path)
        if not path.is_file():
            return None
        data = path.read_bytes()
        # A verbatim copy left by an earlier skip run is not a processed output
        if data == self._source.data:
            return None
        try:
            width, height = self._pipeline.read_dimensions(data)
        except OSError:
            # Unreadable leftovers are re-encoded
            return None
        return self._record(plan, width, height, len(data))

    def _record(
        self,
        plan: OutputPlan,
        width: int,
        height: int,
        size: int,
        buffer: Optional[bytes] = None,
    ) -> OutputRecord:
        return OutputRecord(
            width=width,
            height=height,
            format=plan.output.resolved_format,
            filename=plan.filename,
            output_path=plan.output_path,
            url=plan.url,
            size=size,
            source_type=mime_type(plan.output.resolved_format),
            srcset=f"{plan.url} {width}w",
            buffer=buffer,
            action=plan.decision.action,
            reason=plan.decision.reason,
        )
