"""Orchestration of a generate call: describe, resolve, decide, materialize."""

import asyncio
import os
import uuid
from typing import Any, Dict, List, Optional

from ..processors import get_processor, materialize_batch_async
from .accessors import SourceAccessor
from .cache import CacheCoordinator, CacheKey, get_default_cache, options_fingerprint
from .dimensions import resolve_widths, select_output_widths
from .eligibility import EligibilityContext, RequestedOutput, decide, is_same_file
from .error_handling import BatchOperationContextManager
from .exceptions import ConfigurationError, ImageDerivativesError
from .formats import resolve_formats, unique_formats
from .image_utils import build_filename, build_hash_id, describe_transform, join_url
from .materializer import OutputMaterializer, OutputPlan
from .models import GenerateOptions, OutputRecord
from .observability import LogContext, MetricsCollector, StructuredLogger, timed_operation
from .pipeline import PillowPipeline
from .protocols import CacheProtocol, LoggerProtocol, PixelPipelineProtocol, SourceAccessorProtocol
from .source import SourceDescriptor, describe

GenerateResult = Dict[str, List[OutputRecord]]


def build_options(
    options: Optional[GenerateOptions] = None, **overrides: Any
) -> GenerateOptions:
    """Merge keyword overrides into options, validating the result."""
    if options is None:
        return GenerateOptions(**overrides)
    if not overrides:
        return options
    return GenerateOptions(**{**dict(options), **overrides})


class ImageDerivativeGenerator:
    """Produces resized/re-encoded derivatives of one source per call."""

    def __init__(
        self,
        pipeline: Optional[PixelPipelineProtocol] = None,
        accessor: Optional[SourceAccessorProtocol] = None,
        cache: Optional[CacheProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._pipeline = pipeline or PillowPipeline()
        self._accessor = accessor
        self._cache = cache if cache is not None else CacheCoordinator()
        self._logger = logger or StructuredLogger("image-derivatives.generator")
        self._metrics_collector = metrics_collector

    @property
    def metrics_collector(self) -> Optional[MetricsCollector]:
        return self._metrics_collector

    def _accessor_for(self, options: GenerateOptions) -> SourceAccessorProtocol:
        return self._accessor or SourceAccessor(timeout=options.fetch_timeout)

    def plan(
        self,
        source: SourceDescriptor,
        options: GenerateOptions,
        log_context: Optional[LogContext] = None,
    ) -> List[OutputPlan]:
        """
        Resolve widths and formats and decide COPY or PROCESS for each output.

        All caller input errors surface here, before anything is written.
        """
        log_context = log_context or LogContext(component="generator")
        widths = select_output_widths(
            resolve_widths(options.widths, source.native_width),
            source.native_width,
            allow_upscale=options.allow_upscale,
        )
        resolved_formats = resolve_formats(options.formats, source.native_format)
        formats = unique_formats(resolved_formats)
        requested_formats: Dict[str, Any] = {}
        for raw, resolved in zip(options.formats, resolved_formats):
            requested_formats.setdefault(resolved, raw)

        context = EligibilityContext(
            optimization_enabled=options.skip_original_processing,
            transform_present=options.has_transform,
            force_reprocess=options.force_reprocess,
        )

        # Verbatim copies depend on the source bytes alone
        copy_hash = build_hash_id(source.identity, {"verbatim": True}, options.hash_length)

        plans: List[OutputPlan] = []
        for format_id in formats:
            process_hash = build_hash_id(
                source.identity,
                {
                    "encoding": options.encoding_options.get(format_id, {}),
                    "transform": describe_transform(options.transform),
                },
                options.hash_length,
            )
            fingerprint = options_fingerprint(options, format_id)
            for resolved_width in widths:
                output = RequestedOutput(
                    requested_width=resolved_width.requested,
                    resolved_width=resolved_width.width,
                    requested_format=requested_formats[format_id],
                    resolved_format=format_id,
                )
                copy_filename = self._filename(copy_hash, source, output, options)
                decision = decide(
                    output,
                    source,
                    context,
                    destination_path=os.path.join(options.output_dir, copy_filename),
                )
                if decision.is_copy:
                    filename = copy_filename
                else:
                    filename = self._processed_filename(process_hash, source, output, options)
                output_path = os.path.join(options.output_dir, filename)

                self._logger.debug(
                    "Skip decision",
                    log_context.with_operation("decide"),
                    width=output.resolved_width,
                    format=format_id,
                    action=decision.action.value,
                    reason=decision.reason.value,
                )
                plans.append(
                    OutputPlan(
                        output=output,
                        decision=decision,
                        filename=filename,
                        output_path=output_path,
                        url=join_url(options.url_path, filename),
                        cache_key=CacheKey(
                            identity=source.identity,
                            width=output.resolved_width,
                            format=format_id,
                            action=decision.action,
                            options=fingerprint,
                        ),
                    )
                )
        return plans

    @staticmethod
    def _filename(
        hash_id: str,
        source: SourceDescriptor,
        output: RequestedOutput,
        options: GenerateOptions,
    ) -> str:
        if options.filename_format is not None:
            return options.filename_format(
                hash_id, source.location, output.resolved_width, output.resolved_format, options
            )
        return build_filename(hash_id, output.resolved_width, output.resolved_format)

    @classmethod
    def _processed_filename(
        cls,
        hash_id: str,
        source: SourceDescriptor,
        output: RequestedOutput,
        options: GenerateOptions,
    ) -> str:
        """Filename for an encoded output; never the source file itself."""
        filename = cls._filename(hash_id, source, output, options)
        if not source.is_file_addressable:
            return filename
        if not is_same_file(source.path, os.path.join(options.output_dir, filename)):
            return filename

        # The custom filename points back at the source, use the default naming
        filename = build_filename(hash_id, output.resolved_width, output.resolved_format)
        if is_same_file(source.path, os.path.join(options.output_dir, filename)):
            raise ConfigurationError(
                f"Output for width {output.resolved_width} ({output.resolved_format}) "
                f"would overwrite the source file {source.path}"
            )
        return filename

    def _materialize_fn(
        self,
        source: SourceDescriptor,
        options: GenerateOptions,
        log_context: LogContext,
        batch: Optional[BatchOperationContextManager],
    ):
        materializer = OutputMaterializer(
            source=source,
            options=options,
            pipeline=self._pipeline,
            accessor=self._accessor_for(options),
            cache=self._cache,
        )

        def _materialize(plan: OutputPlan) -> Optional[OutputRecord]:
            plan_context = log_context.with_metadata(
                width=plan.output.resolved_width,
                format=plan.output.resolved_format,
                action=plan.decision.action.value,
            )
            timed = timed_operation(
                f"materialize_{plan.decision.action.value}",
                logger=self._logger,  # type: ignore[arg-type]
                metrics_collector=self._metrics_collector,
                context=plan_context,
            )(materializer.materialize)
            if batch is None:
                return timed(plan)
            try:
                return timed(plan)
            except ImageDerivativesError as exc:
                batch.add_error(str(exc), plan.filename)
                return None

        return _materialize

    def _describe(self, source: Any, options: GenerateOptions) -> SourceDescriptor:
        return describe(source, self._accessor_for(options))

    @staticmethod
    def _group(plans: List[OutputPlan], records: List[Optional[OutputRecord]]) -> GenerateResult:
        result: GenerateResult = {}
        for plan in plans:
            result.setdefault(plan.output.resolved_format, [])
        for record in records:
            if record is not None:
                result[record.format].append(record)
        return result

    def _log_context(self, descriptor: SourceDescriptor) -> LogContext:
        return LogContext(
            correlation_id=f"gen_{uuid.uuid4().hex[:12]}",
            operation="generate",
            component="generator",
            source=descriptor.location or "<buffer>",
        )

    def generate(
        self, source: Any, options: Optional[GenerateOptions] = None, **overrides: Any
    ) -> GenerateResult:
        """
        Generate derivatives of ``source``.

        Returns:
            Records grouped by format; each group follows width request order.
        """
        options = build_options(options, **overrides)
        descriptor = self._describe(source, options)
        log_context = self._log_context(descriptor)
        plans = self.plan(descriptor, options, log_context)
        self._logger.info(
            "Generating derivatives",
            log_context,
            outputs=len(plans),
            copies=sum(1 for plan in plans if plan.decision.is_copy),
        )

        process_batch = get_processor(options.processor)
        if options.fail_fast:
            records = process_batch(
                plans,
                self._materialize_fn(descriptor, options, log_context, None),
                options.concurrency,
            )
        else:
            with BatchOperationContextManager("generate") as batch:
                records = process_batch(
                    plans,
                    self._materialize_fn(descriptor, options, log_context, batch),
                    options.concurrency,
                )
        return self._group(plans, records)

    async def generate_async(
        self, source: Any, options: Optional[GenerateOptions] = None, **overrides: Any
    ) -> GenerateResult:
        """Async variant of ``generate``; blocking work runs in worker threads."""
        options = build_options(options, **overrides)
        descriptor = await asyncio.to_thread(self._describe, source, options)
        log_context = self._log_context(descriptor)
        plans = self.plan(descriptor, options, log_context)

        if options.fail_fast:
            records = await materialize_batch_async(
                plans,
                self._materialize_fn(descriptor, options, log_context, None),
                options.concurrency,
            )
        else:
            with BatchOperationContextManager("generate_async") as batch:
                records = await materialize_batch_async(
                    plans,
                    self._materialize_fn(descriptor, options, log_context, batch),
                    options.concurrency,
                )
        return self._group(plans, records)


def generate(
    source: Any, options: Optional[GenerateOptions] = None, **overrides: Any
) -> GenerateResult:
    """Generate derivatives using the process-wide cache."""
    return ImageDerivativeGenerator(cache=get_default_cache()).generate(
        source, options, **overrides
    )


async def generate_async(
    source: Any, options: Optional[GenerateOptions] = None, **overrides: Any
) -> GenerateResult:
    """Async ``generate`` using the process-wide cache."""
    return await ImageDerivativeGenerator(cache=get_default_cache()).generate_async(
        source, options, **overrides
    )
