"""Throughput of derivative generation with and without verbatim-original skipping."""

import os
import shutil
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from PIL import Image, ImageEnhance
from pydantic import BaseModel

from .core.cache import CacheCoordinator
from .core.logging_config import setup_logger
from .core.models import GenerateOptions, SkipAction
from .core.observability import StructuredLogger
from .core.protocols import LoggerProtocol, PixelPipelineProtocol
from .core.services import ImageDerivativeGenerator

logger = setup_logger("image-derivatives.benchmark")


class PassResult(BaseModel):
    """Timing of one pass over the benchmark images."""

    skip_original_processing: bool
    image_count: int
    total_time: float
    copies: int = 0
    processed: int = 0
    identical_copies: int = 0

    @property
    def images_per_second(self) -> float:
        return self.image_count / self.total_time if self.total_time > 0 else 0.0

    @property
    def avg_time(self) -> float:
        return self.total_time / self.image_count if self.image_count else 0.0


class BenchmarkReport(BaseModel):
    """Both passes and how they compare."""

    baseline: PassResult
    optimized: PassResult

    @property
    def speedup(self) -> float:
        if self.optimized.total_time <= 0:
            return 0.0
        return self.baseline.total_time / self.optimized.total_time

    @property
    def time_saved(self) -> float:
        return self.baseline.total_time - self.optimized.total_time


def generate_benchmark_images(source: str, images_dir: str, count: int) -> List[str]:
    """
    Write ``count`` slightly varied copies of ``source`` as ``<n>.jpg``.

    Each copy gets a small brightness and saturation shift so every file
    hashes differently and no output is shared between images.
    """
    if os.path.isdir(images_dir):
        shutil.rmtree(images_dir)
    os.makedirs(images_dir)

    paths = []
    with Image.open(source) as original:
        original = original.convert("RGB")
        for index in range(count):
            brightness = 1 + ((index % 3) - 1) / 100
            saturation = 1 + (index % 5) / 100
            varied = ImageEnhance.Brightness(original).enhance(brightness)
            varied = ImageEnhance.Color(varied).enhance(saturation)
            path = os.path.join(images_dir, f"{index}.jpg")
            varied.save(path, format="JPEG", quality=90)
            paths.append(path)
    logger.info(f"Generated {count} benchmark images in {images_dir}")
    return paths


def list_benchmark_images(images_dir: str, limit: Optional[int] = None) -> List[str]:
    """JPEG files in ``images_dir``, numbered files first in numeric order."""

    def _order(name: str):
        stem = Path(name).stem
        return (0, int(stem), name) if stem.isdigit() else (1, 0, name)

    names = sorted(
        (name for name in os.listdir(images_dir) if name.lower().endswith((".jpg", ".jpeg"))),
        key=_order,
    )
    if limit:
        names = names[:limit]
    return [os.path.join(images_dir, name) for name in names]


def run_pass(
    image_paths: Sequence[str],
    output_dir: str,
    skip_original_processing: bool,
    encoding_options: Optional[Dict[str, Dict[str, Any]]] = None,
    pipeline: Optional[PixelPipelineProtocol] = None,
    generator_logger: Optional[LoggerProtocol] = None,
) -> PassResult:
    """
    Generate a half-width and a native-width JPEG for every image.

    With skipping on, the native-width output is a verbatim copy. Copies are
    compared against their source afterwards.
    """
    if os.path.isdir(output_dir):
        shutil.rmtree(output_dir)

    generator = ImageDerivativeGenerator(
        pipeline=pipeline,
        cache=CacheCoordinator(),
        logger=generator_logger or StructuredLogger("image-derivatives.benchmark.generator", "WARNING"),
    )
    options = GenerateOptions(
        formats=["auto"],
        output_dir=output_dir,
        skip_original_processing=skip_original_processing,
        encoding_options=encoding_options or {"jpeg": {"quality": 90}},
        processor="serial",
    )

    result = PassResult(
        skip_original_processing=skip_original_processing,
        image_count=len(image_paths),
        total_time=0.0,
    )
    copied: List[tuple] = []
    start_time = time.perf_counter()
    for done, path in enumerate(image_paths, start=1):
        with Image.open(path) as image:
            half_width = max(1, image.width // 2)
        records = generator.generate(path, options, widths=[half_width, "auto"])
        for record in (r for group in records.values() for r in group):
            if record.action is SkipAction.COPY:
                result.copies += 1
                copied.append((path, record.output_path))
            else:
                result.processed += 1
        if done % 50 == 0 or done == len(image_paths):
            elapsed = time.perf_counter() - start_time
            logger.info(
                f"Progress: {done}/{len(image_paths)} - "
                f"{done / elapsed if elapsed > 0 else 0:.2f} img/s - {elapsed:.2f}s elapsed"
            )
    result.total_time = time.perf_counter() - start_time

    result.identical_copies = sum(
        1 for source, output in copied if Path(source).read_bytes() == Path(output).read_bytes()
    )
    return result


def run_benchmark(
    image_paths: Sequence[str],
    output_root: str,
    encoding_options: Optional[Dict[str, Dict[str, Any]]] = None,
    pipeline: Optional[PixelPipelineProtocol] = None,
    generator_logger: Optional[LoggerProtocol] = None,
) -> BenchmarkReport:
    """Run the baseline pass (skipping off), then the optimized pass (skipping on)."""
    if not image_paths:
        raise ValueError("No benchmark images to process")

    passes = {}
    for label, skip in (("no-skip", False), ("skip", True)):
        logger.info(f"Pass skip_original_processing={skip}: {len(image_paths)} images")
        passes[label] = run_pass(
            image_paths,
            os.path.join(output_root, f"output-{label}"),
            skip,
            encoding_options=encoding_options,
            pipeline=pipeline,
            generator_logger=generator_logger,
        )
    return BenchmarkReport(baseline=passes["no-skip"], optimized=passes["skip"])
