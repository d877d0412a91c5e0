#!/usr/bin/env python3
"""
Skip-original benchmark
Generates half-width + native-width JPEGs for every benchmark image, first with
skip_original_processing off, then on, and reports the throughput of each pass
"""

import sys
import logging
import argparse

from image_derivatives.benchmark import (
    BenchmarkReport,
    PassResult,
    generate_benchmark_images,
    list_benchmark_images,
    run_benchmark,
)
from image_derivatives.core.logging_config import setup_logger

logger = setup_logger("image-derivatives.benchmark")


def format_time(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    return f"{seconds:.2f}s"


def log_pass(label: str, result: PassResult) -> None:
    logger.info(f"{label}:")
    logger.info(f"  Images processed: {result.image_count}")
    logger.info(f"  Total time: {format_time(result.total_time)}")
    logger.info(f"  Average time per image: {format_time(result.avg_time)}")
    logger.info(f"  Throughput: {result.images_per_second:.2f} img/s")
    logger.info(f"  Outputs copied: {result.copies}, processed: {result.processed}")


def log_report(report: BenchmarkReport) -> None:
    logger.info("=" * 60)
    log_pass("Results (WITHOUT skip_original_processing)", report.baseline)
    log_pass("Results (WITH skip_original_processing)", report.optimized)

    logger.info("=" * 60)
    logger.info("COMPARISON")
    logger.info("=" * 60)
    logger.info(f"Time saved: {format_time(report.time_saved)}")
    logger.info(f"Speedup: {report.speedup:.2f}x faster")
    logger.info(f"Performance improvement: {(report.speedup - 1) * 100:.1f}%")

    logger.info("=" * 60)
    logger.info("VERIFICATION")
    logger.info("=" * 60)
    optimized = report.optimized
    logger.info(f"Byte-identical copies: {optimized.identical_copies}/{optimized.copies}")
    if report.baseline.copies:
        logger.warning(f"Baseline pass copied {report.baseline.copies} output(s)")


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Skip-original throughput benchmark")

    parser.add_argument(
        "--images-dir", default="./benchmark/images", help="Directory of JPEG benchmark images"
    )
    parser.add_argument(
        "--output-root", default="./benchmark", help="Parent of the per-pass output directories"
    )
    parser.add_argument(
        "--limit", type=int, default=None, help="Process only the first N images"
    )
    parser.add_argument(
        "--generate-from", default=None, metavar="SOURCE",
        help="Create the benchmark images from SOURCE before running",
    )
    parser.add_argument(
        "--count", type=int, default=50, help="Images to create with --generate-from"
    )
    parser.add_argument(
        "--quality", type=int, default=90, help="JPEG quality of processed outputs"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser.parse_args()


def main():
    """Main entry point."""
    try:
        args = parse_args()
        if args.debug:
            logger.setLevel(logging.DEBUG)

        if args.generate_from:
            generate_benchmark_images(args.generate_from, args.images_dir, args.count)

        image_paths = list_benchmark_images(args.images_dir, args.limit)
        logger.info(f"Found {len(image_paths)} images to process")

        report = run_benchmark(
            image_paths,
            args.output_root,
            encoding_options={"jpeg": {"quality": args.quality}},
        )
        log_report(report)

        if report.optimized.identical_copies != report.optimized.copies:
            logger.error("Some copied outputs differ from their source")
            sys.exit(1)

    except FileNotFoundError as e:
        logger.error(f"{e}. Run with --generate-from SOURCE first.")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Benchmark interrupted by user.")
    except Exception as e:
        logger.error(f"Benchmark failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
