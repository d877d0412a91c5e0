"""Main module for the image derivatives CLI."""

import sys
import json
import argparse
from typing import Any, Dict, List, Optional

from . import __version__
from .core.exceptions import ImageDerivativesError
from .core.factories import GeneratorFactory, S3ClientFactory
from .core.formats import canonical_format
from .core.image_utils import TRANSFORMATIONS
from .core.logging_config import setup_logger
from .core.models import GenerateOptions


def _parse_value(text: str) -> Any:
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return text


def parse_encoding_options(entries: Optional[List[str]]) -> Dict[str, Dict[str, Any]]:
    """
    Parse ``FORMAT.KEY=VALUE`` entries into per-format encoder keyword arguments.

    Example: ``["jpeg.quality=90", "webp.lossless=true"]`` becomes
    ``{"jpeg": {"quality": 90}, "webp": {"lossless": True}}``.
    """
    parsed: Dict[str, Dict[str, Any]] = {}
    for entry in entries or []:
        target, sep, value = entry.partition("=")
        format_id, dot, key = target.partition(".")
        if not sep or not dot or not format_id or not key:
            raise argparse.ArgumentTypeError(
                f"Invalid encoding option {entry!r}; expected FORMAT.KEY=VALUE"
            )
        parsed.setdefault(canonical_format(format_id), {})[key] = _parse_value(value)
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-derivatives",
        description="Image derivatives - resized and re-encoded copies of an image",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Original width as JPEG plus a 300px WebP
  image-derivatives generate photo.jpg --widths 300 auto --formats auto webp

  # Copy the original verbatim when width and format already match
  image-derivatives generate photo.jpg --widths 640 auto --skip-original-processing

  # Show version
  image-derivatives version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    generate_parser = subparsers.add_parser(
        "generate", help="Generate derivatives of one source image"
    )
    generate_parser.add_argument(
        "source", help="Source image: file path, http(s):// URL or s3://bucket/key"
    )
    generate_parser.add_argument(
        "--widths", nargs="+", default=["auto"],
        help="Output widths in pixels; 'auto' keeps the source width",
    )
    generate_parser.add_argument(
        "--formats", nargs="+", default=["webp", "jpeg"],
        help="Output formats; 'auto' keeps the source format",
    )
    generate_parser.add_argument("--output-dir", default="img/", help="Output directory")
    generate_parser.add_argument("--url-path", default="/img/", help="URL prefix for outputs")
    generate_parser.add_argument(
        "--skip-original-processing", action="store_true",
        help="Copy the source verbatim when width and format match it",
    )
    generate_parser.add_argument(
        "--force-reprocess", action="store_true",
        help="Always re-encode, even when a verbatim copy would qualify",
    )
    generate_parser.add_argument(
        "--transform", type=str, default=None, choices=list(TRANSFORMATIONS),
        help="Preset pixel transform applied before encoding",
    )
    generate_parser.add_argument(
        "--encoding-option", action="append", dest="encoding_options", metavar="FORMAT.KEY=VALUE",
        help="Encoder option, repeatable (e.g. jpeg.quality=90)",
    )
    generate_parser.add_argument("--dry-run", action="store_true", help="Do not write files")
    generate_parser.add_argument(
        "--stats-only", action="store_true", help="Compute metadata without encoding"
    )
    generate_parser.add_argument("--no-cache", action="store_true", help="Disable caching")
    generate_parser.add_argument(
        "--allow-upscale", action="store_true", help="Keep widths larger than the source"
    )
    generate_parser.add_argument(
        "--hash-length", type=int, default=10, help="Characters of hash in filenames"
    )
    generate_parser.add_argument(
        "--processor", type=str, default="multithread", choices=["serial", "multithread"],
        help="Materialization strategy (default: multithread)",
    )
    generate_parser.add_argument(
        "--concurrency", type=int, default=10, help="Maximum concurrent outputs"
    )
    generate_parser.add_argument(
        "--keep-going", action="store_true",
        help="Report failed outputs and continue instead of aborting",
    )
    generate_parser.add_argument("--s3-endpoint-url", default=None, help="Custom S3 endpoint")
    generate_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers.add_parser("version", help="Show version information")
    return parser


def run_generate(args: argparse.Namespace) -> int:
    """Run the generate subcommand and print the records as JSON."""
    level = "DEBUG" if args.debug else None
    # stdout carries the JSON records, diagnostics go to stderr
    logger = setup_logger("image-derivatives.cli", level=level, stream=sys.stderr)

    try:
        options = GenerateOptions(
            widths=args.widths,
            formats=args.formats,
            output_dir=args.output_dir,
            url_path=args.url_path,
            skip_original_processing=args.skip_original_processing,
            force_reprocess=args.force_reprocess,
            transform=args.transform,
            encoding_options=parse_encoding_options(args.encoding_options),
            dry_run=args.dry_run,
            stats_only=args.stats_only,
            use_cache=not args.no_cache,
            allow_upscale=args.allow_upscale,
            hash_length=args.hash_length,
            processor=args.processor,
            concurrency=args.concurrency,
            fail_fast=not args.keep_going,
        )
    except (ValueError, argparse.ArgumentTypeError) as exc:
        logger.error(f"Invalid options: {exc}")
        return 2

    s3_client = None
    if args.s3_endpoint_url:
        s3_client = S3ClientFactory.create_s3_client(endpoint_url=args.s3_endpoint_url)

    generator = GeneratorFactory.create_generator(
        s3_client=s3_client,
        log_level=level,
        log_stream=sys.stderr,
    )

    try:
        result = generator.generate(args.source, options)
    except ImageDerivativesError as exc:
        logger.error(f"Generation failed: {exc}")
        return 1

    payload = {
        format_id: [
            record.model_dump(mode="json", exclude={"buffer"}) for record in records
        ]
        for format_id, records in result.items()
    }
    print(json.dumps(payload, indent=2))

    metrics = generator.metrics_collector
    if metrics is not None:
        logger.debug(f"Materialization summary: {metrics.get_summary()}")
    return 0


def main() -> None:
    """Entry point for the image derivatives command-line interface."""
    parser = build_parser()
    args = parser.parse_args()

    if args.command == "generate":
        sys.exit(run_generate(args))

    elif args.command == "version":
        print("Image Derivatives CLI")
        print(f"Version {__version__}")
        print("Resized and re-encoded image copies with verbatim-original skipping")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
