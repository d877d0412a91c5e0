"""Unit tests for generator planning and option handling."""

import pytest

from image_derivatives.core.exceptions import (
    ConfigurationError,
    InvalidWidthError,
    UnsupportedFormatError,
)
from image_derivatives.core.models import GenerateOptions, SkipAction, SkipReason
from image_derivatives.core.services import build_options
from image_derivatives.core.source import describe


class TestBuildOptions:
    """Tests for build_options."""

    def test_keywords_only(self):
        options = build_options(widths=[300], formats=["auto"])

        assert options.widths == [300]
        assert options.formats == ["auto"]

    def test_overrides_existing_options(self):
        base = GenerateOptions(widths=[300], dry_run=True)

        options = build_options(base, widths=[640])

        assert options.widths == [640]
        assert options.dry_run is True
        assert base.widths == [300]

    def test_no_overrides_returns_same_object(self):
        base = GenerateOptions()

        assert build_options(base) is base

    def test_invalid_override_rejected(self):
        with pytest.raises(ValueError):
            build_options(GenerateOptions(), transform="sepia")


class TestPlan:
    """Tests for ImageDerivativeGenerator.plan."""

    def test_copy_and_process_decisions(self, generator, jpeg_path, output_dir):
        """Test that only the native width and format qualify for a copy."""
        source = describe(jpeg_path)
        options = GenerateOptions(
            widths=[300, 1280],
            formats=["webp", "auto"],
            skip_original_processing=True,
            output_dir=str(output_dir),
        )

        plans = generator.plan(source, options)

        summary = [
            (p.output.resolved_format, p.output.resolved_width, p.decision.reason) for p in plans
        ]
        assert summary == [
            ("webp", 300, SkipReason.WIDTH_MISMATCH),
            ("webp", 1280, SkipReason.FORMAT_MISMATCH),
            ("jpeg", 300, SkipReason.WIDTH_MISMATCH),
            ("jpeg", 1280, SkipReason.ELIGIBLE),
        ]

    def test_copy_filename_differs_from_processed_filename(self, generator, jpeg_path, output_dir):
        source = describe(jpeg_path)
        skip = GenerateOptions(
            widths=["auto"], formats=["auto"], skip_original_processing=True, output_dir=str(output_dir)
        )
        encode = GenerateOptions(widths=["auto"], formats=["auto"], output_dir=str(output_dir))

        (copy_plan,) = generator.plan(source, skip)
        (process_plan,) = generator.plan(source, encode)

        assert copy_plan.decision.is_copy
        assert not process_plan.decision.is_copy
        assert copy_plan.filename != process_plan.filename
        assert copy_plan.filename.endswith("-1280.jpeg")
        assert copy_plan.cache_key.action is SkipAction.COPY

    def test_paths_and_urls(self, generator, jpeg_path, output_dir):
        source = describe(jpeg_path)
        options = GenerateOptions(
            widths=[300], formats=["png"], output_dir=str(output_dir), url_path="https://cdn.example.com/img"
        )

        (plan,) = generator.plan(source, options)

        assert plan.output_path == str(output_dir / plan.filename)
        assert plan.url == f"https://cdn.example.com/img/{plan.filename}"
        assert len(plan.filename.rsplit("-", 1)[0]) == 10

    def test_hash_length(self, generator, jpeg_path):
        (plan,) = generator.plan(describe(jpeg_path), GenerateOptions(formats=["png"], hash_length=6))

        assert plan.filename.startswith(plan.filename[:6] + "-")
        assert len(plan.filename) == len("123456-1280.png")

    def test_filename_format_callable(self, generator, jpeg_path):
        def filename_format(hash_id, location, width, format_id, options):
            return f"bio-{width}w.{format_id}"

        options = GenerateOptions(widths=[300], formats=["webp"], filename_format=filename_format)

        (plan,) = generator.plan(describe(jpeg_path), options)

        assert plan.filename == "bio-300w.webp"
        assert plan.url == "/img/bio-300w.webp"

    def test_duplicate_formats_and_widths_collapse(self, generator, jpeg_path):
        options = GenerateOptions(widths=[1280, "auto", None], formats=["jpeg", "jpg", "auto"])

        plans = generator.plan(describe(jpeg_path), options)

        assert [(p.output.resolved_width, p.output.resolved_format) for p in plans] == [(1280, "jpeg")]
        assert plans[0].output.requested_format == "jpeg"

    def test_requested_format_spelling_preserved(self, generator, jpeg_path):
        options = GenerateOptions(formats=["JPG"], skip_original_processing=True)

        (plan,) = generator.plan(describe(jpeg_path), options)

        assert plan.output.requested_format == "JPG"
        assert plan.decision.is_copy

    def test_invalid_width_raised_before_writing(self, generator, jpeg_path, output_dir):
        options = GenerateOptions(widths=[300, -1], output_dir=str(output_dir))

        with pytest.raises(InvalidWidthError):
            generator.plan(describe(jpeg_path), options)
        assert not output_dir.exists()

    def test_unsupported_format(self, generator, jpeg_path):
        with pytest.raises(UnsupportedFormatError):
            generator.plan(describe(jpeg_path), GenerateOptions(formats=["svg"]))

    def test_decisions_are_logged(self, generator, fake_logger, jpeg_path):
        generator.plan(describe(jpeg_path), GenerateOptions(widths=[300, 640], formats=["webp"]))

        decisions = fake_logger.find("Skip decision")
        assert [entry["width"] for entry in decisions] == [300, 640]
        assert {entry["reason"] for entry in decisions} == {"optimization-disabled"}
        assert all(entry["operation"] == "decide" for entry in decisions)

    def test_processed_hash_changes_with_encoding_options(self, generator, jpeg_path):
        source = describe(jpeg_path)

        (default,) = generator.plan(source, GenerateOptions(formats=["jpeg"]))
        (tuned,) = generator.plan(
            source, GenerateOptions(formats=["jpeg"], encoding_options={"jpeg": {"quality": 50}})
        )

        assert default.filename != tuned.filename

    def test_filename_format_naming_the_source_falls_back_to_default(self, generator, tmp_path, jpeg_bytes):
        source = tmp_path / "bio.jpeg"
        source.write_bytes(jpeg_bytes)
        options = GenerateOptions(
            formats=["auto"],
            skip_original_processing=True,
            output_dir=str(tmp_path),
            filename_format=lambda hash_id, location, width, fmt, options: f"bio.{fmt}",
        )

        (plan,) = generator.plan(describe(source), options)

        assert plan.decision.reason is SkipReason.SELF_COPY_GUARD
        assert plan.filename != "bio.jpeg"
        assert plan.filename.endswith("-1280.jpeg")
        assert plan.output_path != str(source)

    def test_source_named_like_default_output_is_rejected(self, generator, tmp_path, jpeg_bytes):
        options = GenerateOptions(formats=["auto"], output_dir=str(tmp_path))
        (expected,) = generator.plan(describe(jpeg_bytes), options)
        source = tmp_path / expected.filename
        source.write_bytes(jpeg_bytes)

        options = GenerateOptions(
            formats=["auto"],
            output_dir=str(tmp_path),
            filename_format=lambda hash_id, location, width, fmt, options: expected.filename,
        )

        with pytest.raises(ConfigurationError):
            generator.plan(describe(source), options)
        assert source.read_bytes() == jpeg_bytes
