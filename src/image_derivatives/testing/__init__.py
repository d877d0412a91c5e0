"""Testing utilities and fakes for image derivative generation."""

from .fakes import (
    FakeHTTPSession,
    FakeLogger,
    FakeS3Client,
    RecordingPipeline,
    S3Bucket,
    S3Object,
    create_test_image,
    setup_test_s3_environment,
)

__all__ = [
    "FakeS3Client",
    "FakeHTTPSession",
    "FakeLogger",
    "RecordingPipeline",
    "S3Object",
    "S3Bucket",
    "create_test_image",
    "setup_test_s3_environment",
]
