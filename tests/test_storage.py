"""Tests for publishing rendered videos."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from manimbot_mcp.errors import StorageError
from manimbot_mcp.storage import object_url, publish_video


@pytest.fixture()
def video(tmp_path):
    path = tmp_path / "work" / "animation_1700000000.mp4"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"\x00\x01")
    return path


class TestLocalPublish:
    async def test_copies_into_publish_dir(self, tmp_path, video):
        url = await publish_video(video)
        target = tmp_path / "published" / video.name
        assert target.read_bytes() == b"\x00\x01"
        assert url == target.resolve().as_uri()

    async def test_missing_file(self, tmp_path):
        with pytest.raises(StorageError):
            await publish_video(tmp_path / "nope.mp4")


class TestS3Publish:
    @pytest.fixture(autouse=True)
    def _bucket(self, monkeypatch):
        monkeypatch.setenv("MANIMBOT_S3_BUCKET", "manim-videos")
        monkeypatch.setenv("MANIMBOT_S3_PREFIX", "renders/")

    async def test_put_object_and_url(self, video):
        s3 = MagicMock()
        with patch("manimbot_mcp.storage.boto3.client", return_value=s3) as factory:
            url = await publish_video(video)

        factory.assert_called_once_with("s3", region_name="ap-south-1")
        kwargs = s3.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "manim-videos"
        assert kwargs["Key"] == f"renders/{video.name}"
        assert kwargs["ContentType"] == "video/mp4"
        assert url == f"https://manim-videos.s3.ap-south-1.amazonaws.com/renders/{video.name}"

    async def test_client_error_becomes_storage_error(self, video):
        s3 = MagicMock()
        s3.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject",
        )
        with patch("manimbot_mcp.storage.boto3.client", return_value=s3):
            with pytest.raises(StorageError, match="failed to upload video"):
                await publish_video(video)


def test_object_url():
    assert object_url("b", "us-east-1", "k.mp4") == "https://b.s3.us-east-1.amazonaws.com/k.mp4"
