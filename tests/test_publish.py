from __future__ import annotations

from pathlib import Path

import pytest

from script_renderer import publish
from script_renderer.errors import PublishError


class _Progress:
    def progress(self) -> float:
        return 0.5


class _InsertRequest:
    def __init__(self, responses) -> None:
        self.responses = list(responses)

    def next_chunk(self):
        return self.responses.pop(0)


class _Videos:
    def __init__(self, responses) -> None:
        self.responses = responses
        self.kwargs = None

    def insert(self, **kwargs):
        self.kwargs = kwargs
        return _InsertRequest(self.responses)


class _Service:
    def __init__(self, responses) -> None:
        self._videos = _Videos(responses)

    def videos(self) -> _Videos:
        return self._videos


def test_metadata_is_derived_from_topic():
    first = publish.build_metadata("  Why   the sky <is> blue ")
    second = publish.build_metadata("  Why   the sky <is> blue ")

    assert first == second
    assert first["snippet"]["title"] == "Why the sky is blue"
    assert first["snippet"]["description"] == "Why the sky is blue\n\n#shorts"
    assert first["status"]["privacyStatus"] == "public"


def test_metadata_title_is_truncated_and_has_fallback():
    assert len(publish.build_metadata("x" * 300)["snippet"]["title"]) == publish.MAX_TITLE_LENGTH
    assert publish.build_metadata(None)["snippet"]["title"] == "Untitled"
    assert publish.build_metadata("<>")["snippet"]["title"] == "Untitled"
    assert publish.build_metadata(" <<  >> ")["snippet"]["title"] == "Untitled"
    assert publish.build_metadata("Tides", "About {topic}.")["snippet"]["description"] == "About Tides."


def test_publish_uploads_with_metadata(monkeypatch, tmp_path: Path):
    video = tmp_path / "5.mp4"
    video.write_bytes(b"video")
    service = _Service([(_Progress(), None), (None, {"id": "dQw4w9WgXcQ"})])
    monkeypatch.setattr(publish, "MediaFileUpload", lambda path, **kwargs: ("media", path, kwargs))

    publisher = publish.YouTubePublisher("id", "secret", "refresh", service=service)
    metadata = publish.build_metadata("Tides")
    result = publisher.publish(video, metadata)

    assert result.video_id == "dQw4w9WgXcQ"
    assert result.url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    kwargs = service.videos().kwargs
    assert kwargs["part"] == "snippet,status"
    assert kwargs["body"] == metadata
    assert kwargs["media_body"][1] == str(video)
    assert kwargs["media_body"][2]["mimetype"] == "video/mp4"


def test_publish_wraps_api_errors(monkeypatch, tmp_path: Path):
    class _FailingService:
        def videos(self):
            raise RuntimeError("quotaExceeded")

    monkeypatch.setattr(publish, "MediaFileUpload", lambda path, **kwargs: None)
    publisher = publish.YouTubePublisher("id", "secret", "refresh", service=_FailingService())

    with pytest.raises(PublishError, match="quotaExceeded"):
        publisher.publish(tmp_path / "5.mp4", publish.build_metadata("Tides"))


def test_publish_requires_video_id(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(publish, "MediaFileUpload", lambda path, **kwargs: None)
    publisher = publish.YouTubePublisher("id", "secret", "refresh", service=_Service([(None, {"kind": "x"})]))

    with pytest.raises(PublishError, match="no video id"):
        publisher.publish(tmp_path / "5.mp4", publish.build_metadata("Tides"))


def test_credentials_use_refresh_token(monkeypatch):
    refreshed = []

    class _FakeCredentials:
        def __init__(self, **kwargs) -> None:
            self.kwargs = kwargs

        def refresh(self, request) -> None:
            refreshed.append(request)

    monkeypatch.setattr(publish, "Credentials", _FakeCredentials)
    monkeypatch.setattr(publish, "Request", lambda: "transport")

    creds = publish.YouTubePublisher("cid", "csecret", "rtoken")._get_credentials()

    assert creds.kwargs["refresh_token"] == "rtoken"
    assert creds.kwargs["client_id"] == "cid"
    assert creds.kwargs["token_uri"] == publish.TOKEN_URI
    assert creds.kwargs["scopes"] == publish.SCOPES
    assert refreshed == ["transport"]
