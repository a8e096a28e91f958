"""
套餐媒体接口测试
"""

import io
import os

import pytest
from PIL import Image

from app.core.config import settings
from app.services.media_service import parse_video_url
from app.utils.image_utils import analyze_image_quality, open_image
from tests.conftest import create_package


def _image_bytes(size=(1000, 800), fmt="PNG", mode="RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, (200, 120, 40) if mode == "RGB" else (200, 120, 40, 128)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.mark.parametrize("url, expected", [
    ("https://www.youtube.com/watch?v=abc123&t=5", {"provider": "youtube", "videoId": "abc123"}),
    ("https://youtu.be/xyz789", {"provider": "youtube", "videoId": "xyz789"}),
    ("https://vimeo.com/video/4455", {"provider": "vimeo", "videoId": "4455"}),
    ("https://example.com/movie.mp4", None),
])
def test_parse_video_url(url, expected):
    assert parse_video_url(url) == expected


def test_analyze_image_quality():
    good = open_image(_image_bytes())
    assert analyze_image_quality(good, 50_000) == (100, [])

    small = open_image(_image_bytes(size=(200, 100), fmt="JPEG"))
    score, suggestions = analyze_image_quality(small, 3 * 1024 * 1024)
    assert score == 70
    assert [s["type"] for s in suggestions] == ["size", "dimension", "optimization"]


def test_open_image_rejects_garbage():
    with pytest.raises(ValueError):
        open_image(b"not an image")


async def test_upload_images(client, db, expert_headers):
    package = await create_package(db)
    files = [
        ("images", ("cover.png", _image_bytes(), "image/png")),
        ("images", ("badge.png", _image_bytes(size=(300, 300), mode="RGBA"), "image/png")),
    ]
    response = await client.post(f"/api/v1/media/upload/images/{package.id}", headers=expert_headers, files=files)
    assert response.status_code == 201, response.text
    assert response.json()["message"] == "2 images uploaded successfully"

    first, second = response.json()["data"]["media"]
    assert first["isFeatured"] is True and second["isFeatured"] is False
    assert (first["sortOrder"], second["sortOrder"]) == (0, 1)
    assert [s["name"] for s in first["sizes"]] == ["thumbnail", "small", "medium", "large"]
    assert first["sizes"][0]["width"] <= 150
    assert first["imageOptimization"]["qualityScore"] == 100

    package_dir = os.path.join(settings.UPLOAD_DIR, "packages", str(package.id))
    assert os.path.exists(os.path.join(package_dir, first["filename"]))

    response = await client.get(f"/api/v1/media/{second['id']}/suggestions", headers=expert_headers)
    data = response.json()["data"]
    assert data["qualityScore"] == 80
    assert {s["type"] for s in data["suggestions"]} == {"dimension", "color"}

    response = await client.delete(f"/api/v1/media/{first['id']}", headers=expert_headers)
    assert response.status_code == 200
    assert not os.path.exists(os.path.join(package_dir, first["filename"]))


async def test_upload_rejects_invalid_files(client, db, expert_headers, customer_headers, monkeypatch):
    package = await create_package(db)
    url = f"/api/v1/media/upload/images/{package.id}"

    response = await client.post(url, headers=customer_headers,
                                 files=[("images", ("a.png", _image_bytes(), "image/png"))])
    assert response.status_code == 403

    response = await client.post(url, headers=expert_headers,
                                 files=[("images", ("notes.txt", b"hello", "text/plain"))])
    assert response.status_code == 400
    assert response.json()["message"] == "Only image files are allowed"

    response = await client.post(url, headers=expert_headers,
                                 files=[("images", ("fake.png", b"hello", "image/png"))])
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid image file")

    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 2 * 1024 * 1024)
    response = await client.post(url, headers=expert_headers,
                                 files=[("images", ("big.png", b"\0" * (2 * 1024 * 1024 + 1), "image/png"))])
    assert response.status_code == 400
    assert response.json()["message"] == "File too large. Maximum size is 2MB"

    response = await client.post("/api/v1/media/upload/images/999", headers=expert_headers,
                                 files=[("images", ("a.png", _image_bytes(), "image/png"))])
    assert response.status_code == 404


async def test_external_video_reorder_and_featured(client, db, expert_headers):
    package = await create_package(db)

    response = await client.post(f"/api/v1/media/external-video/{package.id}", headers=expert_headers,
                                 json={"url": "https://example.com/clip.mp4"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid video URL. Only YouTube and Vimeo are supported"

    response = await client.post(f"/api/v1/media/external-video/{package.id}", headers=expert_headers,
                                 json={"url": "https://youtu.be/abc123", "caption": {"en": "Intro"}})
    assert response.status_code == 201
    video = response.json()["data"]["media"]
    assert video["provider"] == "youtube"
    assert video["metadata"]["embedUrl"] == "https://www.youtube.com/embed/abc123"
    assert video["sizes"][0]["url"] == "https://img.youtube.com/vi/abc123/maxresdefault.jpg"

    response = await client.put(f"/api/v1/media/{video['id']}/featured", headers=expert_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Only images can be featured"

    response = await client.post(f"/api/v1/media/upload/images/{package.id}", headers=expert_headers,
                                 files=[("images", ("a.png", _image_bytes(), "image/png"))])
    image = response.json()["data"]["media"][0]
    assert image["sortOrder"] == 1

    response = await client.put(f"/api/v1/media/package/{package.id}/reorder", headers=expert_headers,
                                json={"mediaIds": [image["id"], video["id"]]})
    assert [m["id"] for m in response.json()["data"]["media"]] == [image["id"], video["id"]]

    response = await client.put(f"/api/v1/media/{image['id']}/metadata", headers=expert_headers,
                                json={"altText": {"ar": "صورة"}, "tags": [" desert ", ""]})
    metadata = response.json()["data"]["media"]["metadata"]
    assert metadata["altText"] == {"en": "", "ar": "صورة"}
    assert metadata["tags"] == ["desert"]

    response = await client.get(f"/api/v1/media/package/{package.id}", params={"type": "video"})
    assert [m["id"] for m in response.json()["data"]["media"]] == [video["id"]]


async def test_media_not_found(client, expert_headers):
    response = await client.put("/api/v1/media/999/featured", headers=expert_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Media not found"
