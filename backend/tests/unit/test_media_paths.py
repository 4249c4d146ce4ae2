from __future__ import annotations

import pytest

from strivon.moderation.domain.paths import file_extension, parse_quarantine_path, public_path_for, public_url
from strivon.moderation.domain.records import MediaType, infer_media_type


def test_parse_quarantine_path() -> None:
    target = parse_quarantine_path("quarantine/u1/m1/photo.jpg")
    assert target is not None
    assert (target.owner_uid, target.media_id, target.file_name) == ("u1", "m1", "photo.jpg")
    assert target.path == "quarantine/u1/m1/photo.jpg"


@pytest.mark.parametrize(
    "name",
    [
        "public/u1/m1.jpg",
        "quarantine/u1/photo.jpg",
        "quarantine/u1/m1/nested/photo.jpg",
        "quarantine//m1/photo.jpg",
        "quarantine/u1/m1/",
        "",
    ],
)
def test_other_paths_are_ignored(name: str) -> None:
    assert parse_quarantine_path(name) is None


def test_public_path_keeps_extension() -> None:
    assert public_path_for("u1", "m1", "quarantine/u1/m1/photo.jpg") == "public/u1/m1.jpg"
    assert public_path_for("u2", "m2", "quarantine/u2/m2/clip.final.MOV") == "public/u2/m2.MOV"


def test_missing_extension_falls_back_to_mp4() -> None:
    assert file_extension("quarantine/u1/m1/upload") == "mp4"
    assert file_extension("quarantine/u1/m1/upload.") == "mp4"
    assert public_path_for("u1", "m1", "quarantine/u1/m1/upload") == "public/u1/m1.mp4"


def test_public_url_encodes_the_whole_path() -> None:
    url = public_url("https://firebasestorage.googleapis.com/v0/b/", "bucket-1", "public/u1/m 1.jpg")
    assert url == "https://firebasestorage.googleapis.com/v0/b/bucket-1/o/public%2Fu1%2Fm%201.jpg?alt=media"


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("clip.mp4", MediaType.VIDEO),
        ("clip.MOV", MediaType.VIDEO),
        ("clip.webm", MediaType.VIDEO),
        ("clip.avi", MediaType.VIDEO),
        ("photo.jpg", MediaType.IMAGE),
        ("mp4", MediaType.IMAGE),
        ("archive.mp4.png", MediaType.IMAGE),
    ],
)
def test_media_type_from_extension(file_name: str, expected: MediaType) -> None:
    assert infer_media_type(file_name) is expected
