from __future__ import annotations

from datetime import datetime, timezone

from strivon.moderation.domain.records import MediaType
from strivon.moderation.domain.status import MediaStatus
from strivon.moderation.infra.postgres_store import _media_from_record, _post_from_record, _user_from_record

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def test_media_row_mapping_decodes_json_flags() -> None:
    row = {
        "id": "m1",
        "owner_uid": "u1",
        "media_type": "video",
        "status": "needs_review",
        "original_path": "quarantine/u1/m1/clip.mp4",
        "public_path": None,
        "gore_score": 0.6,
        "provider": "stub",
        "flags": '["auto_review"]',
        "reviewed_by": None,
        "reviewed_at": None,
        "created_at": NOW,
    }

    record = _media_from_record(row)

    assert record.media_type is MediaType.VIDEO
    assert record.status is MediaStatus.NEEDS_REVIEW
    assert record.moderation.flags == ["auto_review"]
    assert record.to_dict()["storage"] == {"originalPath": "quarantine/u1/m1/clip.mp4"}


def test_post_and_user_rows() -> None:
    post = _post_from_record(
        {
            "id": "p1",
            "media_id": "m1",
            "status": "published",
            "visibility": "public",
            "media": [{"id": "m1", "type": "image", "url": "https://cdn/x"}],
        }
    )
    assert post.media[0].url == "https://cdn/x"

    user = _user_from_record({"uid": "u1", "banned": True, "extra": None})
    assert user.banned is True
    assert user.extra == {}
