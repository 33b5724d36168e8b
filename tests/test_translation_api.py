from __future__ import annotations

import json

import pytest
from sqlalchemy import select

from src.core.config import get_settings
from src.core.errors import UpstreamError
from src.postcards.service import create_postcard
from src.storage.models import Postcard
from src.translation.service import translate_batch
from tests.conftest import FakeLLM


SWEDISH_POST = (
    "Har du någonsin känt att dagen försvinner i småsaker?\n\n"
    + "Jag testade att automatisera de tråkiga delarna av mitt arbete. " * 8
    + "\n\n#produktivitet #automation #ledarskap"
)


def _seed(session_factory, count: int, **fields) -> list[str]:
    with session_factory() as session:
        return [
            create_postcard(session, english_content=f"Post number {index}", template="story", **fields).id
            for index in range(count)
        ]


def test_translate_returns_content_and_metadata(api) -> None:
    api.llm.replies = ["Here is the Swedish LinkedIn post:\n" + SWEDISH_POST]

    response = api.client.post("/translate", json={"englishContent": "Automate the boring parts.", "template": "tool"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["swedishContent"] == SWEDISH_POST
    assert payload["characterCount"] == len(SWEDISH_POST)
    metadata = payload["metadata"]
    assert metadata["originalLength"] == len("Automate the boring parts.")
    assert metadata["expansionRatio"] == f"{len(SWEDISH_POST) / len('Automate the boring parts.'):.2f}"
    assert metadata["withinOptimalRange"] is True
    assert metadata["template"] == "tool"
    assert "TOOL template" in api.llm.calls[0]["system"]


def test_translate_defaults_template_to_unspecified(api) -> None:
    api.llm.replies = ["Kort."]

    response = api.client.post("/translate", json={"englishContent": "Hi"})

    assert response.status_code == 200
    assert response.json()["metadata"]["template"] == "unspecified"
    assert response.json()["metadata"]["withinOptimalRange"] is False


@pytest.mark.parametrize(
    "body,error",
    [
        ({}, "englishContent is required"),
        ({"englishContent": "  "}, "englishContent is required"),
        ({"englishContent": "x" * 600}, "englishContent seems too long for a Twitter post (max 500 chars)"),
        ({"englishContent": "ok", "template": "mixed"}, 'template must be "story" or "tool" if provided'),
    ],
)
def test_translate_rejects_invalid_input(api, body, error) -> None:
    response = api.client.post("/translate", json=body)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": error}
    assert api.llm.calls == []


def test_translate_maps_rate_limit_to_429(api) -> None:
    api.llm.replies = [UpstreamError("overloaded", kind="rate_limit", status=529)]

    response = api.client.post("/translate", json={"englishContent": "Hello"})

    assert response.status_code == 429


@pytest.mark.parametrize("reply", ["Swedish translation:", "   \n  ", "Här är LinkedIn-inlägget på svenska:\n"])
def test_translate_fails_when_reply_has_no_swedish_text(api, reply) -> None:
    api.llm.replies = [reply]

    response = api.client.post("/translate", json={"englishContent": "Hello"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "LLM request failed"}


def test_batch_translates_in_groups_marking_processing_first(api) -> None:
    ids = _seed(api.session_factory, 7)
    statuses_seen_per_call = []

    def inspect_statuses(call) -> None:
        with api.session_factory() as session:
            rows = session.scalars(select(Postcard).where(Postcard.id.in_(ids))).all()
            statuses_seen_per_call.append({row.id: row.translation_status for row in rows})

    def reply(system: str, user: str) -> str:
        count = user.count("template):")
        return json.dumps([f"Översättning {index}. " * 10 for index in range(count)])

    api.llm.on_call = inspect_statuses
    api.llm.replies = [reply]

    response = api.client.post("/translate-batch", json={"postIds": ids})

    assert response.status_code == 200
    payload = response.json()
    assert payload["translatedCount"] == 7
    assert payload["failedCount"] == 0
    assert payload["groups"] == 2
    assert "errors" not in payload
    assert len(api.llm.calls) == 2
    assert "Translate these 5 posts" in api.llm.calls[0]["user"]
    assert "Translate these 2 posts" in api.llm.calls[1]["user"]

    first, second = statuses_seen_per_call
    assert [first[post_id] for post_id in ids[:5]] == ["processing"] * 5
    assert [first[post_id] for post_id in ids[5:]] == ["pending"] * 2
    assert [second[post_id] for post_id in ids[:5]] == ["completed"] * 5
    assert [second[post_id] for post_id in ids[5:]] == ["processing"] * 2


def test_batch_failure_marks_group_failed_and_continues(api) -> None:
    ids = _seed(api.session_factory, 6)
    api.llm.replies = [
        UpstreamError("boom"),
        json.dumps([{"swedish_content": "Hej du. " * 20}]),
    ]

    response = api.client.post("/translate-batch", json={"postIds": ids})

    payload = response.json()
    assert payload["translatedCount"] == 1
    assert payload["failedCount"] == 5
    assert payload["errors"][0].startswith("Batch 1 failed")
    with api.session_factory() as session:
        rows = {row.id: row for row in session.scalars(select(Postcard)).all()}
        assert [rows[post_id].translation_status for post_id in ids[:5]] == ["failed"] * 5
        assert rows[ids[5]].translation_status == "completed"


def test_batch_marks_missing_entries_failed(api) -> None:
    ids = _seed(api.session_factory, 3)
    api.llm.replies = [json.dumps(["Hej! " * 30, "   "])]

    payload = api.client.post("/translate-batch", json={"postIds": ids}).json()

    assert payload["translatedCount"] == 1
    assert payload["failedCount"] == 2
    with api.session_factory() as session:
        statuses = [session.get(Postcard, post_id).translation_status for post_id in ids]
    assert statuses == ["completed", "failed", "failed"]


def test_batch_truncates_long_translations(api) -> None:
    ids = _seed(api.session_factory, 1)
    api.llm.replies = [json.dumps(["Lång mening här. " * 400])]

    api.client.post("/translate-batch", json={"postIds": ids})

    with api.session_factory() as session:
        swedish = session.get(Postcard, ids[0]).swedish_content
    assert len(swedish) <= 3000
    assert swedish.endswith(".")


def test_batch_skips_already_translated_posts(api) -> None:
    ids = _seed(api.session_factory, 2, swedish_content="Redan klar")

    response = api.client.post("/translate-batch", json={"postIds": ids})

    assert response.status_code == 200
    payload = response.json()
    assert payload["translatedCount"] == 0
    assert payload["message"] == "No posts need translation"
    assert api.llm.calls == []


def test_batch_requires_post_ids(api) -> None:
    response = api.client.post("/translate-batch", json={"postIds": []})

    assert response.status_code == 400
    assert response.json()["error"] == "postIds array is required"


def test_batch_status_query_is_stable(api) -> None:
    _seed(api.session_factory, 3)
    _seed(api.session_factory, 1, swedish_content="Klar")

    first = api.client.get("/translate-batch").json()
    second = api.client.get("/translate-batch").json()

    assert first == second
    assert first["status"] == "pending"
    assert first["count"] == 3
    assert api.client.get("/translate-batch", params={"status": "completed"}).json()["count"] == 1
    assert api.client.get("/translate-batch", params={"status": "weird"}).status_code == 400


def test_batch_sleeps_between_groups_only(session_factory, monkeypatch) -> None:
    monkeypatch.setenv("TRANSLATION_BATCH_SIZE", "2")
    get_settings.cache_clear()
    ids = _seed(session_factory, 5)
    sleeps = []
    progress = []

    llm = FakeLLM([lambda system, user: json.dumps(["Hej. " * 20] * user.count("template):"))])
    with session_factory() as session:
        result = translate_batch(
            session,
            llm,
            post_ids=ids,
            delay_seconds=1.5,
            sleep=sleeps.append,
            on_progress=progress.append,
        )

    assert result.groups == 3
    assert sleeps == [1.5, 1.5]
    assert progress == [2, 4, 5]
    get_settings.cache_clear()


def test_batch_group_failure_keeps_already_completed_posts(session_factory, monkeypatch) -> None:
    import src.translation.service as translation_service
    from src.core.errors import StorageError

    ids = _seed(session_factory, 3)
    real_complete = translation_service.complete_translation
    calls = []

    def flaky_complete(session, *, postcard_id, swedish_content):
        calls.append(postcard_id)
        if len(calls) == 2:
            raise StorageError("write failed")
        real_complete(session, postcard_id=postcard_id, swedish_content=swedish_content)

    monkeypatch.setattr(translation_service, "complete_translation", flaky_complete)
    llm = FakeLLM([json.dumps(["Hej. " * 20] * 3)])
    with session_factory() as session:
        result = translate_batch(session, llm, post_ids=ids, delay_seconds=0)

    assert result.translated_count == 1
    assert result.failed_count == 2
    with session_factory() as session:
        statuses = {post.id: post.translation_status for post in session.scalars(select(Postcard))}
    assert statuses[ids[0]] == "completed"
    assert statuses[ids[1]] == "failed"
    assert statuses[ids[2]] == "failed"
