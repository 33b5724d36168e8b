from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError
import pytest

from src.core.errors import NotFoundError, StorageError, ValidationError
from src.postcards import service as postcards_service
from src.storage.models import Postcard


def _create(api, **fields):
    response = api.client.post("/postcards", json=fields)
    assert response.status_code == 200, response.text
    return response.json()["postcard"]


def test_create_applies_defaults_and_fetch_round_trips(api) -> None:
    created = _create(api, english_content="hello")

    assert created["swedish_content"] == ""
    assert created["state"] == "draft"
    assert created["template"] is None
    assert created["translation_status"] == "pending"

    fetched = api.client.get(f"/postcards/{created['id']}")
    assert fetched.status_code == 200
    payload = fetched.json()
    assert payload["success"] is True
    assert payload["postcard"]["english_content"] == "hello"
    assert payload["postcard"]["state"] == "draft"
    assert payload["postcard"]["template"] is None


def test_create_with_swedish_content_is_marked_completed(api) -> None:
    created = _create(api, english_content="hello", swedish_content="hej", template="story")

    assert created["translation_status"] == "completed"
    assert created["template"] == "story"


@pytest.mark.parametrize(
    "body,error",
    [
        ({}, "English content is required"),
        ({"english_content": "   "}, "English content is required"),
        ({"english_content": "x" * 281}, "English content exceeds 280 characters"),
        ({"english_content": "ok", "swedish_content": "y" * 3001}, "Swedish content exceeds 3000 characters"),
        ({"english_content": "ok", "state": "archived"}, "Invalid post state"),
        ({"english_content": "ok", "template": "listicle"}, "Invalid post template"),
    ],
)
def test_create_rejects_invalid_payloads(api, body, error) -> None:
    response = api.client.post("/postcards", json=body)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": error}


def test_malformed_body_maps_to_400(api) -> None:
    response = api.client.post("/postcards", json={"english_content": "ok", "scheduled_date": "not-a-date"})

    assert response.status_code == 400
    payload = response.json()
    assert payload["success"] is False
    assert "scheduled_date" in payload["error"]


def test_list_filters_by_state_and_null_template(api) -> None:
    first = _create(api, english_content="one")
    second = _create(api, english_content="two", template="tool", state="approved")
    _create(api, english_content="three", template="story")

    approved = api.client.get("/postcards", params={"state": "approved"}).json()
    assert approved["count"] == 1
    assert approved["postcards"][0]["id"] == second["id"]

    untemplated = api.client.get("/postcards", params={"template": "null"}).json()
    assert [item["id"] for item in untemplated["postcards"]] == [first["id"]]

    ignored = api.client.get("/postcards", params={"state": "bogus"}).json()
    assert ignored["count"] == 3


def test_list_orders_by_requested_column(api) -> None:
    first = _create(api, english_content="one")
    second = _create(api, english_content="two")

    newest_first = api.client.get("/postcards").json()["postcards"]
    assert [item["id"] for item in newest_first] == [second["id"], first["id"]]

    oldest_first = api.client.get("/postcards", params={"orderBy": "created_at", "order": "asc"}).json()["postcards"]
    assert [item["id"] for item in oldest_first] == [first["id"], second["id"]]

    fallback = api.client.get("/postcards", params={"orderBy": "drop table", "order": "asc"})
    assert fallback.status_code == 200


def test_publishing_without_date_stamps_published_date(api) -> None:
    created = _create(api, english_content="ship it")

    response = api.client.patch(f"/postcards/{created['id']}", json={"state": "published"})

    assert response.status_code == 200
    postcard = response.json()["postcard"]
    assert postcard["state"] == "published"
    assert postcard["published_date"] is not None


def test_published_date_without_state_publishes(api) -> None:
    created = _create(api, english_content="later")
    when = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()

    response = api.client.put("/postcards", json={"id": created["id"], "published_date": when})

    assert response.status_code == 200
    assert response.json()["postcard"]["state"] == "published"


def test_state_transitions_are_permissive(api) -> None:
    created = _create(api, english_content="back and forth", state="published")

    response = api.client.patch(f"/postcards/{created['id']}", json={"state": "draft"})

    assert response.status_code == 200
    assert response.json()["postcard"]["state"] == "draft"


def test_partial_update_only_touches_supplied_fields(api) -> None:
    created = _create(api, english_content="keep me", template="story")

    response = api.client.patch(f"/postcards/{created['id']}", json={"swedish_content": "behåll mig"})

    postcard = response.json()["postcard"]
    assert postcard["english_content"] == "keep me"
    assert postcard["template"] == "story"
    assert postcard["swedish_content"] == "behåll mig"


def test_create_rejects_completed_status_without_swedish_content(api) -> None:
    response = api.client.post(
        "/postcards",
        json={"english_content": "hello", "translation_status": "completed"},
    )

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Swedish content is required when translation is completed",
    }
    with api.session_factory() as session:
        assert session.query(Postcard).count() == 0


def test_clearing_swedish_content_reopens_translation(api) -> None:
    created = _create(api, english_content="hello", swedish_content="hej")
    assert created["translation_status"] == "completed"

    response = api.client.patch(f"/postcards/{created['id']}", json={"swedish_content": ""})

    assert response.status_code == 200
    postcard = response.json()["postcard"]
    assert postcard["swedish_content"] == ""
    assert postcard["translation_status"] == "pending"


def test_update_rejects_completed_status_with_empty_swedish_content(api) -> None:
    created = _create(api, english_content="hello", swedish_content="hej")

    response = api.client.patch(
        f"/postcards/{created['id']}",
        json={"swedish_content": "  ", "translation_status": "completed"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Swedish content is required when translation is completed"
    fetched = api.client.get(f"/postcards/{created['id']}").json()["postcard"]
    assert fetched["swedish_content"] == "hej"
    assert fetched["translation_status"] == "completed"


def test_template_can_be_cleared(api) -> None:
    created = _create(api, english_content="templated", template="tool")

    response = api.client.patch(f"/postcards/{created['id']}", json={"template": None})

    assert response.json()["postcard"]["template"] is None


def test_update_and_fetch_missing_postcard_return_404(api) -> None:
    assert api.client.get("/postcards/missing").status_code == 404
    response = api.client.patch("/postcards/missing", json={"state": "approved"})
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Postcard not found"}


def test_put_and_query_delete_require_id(api) -> None:
    put_response = api.client.put("/postcards", json={"state": "approved"})
    assert put_response.status_code == 400
    assert put_response.json()["error"] == "Postcard ID is required"

    delete_response = api.client.delete("/postcards")
    assert delete_response.status_code == 400


def test_delete_is_unconditional(api) -> None:
    created = _create(api, english_content="bye")

    assert api.client.delete(f"/postcards/{created['id']}").status_code == 200
    assert api.client.get(f"/postcards/{created['id']}").status_code == 404
    assert api.client.delete(f"/postcards/{created['id']}").status_code == 200
    assert api.client.delete("/postcards", params={"id": "never-existed"}).json()["success"] is True


def test_service_rejects_bad_translation_status(session_factory) -> None:
    with session_factory() as session:
        with pytest.raises(ValidationError):
            postcards_service.create_postcard(session, english_content="ok", translation_status="done")


def test_service_get_raises_not_found(session_factory) -> None:
    with session_factory() as session:
        with pytest.raises(NotFoundError):
            postcards_service.get_postcard(session, "nope")


def test_storage_failures_are_wrapped_and_rolled_back(session_factory, monkeypatch) -> None:
    with session_factory() as session:
        rollbacks = {"count": 0}
        original_rollback = session.rollback

        def fail_commit():
            raise OperationalError("INSERT", {}, Exception("disk full"))

        def counting_rollback():
            rollbacks["count"] += 1
            original_rollback()

        monkeypatch.setattr(session, "commit", fail_commit)
        monkeypatch.setattr(session, "rollback", counting_rollback)

        with pytest.raises(StorageError) as exc_info:
            postcards_service.create_postcard(session, english_content="ok")

        assert "disk full" in (exc_info.value.detail or "")
        assert exc_info.value.public_message == "Storage operation failed"
        assert rollbacks["count"] == 1


def test_list_untranslated_keeps_requested_order(session_factory) -> None:
    with session_factory() as session:
        a = postcards_service.create_postcard(session, english_content="a")
        b = postcards_service.create_postcard(session, english_content="b")
        done = postcards_service.create_postcard(session, english_content="c", swedish_content="klar")
        legacy = postcards_service.create_postcard(session, english_content="d")
        legacy.translation_status = None
        session.commit()

        found = postcards_service.list_untranslated_postcards(
            session,
            post_ids=[legacy.id, b.id, done.id, a.id, b.id],
        )

        assert [post.id for post in found] == [legacy.id, b.id, a.id]
        assert session.get(Postcard, done.id).translation_status == "completed"
