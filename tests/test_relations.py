import pytest

from backoffice.domain.entities import Submission, User
from backoffice.repositories import UserRepository
from backoffice.services.relations import (
    STORE_SUMMARY_FIELDS,
    UPLOAD_FIELDS,
    USER_SUMMARY_FIELDS,
    Relation,
    RelationPopulator,
    to_payload,
)


class BrokenUserRepository(UserRepository):
    async def find_by_ids(self, ids):
        raise RuntimeError("lookup failed")


@pytest.fixture
async def submissions(make_user, submissions_repo, store, planogram):
    alice = await make_user(first_name="Alice")
    bob = await make_user(first_name="Bob")
    rows = []
    for n, user in enumerate([alice, bob, alice], start=1):
        rows.append(await submissions_repo.create({
            "id": f"sub-{n}",
            "uploaded_by_id": user.id,
            "store_id": store.id,
            "planogram_id": planogram.id,
        }))
    return rows


async def test_populates_each_row(submissions, users_repo, stores_repo):
    populator = RelationPopulator([
        Relation("uploaded_by", "uploaded_by_id", users_repo, USER_SUMMARY_FIELDS),
        Relation("store", "store_id", stores_repo, STORE_SUMMARY_FIELDS),
    ])
    payloads = await populator.populate(submissions)

    assert [p["uploaded_by"]["first_name"] for p in payloads] == ["Alice", "Bob", "Alice"]
    assert all(p["store"]["name"] == "Downtown" for p in payloads)
    assert [p["id"] for p in payloads] == ["sub-1", "sub-2", "sub-3"]


async def test_one_query_per_relation(submissions, users_repo, stores_repo, db):
    populator = RelationPopulator([
        Relation("uploaded_by", "uploaded_by_id", users_repo, USER_SUMMARY_FIELDS),
        Relation("store", "store_id", stores_repo, STORE_SUMMARY_FIELDS),
    ])
    db.statements.clear()
    await populator.populate(submissions)
    assert len(db.statements) == 2


async def test_summary_never_contains_password(submissions, users_repo):
    populator = RelationPopulator([
        Relation("uploaded_by", "uploaded_by_id", users_repo, USER_SUMMARY_FIELDS + ("password_hash",)),
    ])
    payload = await populator.populate_one(submissions[0])
    assert "password_hash" not in payload["uploaded_by"]
    assert set(payload["uploaded_by"]) <= set(USER_SUMMARY_FIELDS)


async def test_missing_foreign_key_gives_none(users_repo, store, planogram):
    row = Submission(id="s", uploaded_by_id="ghost", store_id=store.id, planogram_id=planogram.id)
    populator = RelationPopulator([
        Relation("uploaded_by", "uploaded_by_id", users_repo, USER_SUMMARY_FIELDS),
    ])
    payload = await populator.populate_one(row)
    assert payload["uploaded_by"] is None


async def test_failed_relation_is_nulled_and_others_survive(submissions, db, stores_repo):
    populator = RelationPopulator([
        Relation("uploaded_by", "uploaded_by_id", BrokenUserRepository(db), USER_SUMMARY_FIELDS),
        Relation("store", "store_id", stores_repo, STORE_SUMMARY_FIELDS),
    ])
    payloads = await populator.populate(submissions)
    assert all(p["uploaded_by"] is None for p in payloads)
    assert all(p["store"]["id"] == "store-1" for p in payloads)


async def test_many_relation_keeps_order_and_drops_missing(make_user, uploads_repo, store, planogram):
    user = await make_user()
    for upload_id in ("up-1", "up-2"):
        await uploads_repo.create({
            "id": upload_id,
            "filename": f"{upload_id}.jpg",
            "size": "10",
            "content_type": "image/jpeg",
            "uploaded_by_id": user.id,
            "store_id": store.id,
            "planogram_id": planogram.id,
        })
    row = Submission(
        id="s",
        uploaded_by_id=user.id,
        store_id=store.id,
        planogram_id=planogram.id,
        upload_ids=["up-2", "gone", "up-1"],
    )
    populator = RelationPopulator([
        Relation("uploads", "upload_ids", uploads_repo, UPLOAD_FIELDS, many=True),
    ])
    payload = await populator.populate_one(row)
    assert [u["id"] for u in payload["uploads"]] == ["up-2", "up-1"]


async def test_populate_empty_and_none():
    populator = RelationPopulator([])
    assert await populator.populate([]) == []
    assert await populator.populate_one(None) is None


def test_to_payload_hides_password_hash():
    user = User(id="u", email="a@example.com", password_hash="secret")
    payload = to_payload(user)
    assert "password_hash" not in payload
    assert payload["email"] == "a@example.com"
