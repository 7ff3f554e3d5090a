import httpx
import pytest

from backoffice.api import deps
from backoffice.core.config import Settings
from backoffice.core.security import create_token
from backoffice.domain.entities import Store, UserRole
from backoffice.main import create_app
from backoffice.services import google_auth
from backoffice.services.google_auth import GoogleTokenVerifier


class DownDatabase:
    async def ping(self):
        raise ConnectionError("refused")


@pytest.fixture
def app(db, storage, email):
    app = create_app()
    app.dependency_overrides[deps.get_database] = lambda: db
    app.dependency_overrides[deps.get_storage] = lambda: storage
    app.dependency_overrides[deps.get_email_service] = lambda: email
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
async def admin(make_user):
    return await make_user(role=UserRole.ADMIN, email="admin@example.com", password="admin-password")


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {create_token(admin.id)}"}


@pytest.fixture
async def user_headers(make_user):
    user = await make_user(role=UserRole.USER)
    return {"Authorization": f"Bearer {create_token(user.id)}"}


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}


async def test_health_reports_unreachable_database(app, client):
    app.dependency_overrides[deps.get_database] = lambda: DownDatabase()
    response = await client.get("/health")
    assert response.status_code == 503


async def test_login_and_me(client, admin):
    response = await client.post("/auth/login", json={"email": admin.email, "password": "admin-password"})
    assert response.status_code == 200
    body = response.json()
    assert "password_hash" not in body["user"]

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == admin.email


async def test_bad_credentials(client, admin):
    response = await client.post("/auth/login", json={"email": admin.email, "password": "nope"})
    assert response.status_code == 401


async def test_admin_login_rejects_regular_user(client, make_user):
    user = await make_user(role=UserRole.USER)
    response = await client.post("/auth/admin/login", json={"email": user.email, "password": "password123"})
    assert response.status_code == 401


async def test_auth_required(client):
    assert (await client.get("/users")).status_code == 401
    assert (await client.get("/users", headers={"Authorization": "Bearer garbage"})).status_code == 401


async def test_admin_required(client, user_headers):
    response = await client.get("/users", headers=user_headers)
    assert response.status_code == 403


async def test_list_users_as_admin(client, admin_headers, make_user):
    await make_user(first_name="Zed")
    response = await client.get("/users", params={"search": "zed"}, headers=admin_headers)
    assert response.status_code == 200
    assert [u["first_name"] for u in response.json()] == ["Zed"]


async def test_register_validates_body(client):
    response = await client.post("/auth/register", json={"email": "not-an-email", "password": "x"})
    assert response.status_code == 422


async def test_forgot_password_cooldown_is_429(client, admin):
    first = await client.post("/auth/forgot-password", json={"email": admin.email})
    assert first.status_code == 200
    second = await client.post("/auth/forgot-password", json={"email": admin.email})
    assert second.status_code == 429


async def test_store_crud(client, admin_headers, admin):
    created = await client.post("/stores", json={"name": "Harbour", "address": "Pier 4"}, headers=admin_headers)
    assert created.status_code == 201
    store = created.json()
    assert store["created_by"]["id"] == admin.id

    listed = await client.get("/stores", params={"search": "pier"})
    assert [s["id"] for s in listed.json()] == [store["id"]]

    updated = await client.put(f"/stores/{store['id']}", json={"name": "Harbour Front"}, headers=admin_headers)
    assert updated.json()["name"] == "Harbour Front"
    assert updated.json()["address"] == "Pier 4"

    deleted = await client.delete(f"/stores/{store['id']}", headers=admin_headers)
    assert deleted.status_code == 200
    assert (await client.get(f"/stores/{store['id']}")).status_code == 404


async def test_unknown_sort_column_is_400(client):
    response = await client.get("/stores", params={"sort_by": "name; DROP TABLE stores"})
    assert response.status_code == 400


async def test_planogram_requires_admin(client, user_headers, store):
    response = await client.post(
        "/planograms",
        json={"name": "Snacks", "description": "Chips", "store_id": store.id},
        headers=user_headers,
    )
    assert response.status_code == 403


async def test_submission_upload_flow(client, user_headers, admin_headers, store, planogram):
    created = await client.post(
        "/submissions",
        data={"store_id": store.id, "planogram_id": planogram.id},
        files={"file": ("shelf.jpg", b"first-photo", "image/jpeg")},
        headers=user_headers,
    )
    assert created.status_code == 201
    submission_id = created.json()["submission"]["id"]

    added = await client.post(
        f"/submissions/{submission_id}/uploads",
        files={"file": ("shelf2.jpg", b"second-photo", "image/jpeg")},
        headers=user_headers,
    )
    assert added.status_code == 200
    assert len(added.json()["upload_ids"]) == 2

    detail = await client.get(f"/submissions/{submission_id}", headers=admin_headers)
    body = detail.json()
    assert body["store"]["id"] == store.id
    assert [u["size"] for u in body["uploads"]] == ["11", "12"]

    listed = await client.get("/submissions", params={"store_id": store.id}, headers=admin_headers)
    assert [s["id"] for s in listed.json()] == [submission_id]


async def test_add_upload_to_missing_submission(client, user_headers):
    response = await client.post(
        "/submissions/missing/uploads",
        files={"file": ("a.jpg", b"x", "image/jpeg")},
        headers=user_headers,
    )
    assert response.status_code == 404


async def test_storage_upload_and_signed_url(client, admin_headers):
    uploaded = await client.post(
        "/storage/upload",
        data={"folder": "stores"},
        files={"image": ("front.png", b"png-bytes", "image/png")},
        headers=admin_headers,
    )
    assert uploaded.status_code == 201
    path = uploaded.json()["path"]
    assert path.startswith("stores/")

    signed = await client.get("/storage/signed-url", params={"filepath": path}, headers=admin_headers)
    assert signed.json() == {"url": f"/public/{path}", "expires_in": 3600}


async def test_storage_rejects_non_images(client, admin_headers):
    response = await client.post(
        "/storage/upload",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=admin_headers,
    )
    assert response.status_code == 400


async def test_duplicate_registration_is_409(client, admin):
    response = await client.post("/auth/register", json={"email": admin.email, "password": "another-pass"})
    assert response.status_code == 409
    assert response.json() == {"detail": "A user with this email already exists"}


class BrokenStoreService:
    async def find_all(self, **kwargs):
        return [Store.model_validate({"id": "s1"})]


async def test_row_mapping_failure_is_500_not_400(app):
    app.dependency_overrides[deps.get_store_service] = lambda: BrokenStoreService()
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/stores")
    assert response.status_code == 500


@pytest.fixture
def google_app(app, monkeypatch):
    """Google sign-in that accepts only the token ``verified-token`` for outsider@example.com."""

    def verify_oauth2_token(token, request, audience=None):
        if token != "verified-token":
            raise ValueError("Could not verify token signature.")
        return {"sub": "g-outsider", "email": "outsider@example.com", "email_verified": True}

    monkeypatch.setattr(google_auth.id_token, "verify_oauth2_token", verify_oauth2_token)
    verifier = GoogleTokenVerifier(Settings(google_client_id="client-123"))
    app.dependency_overrides[deps.get_google_verifier] = lambda: verifier
    return app


async def test_google_login_cannot_claim_an_account_by_email(google_app, client, admin, users_repo):
    unsigned = await client.post("/auth/google", json={"google_id": "attacker", "email": admin.email})
    assert unsigned.status_code == 422

    forged = await client.post("/auth/google", json={"id_token": "forged"})
    assert forged.status_code == 401
    assert (await users_repo.find_by_id(admin.id)).google_id is None


async def test_google_login_with_verified_token(google_app, client):
    response = await client.post("/auth/google", json={"id_token": "verified-token"})
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["email"] == "outsider@example.com"
    assert user["role"] == "USER"

    headers = {"Authorization": f"Bearer {response.json()['access_token']}"}
    assert (await client.get("/users", headers=headers)).status_code == 403
