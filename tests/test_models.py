from cloudly.identity import IdentityProfile
from cloudly.models import File, Folder, User, utc_now

from conftest import auth_headers, create_file, create_folder


def test_utc_now_is_timezone_aware():
    assert utc_now().utcoffset().total_seconds() == 0


def test_timestamp_defaults_are_timezone_aware():
    user = User(id="u1", first_name="U", username="u1")
    folder = Folder(name="Docs", owner_id="u1")
    f = File(name="a.txt", s3_key="k", s3_url="u", owner_id="u1")
    for row in (user, folder, f):
        assert row.created_at.tzinfo is not None
        assert row.updated_at.tzinfo is not None


def test_first_request_provisions_user(client, identity):
    identity.profiles["user_new"] = IdentityProfile(
        user_id="user_new", email="new@example.com", first_name="New", last_name="", username="newbie", avatar_url=""
    )
    resp = client.get("/api/files/storage", headers=auth_headers("user_new"))
    assert resp.status_code == 200


def test_updates_and_trash_persist(client, db, alice):
    folder = create_folder(db, alice)
    f = create_file(db, alice)
    headers = auth_headers(alice.id)

    assert client.patch(f"/api/files/{f.id}/rename", json={"name": "b.pdf"}, headers=headers).status_code == 200
    assert client.delete(f"/api/files/{f.id}", headers=headers).status_code == 200
    assert client.delete(f"/api/folders/{folder.id}", headers=headers).status_code == 200

    db.expire_all()
    assert f.name == "b.pdf"
    assert f.trashed_at is not None
    assert folder.trashed_at is not None
