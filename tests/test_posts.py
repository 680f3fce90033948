import os
from contextlib import contextmanager

import file_utils
from errors import InternalError
from file_utils import media_path
from routes import posts as posts_routes


def test_upload_creates_pending_post(client, make_user, upload):
    user = make_user("uploader@example.com")
    r = upload(user, caption="sunset")
    assert r.status_code == 201
    post = r.json()
    assert post["status"] == "pending"
    assert post["media_type"] == "image"
    assert post["caption"] == "sunset"
    assert post["share_count"] == 0
    assert post["likes"] == [] and post["like_count"] == 0
    assert post["user"]["id"] == user["id"]
    assert post["media_url"].startswith("/cdn/posts/")

    media = client.get(post["media_url"])
    assert media.status_code == 200


def test_upload_infers_video(make_user, upload):
    user = make_user("video@example.com")
    r = upload(user, content_type="video/mp4", filename="clip.mp4")
    assert r.status_code == 201
    assert r.json()["media_type"] == "video"


def test_upload_rejects_unsupported_and_missing_files(client, make_user, upload, settings):
    user = make_user("docs@example.com")
    r = upload(user, content_type="application/pdf", filename="doc.pdf")
    assert r.status_code == 400
    folder = os.path.join(settings.UPLOAD_FOLDER, "posts")
    assert not os.path.isdir(folder) or os.listdir(folder) == []

    r = client.post("/content/upload", data={"caption": "nothing"}, headers=user["headers"])
    assert r.status_code == 400


def test_upload_requires_session(client):
    r = client.post("/content/upload", files={"media": ("a.png", b"x", "image/png")})
    assert r.status_code == 401


def test_upload_size_limit(make_user, upload, monkeypatch):
    from config import get_settings
    monkeypatch.setenv("MAX_MEDIA_SIZE", "10")
    get_settings.cache_clear()
    user = make_user("big@example.com")
    assert upload(user, content=b"x" * 11).status_code == 400


def test_pending_post_visibility(client, make_user, upload, admin):
    owner = make_user("owner@example.com")
    other = make_user("other@example.com")
    post_id = upload(owner).json()["id"]

    feed = client.get("/content", headers=other["headers"]).json()
    assert post_id not in [p["id"] for p in feed]
    assert client.get(f"/content/shared/{post_id}").status_code == 404

    assert client.get(f"/content/{post_id}", headers=owner["headers"]).status_code == 200
    assert client.get(f"/content/{post_id}", headers=admin["headers"]).status_code == 200
    assert client.get(f"/content/{post_id}", headers=other["headers"]).status_code == 403


def test_rejected_post_stays_hidden(client, make_user, upload, admin):
    owner = make_user("rejected@example.com")
    other = make_user("viewer@example.com")
    post_id = upload(owner).json()["id"]
    r = client.put(f"/content/{post_id}/moderate", json={"status": "rejected"}, headers=admin["headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "rejected"
    assert client.get(f"/content/{post_id}", headers=other["headers"]).status_code == 403
    assert client.get(f"/content/shared/{post_id}").status_code == 404


def test_approved_post_is_public(client, make_user, approved_post):
    owner = make_user("public@example.com")
    other = make_user("reader@example.com")
    post_id = approved_post(owner)
    feed = client.get("/content", headers=other["headers"]).json()
    assert [p["id"] for p in feed] == [post_id]
    assert client.get(f"/content/{post_id}", headers=other["headers"]).status_code == 200
    shared = client.get(f"/content/shared/{post_id}")
    assert shared.status_code == 200
    assert shared.json()["id"] == post_id


def test_feed_newest_first_and_pending_queue_oldest_first(client, make_user, upload, admin):
    owner = make_user("feed@example.com")
    first = upload(owner).json()["id"]
    second = upload(owner).json()["id"]
    queue = client.get("/content/pending-moderation", headers=admin["headers"]).json()
    assert [p["id"] for p in queue] == [first, second]

    for post_id in (first, second):
        client.put(f"/content/{post_id}/moderate", json={"status": "approved"}, headers=admin["headers"])
    feed = client.get("/content", headers=owner["headers"]).json()
    assert [p["id"] for p in feed] == [second, first]


def test_pending_queue_is_admin_only(client, make_user):
    user = make_user("queue@example.com")
    assert client.get("/content/pending-moderation", headers=user["headers"]).status_code == 403


def test_moderation_rules(client, make_user, upload, admin):
    owner = make_user("mod-owner@example.com")
    post_id = upload(owner).json()["id"]
    r = client.put(f"/content/{post_id}/moderate", json={"status": "approved"}, headers=owner["headers"])
    assert r.status_code == 403
    r = client.put(f"/content/{post_id}/moderate", json={"status": "pending"}, headers=admin["headers"])
    assert r.status_code == 400
    r = client.put(f"/content/{post_id}/moderate", json={}, headers=admin["headers"])
    assert r.status_code == 400
    r = client.put(f"/content/{'0' * 24}/moderate", json={"status": "approved"}, headers=admin["headers"])
    assert r.status_code == 404
    r = client.put(f"/content/{post_id}/moderate", json={"status": "approved"}, headers=admin["headers"])
    assert r.json()["status"] == "approved"
    r = client.put(f"/content/{post_id}/moderate", json={"status": "rejected"}, headers=admin["headers"])
    assert r.json()["status"] == "rejected"


def test_malformed_ids_are_bad_requests(client, make_user):
    user = make_user("ids@example.com")
    for path in ("/content/abc", "/content/abc/share", "/content/user/zz", "/content/shared/123"):
        method = client.post if path.endswith("share") else client.get
        r = method(path, headers=user["headers"])
        assert r.status_code == 400, path
    assert client.get(f"/content/{'0' * 24}", headers=user["headers"]).status_code == 404


def test_update_post_caption(client, make_user, upload, admin):
    owner = make_user("editor@example.com")
    other = make_user("intruder@example.com")
    post_id = upload(owner, caption="old").json()["id"]

    r = client.put(f"/content/{post_id}", json={"caption": "new", "status": "approved", "share_count": 99},
                   headers=owner["headers"])
    assert r.status_code == 200
    body = r.json()
    assert body["caption"] == "new"
    assert body["status"] == "pending"
    assert body["share_count"] == 0

    assert client.put(f"/content/{post_id}", json={"caption": "x"}, headers=other["headers"]).status_code == 403
    r = client.put(f"/content/{post_id}", json={"caption": "by admin"}, headers=admin["headers"])
    assert r.status_code == 200


def test_delete_post_permissions(client, make_user, upload, admin):
    owner = make_user("del-owner@example.com")
    other = make_user("del-other@example.com")
    mine = upload(owner).json()["id"]
    theirs = upload(owner).json()["id"]
    assert client.delete(f"/content/{mine}", headers=other["headers"]).status_code == 403
    assert client.delete(f"/content/{mine}", headers=owner["headers"]).status_code == 200
    assert client.delete(f"/content/{theirs}", headers=admin["headers"]).status_code == 200
    assert client.get(f"/content/{mine}", headers=owner["headers"]).status_code == 404


def test_delete_post_removes_comments_likes_and_media(client, make_user, approved_post):
    owner = make_user("cascade-owner@example.com")
    fan = make_user("fan@example.com")
    post_id = approved_post(owner)
    post = client.get(f"/content/{post_id}", headers=owner["headers"]).json()
    comment_id = client.post(f"/content/{post_id}/comment", json={"text": "nice"}, headers=fan["headers"]).json()["id"]
    client.post(f"/content/{post_id}/like", headers=fan["headers"])

    r = client.delete(f"/content/{post_id}", headers=owner["headers"])
    assert r.status_code == 200
    assert r.json()["deleted"]["comments"] == 1
    assert r.json()["deleted"]["likes"] == 1
    assert not os.path.exists(media_path(post["media_url"]))
    assert client.put(f"/content/comment/{comment_id}", json={"text": "x"}, headers=fan["headers"]).status_code == 404
    assert post_id not in [p["id"] for p in client.get("/content", headers=fan["headers"]).json()]


def test_like_and_unlike_are_idempotent(client, make_user, approved_post):
    owner = make_user("liked@example.com")
    fan = make_user("liker@example.com")
    post_id = approved_post(owner)

    r = client.post(f"/content/{post_id}/like", headers=fan["headers"])
    assert r.status_code == 200
    assert r.json() == {"id": post_id, "likes": 1}
    assert client.post(f"/content/{post_id}/like", headers=fan["headers"]).json()["likes"] == 1
    assert client.post(f"/content/{post_id}/like", headers=owner["headers"]).json()["likes"] == 2

    post = client.get(f"/content/{post_id}", headers=fan["headers"]).json()
    assert set(post["likes"]) == {owner["id"], fan["id"]}

    assert client.delete(f"/content/{post_id}/unlike", headers=fan["headers"]).json()["likes"] == 1
    assert client.delete(f"/content/{post_id}/unlike", headers=fan["headers"]).json()["likes"] == 1
    assert client.post(f"/content/{'0' * 24}/like", headers=fan["headers"]).status_code == 404


def test_share_counter_counts_every_call(client, make_user, approved_post):
    owner = make_user("shared@example.com")
    other = make_user("sharer@example.com")
    post_id = approved_post(owner)
    for _ in range(3):
        client.post(f"/content/{post_id}/share", headers=other["headers"])
    for _ in range(2):
        client.post(f"/content/{post_id}/share", headers=owner["headers"])
    r = client.post(f"/content/{post_id}/share", headers=other["headers"])
    assert r.json() == {"id": post_id, "share_count": 6}
    assert client.post(f"/content/{'0' * 24}/share", headers=other["headers"]).status_code == 404


def test_posts_by_user_filtered_unless_admin(client, make_user, upload, approved_post, admin):
    owner = make_user("profile-owner@example.com")
    other = make_user("profile-viewer@example.com")
    approved = approved_post(owner)
    pending = upload(owner).json()["id"]

    seen = [p["id"] for p in client.get(f"/content/user/{owner['id']}", headers=other["headers"]).json()]
    assert seen == [approved]
    seen = [p["id"] for p in client.get(f"/content/user/{owner['id']}", headers=admin["headers"]).json()]
    assert seen == [pending, approved]


def test_upload_caption_limit(client, make_user, upload):
    user = make_user("long-caption@example.com")
    assert upload(user, caption="x" * 2201).status_code == 400
    post_id = upload(user, caption="x" * 2200).json()["id"]
    r = client.put(f"/content/{post_id}", json={"caption": "x" * 2201}, headers=user["headers"])
    assert r.status_code == 400


def test_upload_write_failure_is_internal_error(make_user, upload, monkeypatch):
    user = make_user("disk@example.com")

    def broken():
        raise OSError("disk full")

    monkeypatch.setattr(file_utils, "ensure_post_media_directory", broken)
    r = upload(user)
    assert r.status_code == 500
    assert r.json() == {"detail": "Error uploading post."}


def test_upload_releases_media_when_record_fails(make_user, upload, monkeypatch, settings):
    user = make_user("orphan@example.com")

    @contextmanager
    def failing_db():
        raise InternalError()
        yield

    monkeypatch.setattr(posts_routes, "get_db", failing_db)
    r = upload(user)
    assert r.status_code == 500
    folder = os.path.join(settings.UPLOAD_FOLDER, "posts")
    assert os.listdir(folder) == []


def test_moderate_checks_id_before_role(client, make_user):
    user = make_user("mod-bad-id@example.com")
    r = client.put("/content/not-an-id/moderate", json={"status": "approved"}, headers=user["headers"])
    assert r.status_code == 400
