def test_follow_and_list(client, make_user):
    alice = make_user("f-alice@example.com")
    bob = make_user("f-bob@example.com")

    r = client.post(f"/content/follow/{bob['id']}", headers=alice["headers"])
    assert r.status_code == 201
    edge = r.json()
    assert edge["follower_id"] == alice["id"]
    assert edge["following_id"] == bob["id"]

    followers = client.get(f"/content/followers/{bob['id']}", headers=alice["headers"]).json()
    assert [f["follower"]["email"] for f in followers] == ["f-alice@example.com"]
    following = client.get(f"/content/following/{alice['id']}", headers=bob["headers"]).json()
    assert [f["following"]["id"] for f in following] == [bob["id"]]


def test_follow_twice_conflicts(client, make_user):
    alice = make_user("twice-a@example.com")
    bob = make_user("twice-b@example.com")
    assert client.post(f"/content/follow/{bob['id']}", headers=alice["headers"]).status_code == 201
    assert client.post(f"/content/follow/{bob['id']}", headers=alice["headers"]).status_code == 409
    # The reverse direction is a different edge.
    assert client.post(f"/content/follow/{alice['id']}", headers=bob["headers"]).status_code == 201


def test_follow_self_is_rejected(client, make_user, admin):
    alice = make_user("self@example.com")
    assert client.post(f"/content/follow/{alice['id']}", headers=alice["headers"]).status_code == 400
    assert client.post(f"/content/follow/{admin['id']}", headers=admin["headers"]).status_code == 400


def test_follow_validation(client, make_user):
    alice = make_user("val@example.com")
    assert client.post("/content/follow/not-an-id", headers=alice["headers"]).status_code == 400
    assert client.post(f"/content/follow/{'0' * 24}", headers=alice["headers"]).status_code == 404
    assert client.get("/content/followers/bad", headers=alice["headers"]).status_code == 400


def test_unfollow(client, make_user):
    alice = make_user("un-a@example.com")
    bob = make_user("un-b@example.com")
    assert client.delete(f"/content/unfollow/{bob['id']}", headers=alice["headers"]).status_code == 404
    client.post(f"/content/follow/{bob['id']}", headers=alice["headers"])
    assert client.delete(f"/content/unfollow/{bob['id']}", headers=alice["headers"]).status_code == 200
    assert client.get(f"/content/followers/{bob['id']}", headers=alice["headers"]).json() == []
    assert client.post(f"/content/follow/{bob['id']}", headers=alice["headers"]).status_code == 201
