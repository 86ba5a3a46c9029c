from conftest import signup


def test_find_users_is_case_insensitive_substring(client, alice, bob):
    signup(client, "Bobby", "bobby@x.com", "pw")

    response = client.get("/users/find", params={"username": "BO"}, headers=alice["headers"])

    assert response.status_code == 200
    assert sorted(u["username"] for u in response.json()) == ["Bobby", "bob"]
    assert set(response.json()[0]) == {"id", "username", "avatarUrl"}


def test_find_users_excludes_caller(client, alice, bob):
    response = client.get("/users/find", params={"username": "a"}, headers=alice["headers"])

    assert alice["id"] not in [u["id"] for u in response.json()]


def test_find_users_caps_results(client, alice):
    for i in range(12):
        signup(client, f"user{i:02d}", f"user{i}@x.com", "pw")

    response = client.get("/users/find", params={"username": "user"}, headers=alice["headers"])

    assert len(response.json()) == 10


def test_find_users_treats_wildcards_literally(client, alice, bob):
    response = client.get("/users/find", params={"username": "%"}, headers=alice["headers"])

    assert response.json() == []


def test_find_users_requires_query(client, alice):
    response = client.get("/users/find", headers=alice["headers"])

    assert response.status_code == 400


def test_find_users_requires_auth(client):
    assert client.get("/users/find", params={"username": "bob"}).status_code == 401
