def test_favorites_roundtrip(player_client, field):
    resp = player_client.post("/favorites", json={"field_id": field.id})
    assert resp.status_code == 201
    fav_id = resp.get_json()["id"]

    listed = player_client.get("/favorites").get_json()
    assert [(f["id"], f["field_id"], f["name"]) for f in listed] == [(fav_id, field.id, "Cancha Central")]

    assert player_client.delete(f"/favorites/{fav_id}").status_code == 200
    assert player_client.get("/favorites").get_json() == []


def test_duplicate_favorite_is_409(player_client, field):
    assert player_client.post("/favorites", json={"field_id": field.id}).status_code == 201
    assert player_client.post("/favorites", json={"field_id": field.id}).status_code == 409


def test_favorite_unknown_field(player_client):
    assert player_client.post("/favorites", json={"field_id": 999}).status_code == 404
    assert player_client.post("/favorites", json={}).status_code == 400


def test_cannot_remove_someone_elses_favorite(app, player_client, field, helpers):
    fav_id = player_client.post("/favorites", json={"field_id": field.id}).get_json()["id"]
    helpers.profile("other@golplay.test")
    other = helpers.login(app.test_client(), "other@golplay.test")

    assert other.delete(f"/favorites/{fav_id}").status_code == 404


def test_favorites_need_login(client):
    assert client.get("/favorites").status_code == 401
