"""
HTTP tests: the users resource exposed with RestApi, served by the flask test client
"""
import json

import pytest

from crudrest import DB, RestApi, model_resource


def test_get_record(client, users):
    response = client.get(f"/users/{users[0]}")
    assert response.status_code == 200
    assert response.headers["Content-Type"] == "application/json; charset=utf-8"
    result = response.get_json()
    assert result["result"] == {
        "id": users[0],
        "fullname": "Jon Doe",
        "email": "jon@example.com",
        "status": "active",
        "uri": f"/users/{users[0]}",
    }
    assert isinstance(result["meta"]["timestamp"], int)


def test_get_unknown_record(client, users):
    response = client.get("/users/7")
    assert response.status_code == 404
    assert response.headers["Content-Type"] == "application/json; charset=utf-8"
    assert response.get_json() == {"error": {"code": 404, "title": "Not Found", "detail": "Not Found"}}


def test_get_collection(client, users):
    response = client.get("/users?limit=2&offset=1")
    assert response.status_code == 200
    result = response.get_json()
    assert [record["id"] for record in result["result"]] == users[1:3]
    assert result["result"][0]["uri"] == f"/users/{users[1]}"
    meta = result["meta"]
    assert (meta["total"], meta["count"], meta["limit"], meta["offset"]) == (5, 2, 2, 1)


def test_get_collection_selection(client, users):
    result = client.get("/users?status=blocked").get_json()
    assert [record["fullname"] for record in result["result"]] == ["Max Mustermann", "Erika Mustermann"]
    assert result["meta"]["total"] == 2


def test_trailing_slash(client, users):
    assert client.get("/users/").status_code == 200


def test_get_csv(client, users):
    response = client.get("/users?format=csv&limit=2")
    assert response.status_code == 200
    assert response.headers["Content-Type"].startswith("application/csv")
    lines = response.get_data(as_text=True).splitlines()
    assert lines[0] == '"id","fullname","email","status","uri"'
    assert lines[1] == f'"{users[0]}","Jon Doe","jon@example.com","active","/users/{users[0]}"'
    assert len(lines) == 3
    assert "result" not in response.get_data(as_text=True)


def test_post(client, user_model):
    payload = {"id": 999, "fullname": "Jon Doe", "email": "jon@example.com", "phone": "555-0100"}
    response = client.post("/users", json=payload)
    assert response.status_code == 201
    result = response.get_json()
    assert result["result"]["id"] != 999
    assert result["result"]["uri"] == f"/users/{result['result']['id']}"
    assert "phone" not in result["result"]
    assert "timestamp" in result["meta"]
    assert DB.session.get(user_model, 999) is None
    assert DB.session.get(user_model, result["result"]["id"]).phone == "555-0100"


def test_post_list(client, user_model):
    payload = [
        {"fullname": "A", "email": "a@example.com"},
        {"fullname": "B", "email": "b@example.com"},
    ]
    response = client.post("/users", json=payload)
    assert response.status_code == 201
    assert [record["fullname"] for record in response.get_json()["result"]] == ["A", "B"]
    assert DB.session.query(user_model).count() == 2


def test_post_form(client):
    response = client.post("/users", data={"fullname": "Form User", "email": "form@example.com"})
    assert response.status_code == 201
    assert response.get_json()["result"]["fullname"] == "Form User"


def test_post_is_xss_cleaned(client):
    response = client.post("/users", json={"fullname": "<b>Jon</b> <script>alert(1)</script>Doe", "email": "x@example.com"})
    assert response.status_code == 201
    assert response.get_json()["result"]["fullname"] == "Jon Doe"


def test_text_round_trips_unchanged(client, user_model):
    response = client.post("/users", json={"fullname": "Tom & O'Brien", "email": "tom@example.com"})
    assert response.status_code == 201
    record = response.get_json()["result"]
    assert record["fullname"] == "Tom & O'Brien"

    # sending back what was received doesn't change it
    response = client.put(record["uri"], json={"fullname": record["fullname"]})
    assert response.status_code == 200
    assert response.get_json()["result"]["fullname"] == "Tom & O'Brien"
    assert DB.session.get(user_model, record["id"]).fullname == "Tom & O'Brien"


def test_post_invalid(client, users):
    response = client.post("/users", json={"fullname": "Jon Doe", "email": "jon@example.com"})
    assert response.status_code == 400
    assert response.get_json()["error"]["detail"] == "The email value is already taken."

    response = client.post("/users", data=b"{invalid json", content_type="application/json")
    assert response.status_code == 400
    assert response.get_json()["error"]["detail"] == "Invalid data"


def test_put(client, users, user_model):
    response = client.put(f"/users/{users[0]}", json={"id": 12, "fullname": "Jon Updated"})
    assert response.status_code == 200
    assert response.get_json()["result"]["fullname"] == "Jon Updated"
    assert response.get_json()["result"]["id"] == users[0]
    assert DB.session.get(user_model, users[0]).fullname == "Jon Updated"


def test_patch(client, users):
    response = client.patch(f"/users/{users[1]}", json={"phone": "555-1234"})
    assert response.status_code == 200
    assert response.get_json()["result"]["fullname"] == "Jane Roe"


def test_put_errors(client, users):
    assert client.put("/users/999", json={"fullname": "x"}).status_code == 404
    response = client.put(f"/users/{users[0]}", json={"email": "jane@example.com"})
    assert response.status_code == 400
    assert response.get_json()["error"]["detail"] == "The email value is already taken."


def test_put_collection(client, users, user_model):
    response = client.put("/users?status=blocked", json={"status": "active"})
    assert response.status_code == 200
    assert len(response.get_json()["result"]) == 2
    assert DB.session.query(user_model).filter_by(status="active").count() == 5


def test_put_collection_without_selection(client, users, user_model):
    response = client.put("/users", json={"status": "deleted"})
    assert response.status_code == 404
    assert response.get_json()["error"]["detail"] == "Invalid selection"
    assert DB.session.query(user_model).filter_by(status="deleted").count() == 0


def test_put_collection_invalid(client, users):
    response = client.put("/users?status=blocked", json={"fullname": "x" * 100})
    assert response.status_code == 400


def test_delete(client, users, user_model):
    response = client.delete(f"/users/{users[0]}")
    assert response.status_code == 204
    assert response.get_data() == b""
    assert DB.session.get(user_model, users[0]) is None
    assert client.delete(f"/users/{users[0]}").status_code == 404


def test_delete_collection(client, users, user_model):
    assert client.delete("/users").status_code == 404
    assert DB.session.query(user_model).count() == 5
    assert client.delete("/users?status=blocked").status_code == 204
    assert DB.session.query(user_model).count() == 3


def test_unknown_selection_field(app, backend, users):
    api = RestApi(app)
    engine = model_resource(backend, selection=lambda exchange: {"password": "x"})
    api.expose_resource("accounts", engine)
    response = app.test_client().get("/accounts")
    assert response.status_code == 400


def test_head(client, users):
    response = client.head(f"/users/{users[0]}")
    assert response.status_code == 200
    assert response.get_data() == b""


def test_method_not_allowed(app, backend, users):
    api = RestApi(app)
    api.expose_resource("readonly", model_resource(backend, allowed_methods=("get",)))
    api.expose_resource("accounts", model_resource(backend))
    client = app.test_client()
    response = client.delete(f"/readonly/{users[0]}")
    assert response.status_code == 405
    assert response.headers["Allow"] == "GET"
    assert response.get_json()["error"]["allowed"] == ["GET"]
    # bulk updates aren't allowed by default
    response = client.put("/accounts?status=active", json={"status": "blocked"})
    assert response.status_code == 405
    assert response.get_json()["error"]["allowed"] == ["GET", "POST"]
    assert client.get("/readonly?format=csv").status_code == 200


def test_default_protected_id(app, backend, users, user_model):
    api = RestApi(app)
    api.expose_resource("members", model_resource(backend))
    client = app.test_client()
    response = client.post("/members", json={"id": 999, "fullname": "A", "email": "a@example.com"})
    assert response.status_code == 201
    assert response.get_json()["result"]["id"] != 999

    response = client.put(f"/members/{users[0]}", json={"id": 77, "fullname": "Jon Renamed"})
    assert response.status_code == 200
    assert response.get_json()["result"]["id"] == users[0]
    assert DB.session.get(user_model, 77) is None
    assert DB.session.get(user_model, users[0]).fullname == "Jon Renamed"


@pytest.mark.parametrize("api_key, status", [("secret", 200), ("wrong", 401), (None, 401)])
def test_authentication(app, backend, users, api_key, status):
    api = RestApi(app)
    engine = model_resource(backend, authentication=(lambda exchange: exchange.request.headers.get("X-Api-Key") == "secret",))
    api.expose_resource("private", engine)
    headers = {"X-Api-Key": api_key} if api_key else {}
    response = app.test_client().get("/private", headers=headers)
    assert response.status_code == status
    if status == 401:
        assert json.loads(response.get_data())["error"]["title"] == "Unauthorized"
