import pytest


@pytest.fixture
def issue(citizen, make_issue):
    return make_issue(citizen)


def _comment(client, issue, user, content):
    response = client.post(f"/api/issues/{issue['id']}/comments", json={"content": content}, headers=user["headers"])
    assert response.status_code == 201
    return response.get_json()["data"]["comment"]


def test_add_comment_returns_author_projection(client, issue, other_citizen):
    comment = _comment(client, issue, other_citizen, "  Still there this morning  ")
    assert comment["content"] == "Still there this morning"
    assert comment["issueId"] == issue["id"]
    assert comment["authorId"] == other_citizen["id"]
    assert set(comment["author"]) == {"id", "name", "email", "role", "profilePicture"}


def test_comments_are_public_and_newest_first(client, issue, citizen, other_citizen):
    for n, user in enumerate((citizen, other_citizen, citizen)):
        _comment(client, issue, user, f"comment {n}")
    response = client.get(f"/api/issues/{issue['id']}/comments")
    assert response.status_code == 200
    body = response.get_json()
    assert body["results"] == 3
    assert [c["content"] for c in body["data"]["comments"]] == ["comment 2", "comment 1", "comment 0"]


@pytest.mark.parametrize("content", ["", "   ", None, "x" * 501])
def test_invalid_comment_content(client, issue, citizen, content):
    response = client.post(f"/api/issues/{issue['id']}/comments", json={"content": content}, headers=citizen["headers"])
    assert response.status_code == 400
    assert "content" in response.get_json()["errors"]


def test_comment_on_missing_issue(client, citizen):
    response = client.post("/api/issues/777/comments", json={"content": "hello"}, headers=citizen["headers"])
    assert response.status_code == 404
    assert client.get("/api/issues/777/comments").status_code == 404


def test_comment_requires_authentication(client, issue):
    assert client.post(f"/api/issues/{issue['id']}/comments", json={"content": "hi"}).status_code == 401


def test_author_can_delete_comment(client, issue, other_citizen):
    comment = _comment(client, issue, other_citizen, "typo")
    response = client.delete(f"/api/comments/{comment['id']}", headers=other_citizen["headers"])
    assert response.status_code == 200
    assert client.get(f"/api/issues/{issue['id']}/comments").get_json()["results"] == 0
    assert client.get(f"/api/issues/{issue['id']}").status_code == 200


def test_admin_can_delete_any_comment(client, issue, other_citizen, admin):
    comment = _comment(client, issue, other_citizen, "spam")
    assert client.delete(f"/api/comments/{comment['id']}", headers=admin["headers"]).status_code == 200


@pytest.mark.parametrize("who", ["citizen", "official"])
def test_others_cannot_delete_comment(client, issue, other_citizen, citizen, official, who):
    comment = _comment(client, issue, other_citizen, "mine")
    actor = citizen if who == "citizen" else official
    response = client.delete(f"/api/comments/{comment['id']}", headers=actor["headers"])
    assert response.status_code == 403
    assert client.get(f"/api/issues/{issue['id']}/comments").get_json()["results"] == 1


def test_delete_missing_comment(client, citizen):
    assert client.delete("/api/comments/31337", headers=citizen["headers"]).status_code == 404
