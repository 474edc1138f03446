from datetime import datetime, timedelta

from scribe_database.models import Note


def test_health_check(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Healthy"

# -------- AUTH TESTS --------
def test_register_and_login(client, user_data):
    # Register new user
    r = client.post("/auth/register", json=user_data)
    assert r.status_code == 200
    resp = r.json()
    assert resp["username"] == user_data["username"]
    assert resp["email"] == user_data["email"]
    assert "id" in resp

    # Duplicate username/email
    r2 = client.post("/auth/register", json=user_data)
    assert r2.status_code == 409

    # Login with correct credentials
    r3 = client.post("/auth/login", data={
        "username": user_data["username"], "password": user_data["password"]
    })
    assert r3.status_code == 200
    assert "access_token" in r3.json()

    # Login with email instead of username
    r4 = client.post("/auth/login", data={
        "username": user_data["email"], "password": user_data["password"]
    })
    assert r4.status_code == 200

    # Login with incorrect password
    r5 = client.post("/auth/login", data={
        "username": user_data["username"], "password": "wrongpw"
    })
    assert r5.status_code == 401

    # Login with nonexistent user
    r6 = client.post("/auth/login", data={
        "username": "somebody", "password": "pw"
    })
    assert r6.status_code == 401

def test_profile_requires_auth(client, auth_header, user_data):
    r = client.get("/auth/me")
    assert r.status_code == 401

    r2 = client.get("/auth/me", headers=auth_header)
    assert r2.status_code == 200
    assert r2.json()["username"] == user_data["username"]

def test_garbage_token_rejected(client):
    r = client.get("/notes", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401

# ------- NOTES CRUD --------
def test_notes_crud(client, auth_header):
    # Empty notes list
    r = client.get("/notes", headers=auth_header)
    assert r.status_code == 200
    assert r.json() == []

    # Create a note (valid)
    r2 = client.post("/notes", json={"title": "First", "content": "<p>Hello note</p>"}, headers=auth_header)
    assert r2.status_code == 200
    note = r2.json()
    assert note["title"] == "First"
    assert note["content"] == "<p>Hello note</p>"
    assert note["is_public"] is False
    note_id = note["id"]

    # List notes (should include the new one)
    notes = client.get("/notes", headers=auth_header).json()
    assert len(notes) == 1
    assert notes[0]["title"] == "First"

    # Get note by ID (success)
    r3 = client.get(f"/notes/{note_id}", headers=auth_header)
    assert r3.status_code == 200
    assert r3.json()["id"] == note_id

    # Save note
    r4 = client.put(f"/notes/{note_id}", json={"content": "<p>Updated!</p>", "title": "Renamed"}, headers=auth_header)
    assert r4.status_code == 200
    assert r4.json()["content"] == "<p>Updated!</p>"
    assert r4.json()["title"] == "Renamed"

    # Delete note
    r5 = client.delete(f"/notes/{note_id}", headers=auth_header)
    assert r5.status_code == 200
    assert r5.json() == {"success": True}

    # Ensure note gone
    r6 = client.get(f"/notes/{note_id}", headers=auth_header)
    assert r6.status_code == 404

def test_create_note_without_content(client, auth_header):
    r = client.post("/notes", json={"title": "Blank doc"}, headers=auth_header)
    assert r.status_code == 200
    assert r.json()["content"] == ""

def test_save_defaults_blank_title_and_missing_content(client, auth_header):
    note_id = client.post("/notes", json={"title": "Draft", "content": "<p>x</p>"}, headers=auth_header).json()["id"]

    r = client.put(f"/notes/{note_id}", json={"title": "   "}, headers=auth_header)
    assert r.status_code == 200
    assert r.json()["title"] == "Untitled Note"
    assert r.json()["content"] == ""

    r2 = client.put(f"/notes/{note_id}", json={}, headers=auth_header)
    assert r2.status_code == 200
    assert r2.json()["title"] == "Untitled Note"

def test_notes_listed_newest_first(client, auth_header, db_session):
    first = client.post("/notes", json={"title": "older"}, headers=auth_header).json()["id"]
    second = client.post("/notes", json={"title": "newer"}, headers=auth_header).json()["id"]
    db_session.get(Note, first).created_at = datetime.utcnow() - timedelta(days=1)
    db_session.commit()

    notes = client.get("/notes", headers=auth_header).json()
    assert [n["id"] for n in notes] == [second, first]

def test_notes_auth_required(client):
    # All notes endpoints must require auth
    assert client.get("/notes").status_code == 401
    assert client.post("/notes", json={"title": "x"}).status_code == 401
    assert client.get("/notes/123").status_code == 401
    assert client.put("/notes/123", json={"title": "x"}).status_code == 401
    assert client.delete("/notes/123").status_code == 401

def test_notes_multi_user(client, auth_header, second_auth_header):
    # User 1 adds note
    r = client.post("/notes", json={"title": "U1 note", "content": "Owned"}, headers=auth_header)
    note_id = r.json()["id"]

    # User 2 cannot see, save or delete it
    notes2 = client.get("/notes", headers=second_auth_header).json()
    assert all(n["id"] != note_id for n in notes2)

    assert client.get(f"/notes/{note_id}", headers=second_auth_header).status_code == 404
    assert client.put(f"/notes/{note_id}", json={"title": "hax"}, headers=second_auth_header).status_code == 404
    assert client.delete(f"/notes/{note_id}", headers=second_auth_header).status_code == 404

    # Still intact for the owner
    assert client.get(f"/notes/{note_id}", headers=auth_header).json()["title"] == "U1 note"

def test_notes_search(client, auth_header):
    for i in range(3):
        client.post("/notes", json={"title": f"todo-{i}", "content": "mytask"}, headers=auth_header)
    client.post("/notes", json={"title": "Meeting", "content": "work"}, headers=auth_header)
    # Search by title
    r = client.get("/notes?q=todo", headers=auth_header)
    assert r.status_code == 200
    found = [note["title"] for note in r.json()]
    assert len(found) == 3
    assert all("todo" in t for t in found)
    # Search by content
    r2 = client.get("/notes?q=work", headers=auth_header)
    assert len(r2.json()) == 1
    assert r2.json()[0]["title"] == "Meeting"

def test_create_note_invalid(client, auth_header):
    # Missing title
    r = client.post("/notes", json={"content": "x"}, headers=auth_header)
    assert r.status_code == 400
    assert r.json()["detail"] == "Title is required"
    # Null title
    r2 = client.post("/notes", json={"title": None}, headers=auth_header)
    assert r2.status_code == 400
    # Title too long
    r3 = client.post("/notes", json={"title": "x" * 300}, headers=auth_header)
    assert r3.status_code == 422

def test_update_note_not_found(client, auth_header):
    r = client.put("/notes/999", json={"title": "nope"}, headers=auth_header)
    assert r.status_code == 404

def test_delete_note_not_found(client, auth_header):
    r = client.delete("/notes/999", headers=auth_header)
    assert r.status_code == 404

def test_duplicate_registration(client, user_data):
    r = client.post("/auth/register", json=user_data)
    assert r.status_code == 200
    r2 = client.post("/auth/register", json=user_data)
    assert r2.status_code == 409

def test_create_note_blank_title_is_untitled(client, auth_header):
    for title in ("", "   "):
        r = client.post("/notes", json={"title": title}, headers=auth_header)
        assert r.status_code == 200
        assert r.json()["title"] == "Untitled Note"
