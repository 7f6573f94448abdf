from conftest import register


def test_signup_login_and_me(client):
    login = register(client, email="Recruiter@Acme.io", name="Dana")
    headers = {"Authorization": f"Bearer {login['access_token']}"}

    me = client.get("/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json() == {"user_id": login["user_id"], "name": "Dana", "email": "recruiter@acme.io"}


def test_duplicate_signup(client):
    payload = {"name": "Dana", "email": "dana@acme.io", "password": "Secret123!"}
    assert client.post("/auth/signup", json=payload).status_code == 200
    assert client.post("/auth/signup", json=payload).status_code == 400


def test_weak_password(client):
    response = client.post("/auth/signup", json={"name": "Dana", "email": "dana@acme.io", "password": "password"})
    assert response.status_code == 400


def test_wrong_password(client):
    register(client)
    response = client.post("/auth/login", json={"email": "recruiter@acme.io", "password": "Wrong123!"})
    assert response.status_code == 401


def test_logout_invalidates_session(client):
    login = register(client)
    headers = {"Authorization": f"Bearer {login['access_token']}"}

    assert client.post("/auth/logout", headers=headers).status_code == 200
    assert client.get("/auth/me", headers=headers).status_code == 401


def test_garbage_token(client):
    assert client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401
