from models import db, Profile, User


def test_admin_pages_require_login(client):
    resp = client.get("/admin/dashboard")
    assert resp.status_code == 302
    assert "/admin?next=" in resp.headers["Location"]


def test_bad_credentials(client, admin_id):
    resp = client.post("/admin", data={"email": "admin@example.com", "password": "wrong"})
    assert resp.status_code == 401
    assert "Invalid login credentials" in resp.get_data(as_text=True)


def test_sign_in_creates_profile(app, client, admin_id):
    resp = client.post("/admin", data={"email": "Admin@Example.com ", "password": "secret"})
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/admin/dashboard")

    with app.app_context():
        profile = db.session.get(Profile, admin_id)
        assert profile is not None
        assert profile.display_name == "admin"


def test_sign_in_follows_local_next_only(client, admin_id):
    creds = {"email": "admin@example.com", "password": "secret"}
    resp = client.post("/admin?next=https://evil.example/", data=creds)
    assert resp.headers["Location"].endswith("/admin/dashboard")


def test_login_page_redirects_when_signed_in(auth_client):
    resp = auth_client.get("/admin")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/admin/dashboard")


def test_sign_out(auth_client):
    resp = auth_client.post("/admin/logout")
    assert resp.status_code == 302
    assert auth_client.get("/admin/dashboard").status_code == 302


def test_update_email(app, auth_client, admin_id):
    auth_client.post("/admin/profile/email", data={"email": "new@example.com"})
    with app.app_context():
        assert db.session.get(User, admin_id).email == "new@example.com"


def test_update_email_rejects_invalid_and_taken(app, auth_client, admin_id, other_id):
    resp = auth_client.post("/admin/profile/email", data={"email": "nope"}, follow_redirects=True)
    assert "Error updating email" in resp.get_data(as_text=True)

    resp = auth_client.post(
        "/admin/profile/email", data={"email": "other@example.com"}, follow_redirects=True
    )
    assert "already been registered" in resp.get_data(as_text=True)

    with app.app_context():
        assert db.session.get(User, admin_id).email == "admin@example.com"


def test_create_admin_command(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-admin", "--email", "cli@example.com", "--password", "pw"])
    assert result.exit_code == 0
    assert "cli@example.com" in result.output
    with app.app_context():
        user = User.query.filter_by(email="cli@example.com").one()
        assert user.check_password("pw")


def test_create_admin_command_rejects_bad_email(app):
    result = app.test_cli_runner().invoke(args=["create-admin", "--email", "bad", "--password", "pw"])
    assert result.exit_code != 0
