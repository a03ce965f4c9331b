from models import db, Profile
from storage import bucket_storage


def test_home_shows_three_most_recent_and_count(client, admin_id, make_post):
    for i in range(5):
        make_post(admin_id, title=f"Recent {i}", slug=f"recent-{i}")
    make_post(admin_id, title="Hidden draft", slug="hidden", published=False)

    html = client.get("/").get_data(as_text=True)

    assert "5 published posts" in html
    assert "Recent 4" in html and "Recent 3" in html and "Recent 2" in html
    assert "Recent 1" not in html
    assert "Hidden draft" not in html


def test_category_page_paginates(client, admin_id, make_post):
    for i in range(7):
        make_post(admin_id, title=f"Agent {i}", slug=f"agent-{i}", category="ai")
    make_post(admin_id, title="Gadget", slug="gadget", category="tech")

    first = client.get("/ai").get_data(as_text=True)
    assert "Agent 6" in first and "Agent 2" in first
    assert "Agent 1" not in first
    assert "Gadget" not in first

    second = client.get("/ai?page=2").get_data(as_text=True)
    assert "Agent 1" in second and "Agent 0" in second
    assert "Agent 6" not in second


def test_empty_category_page(client):
    resp = client.get("/game")
    assert resp.status_code == 200
    assert "No Games posts yet." in resp.get_data(as_text=True)


def test_blog_filters_by_category_and_shows_authors(app, client, admin_id, make_post):
    make_post(admin_id, title="Code thing", slug="code-thing", category="code")
    make_post(admin_id, title="AI thing", slug="ai-thing", category="ai")
    with app.app_context():
        db.session.add(Profile(id=admin_id, display_name="Jane"))
        db.session.commit()

    html = client.get("/blog").get_data(as_text=True)
    assert "Code thing" in html and "AI thing" in html
    assert "Jane" in html

    filtered = client.get("/blog?category=code").get_data(as_text=True)
    assert "Code thing" in filtered
    assert "AI thing" not in filtered


def test_blog_without_profile_uses_anonymous(client, admin_id, make_post):
    make_post(admin_id, title="Lonely", slug="lonely")
    assert "Anonymous" in client.get("/blog").get_data(as_text=True)


def test_blog_bad_page_number_falls_back(client):
    assert client.get("/blog?page=abc").status_code == 200


def test_post_page_renders_html_body(client, admin_id, make_post):
    make_post(admin_id, title="Deep Dive", slug="deep-dive", content="<p><strong>Bold</strong> claim</p>")
    resp = client.get("/post/deep-dive")
    html = resp.get_data(as_text=True)

    assert resp.status_code == 200
    assert "<strong>Bold</strong> claim" in html
    assert "1 min read" in html


def test_unpublished_post_is_not_found(client, admin_id, make_post):
    make_post(admin_id, slug="secret", published=False)
    assert client.get("/post/secret").status_code == 404


def test_unknown_path_renders_not_found(client):
    resp = client.get("/does/not/exist")
    assert resp.status_code == 404
    assert "Page not found" in resp.get_data(as_text=True)


def test_server_status(client):
    data = client.get("/server-status").get_json()
    assert set(data) == {"rss", "maxRss", "heapObjects", "uptime"}
    assert data["rss"].endswith(" MB")
    assert data["uptime"].endswith(" seconds")


def test_sidebar_toggle(client):
    resp = client.post("/sidebar/toggle", data={"next": "/blog"})
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/blog")
    with client.session_transaction() as sess:
        assert sess["sidebar_open"] is True

    client.post("/sidebar/toggle", data={"next": "https://evil.example"})
    with client.session_transaction() as sess:
        assert sess["sidebar_open"] is False


def test_stored_objects_are_served(app, client):
    with app.app_context():
        bucket_storage.upload("media", "content/hello.txt", b"hello")

    resp = client.get("/storage/v1/object/public/media/content/hello.txt")
    assert resp.status_code == 200
    assert resp.data == b"hello"

    assert client.get("/storage/v1/object/public/secret/x.txt").status_code == 404
    assert client.get("/storage/v1/object/public/media/content/nope.txt").status_code == 404
