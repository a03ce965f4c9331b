import gc
import os
import resource
import sys
import time

from flask import (
    Blueprint, abort, current_app, jsonify, redirect, render_template,
    request, send_from_directory, session, url_for
)
from markupsafe import Markup

from models import Post, CATEGORIES
from posts import (
    author_card, count_published, paginate, pagination_range,
    published_categories, published_query, total_pages
)
from storage import bucket_storage
from textconv import reading_time


site = Blueprint("site", __name__)

CATEGORY_TITLES = {
    "ai": "AI",
    "code": "Code",
    "tech": "Tech",
    "game": "Games",
    "music": "Music",
    "projects": "Projects",
}


def _page_arg():
    try:
        return max(1, int(request.args.get("page", "1")))
    except ValueError:
        return 1


def _mb(num_bytes):
    return f"{round(num_bytes / 1024 / 1024 * 100) / 100} MB"


def _current_rss():
    """Resident set size in bytes; falls back to the peak where /proc is absent."""
    try:
        with open("/proc/self/statm") as fh:
            pages = int(fh.read().split()[1])
        return pages * os.sysconf("SC_PAGE_SIZE")
    except (OSError, ValueError, IndexError):
        return _peak_rss()


def _peak_rss():
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # kilobytes on Linux, bytes on macOS
    return peak if sys.platform == "darwin" else peak * 1024


@site.route("/")
def index():
    recent = (
        published_query()
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(3)
        .all()
    )
    return render_template("index.html", recent_posts=recent, post_count=count_published())


@site.route(f"/<any({', '.join(CATEGORIES)}):category>")
def category_page(category):
    per_page = current_app.config["POSTS_PER_PAGE"]
    page = _page_arg()
    posts, count = paginate(published_query(category), page, per_page)
    return render_template(
        "category.html",
        category=category,
        category_title=CATEGORY_TITLES.get(category, category.title()),
        posts=posts,
        page=page,
        total_pages=total_pages(count, per_page),
    )


@site.route("/blog")
def blog():
    per_page = current_app.config["POSTS_PER_PAGE"]
    page = _page_arg()
    active = request.args.get("category", "all")

    posts, count = paginate(published_query(active), page, per_page)
    pages = total_pages(count, per_page) if count else 0
    entries = [{"post": p, "author": author_card(p.author_id)} for p in posts]

    return render_template(
        "blog.html",
        entries=entries,
        blog_categories=published_categories(),
        active_category=active,
        page=page,
        total_pages=pages,
        total_posts=count,
        page_numbers=pagination_range(page, pages),
    )


@site.route("/post/<slug>")
def post_view(slug):
    post = published_query().filter(Post.slug == slug).first()
    if post is None:
        abort(404)
    return render_template(
        "post.html",
        post=post,
        body=Markup(post.content),
        reading_time=reading_time(post.content),
        author=author_card(post.author_id),
    )


@site.route("/sidebar/toggle", methods=["POST"])
def toggle_sidebar():
    session["sidebar_open"] = not session.get("sidebar_open", False)
    next_url = request.form.get("next", "")
    if not next_url.startswith("/") or next_url.startswith("//"):
        next_url = url_for("site.index")
    return redirect(next_url)


@site.route("/server-status")
def server_status():
    uptime = time.time() - current_app.config["STARTED_AT"]
    return jsonify({
        "rss": _mb(_current_rss()),
        "maxRss": _mb(_peak_rss()),
        "heapObjects": len(gc.get_objects()),
        "uptime": f"{int(uptime)} seconds",
    })


# Public object URLs: /storage/v1/object/public/<bucket>/<key>
@site.route("/storage/v1/object/public/<bucket>/<path:key>")
def storage_object(bucket, key):
    if bucket not in current_app.config["STORAGE_BUCKETS"]:
        abort(404)
    if bucket_storage.path_for(bucket, key) is None:
        abort(404)
    return send_from_directory(os.path.join(bucket_storage.root, bucket), key)
