"""Post persistence used by the admin editor and the public listings."""

import logging
import math

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from models import db, Post, Profile, CATEGORIES, DEFAULT_CATEGORY
from storage import StorageError, extract_path_from_url, extract_media_paths_from_content
from textconv import generate_slug, markdown_to_html, normalize_slug

logger = logging.getLogger(__name__)

MAX_PAGES_SHOWN = 5
TRUTHY = {"on", "true", "1", "yes"}


class PostValidationError(Exception):
    pass


def _clean(value):
    value = (value or "").strip()
    return value or None


def _flag(value):
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in TRUTHY


def build_post_data(values, author_id):
    """Validate editor form values into column values.

    Returns (data, warnings). Raises PostValidationError for missing
    title/slug.
    """
    warnings = []
    title = (values.get("title") or "").strip()
    if not title:
        raise PostValidationError("Post title is required")

    raw_slug = (values.get("slug") or "").strip()
    slug = normalize_slug(raw_slug) if raw_slug else generate_slug(title)
    if not slug:
        raise PostValidationError("Post slug is required")

    if values.get("editor_mode") == "markdown":
        content = markdown_to_html(values.get("markdown") or "")
    else:
        content = values.get("content") or ""

    featured_image = _clean(values.get("featured_image"))
    if featured_image and featured_image.startswith("data:"):
        warnings.append("Featured image not uploaded. Please upload the featured image properly before saving.")
        featured_image = None

    category = (values.get("category") or "").strip() or DEFAULT_CATEGORY
    if category not in CATEGORIES:
        raise PostValidationError(f"Unknown category: {category}")

    data = {
        "title": title,
        "slug": slug,
        "content": content,
        "excerpt": _clean(values.get("excerpt")),
        "category": category,
        "published": _flag(values.get("published")),
        "author_id": author_id,
        "featured_image": featured_image,
        "seo_title": _clean(values.get("seo_title")) or title,
        "seo_description": _clean(values.get("seo_description")),
        "seo_keywords": _clean(values.get("seo_keywords")),
    }
    return data, warnings


def save_post(values, author_id, post=None):
    """Insert a new post, or update `post` in place. Returns (post, warnings)."""
    data, warnings = build_post_data(values, author_id)
    action = "update" if post is not None else "create"
    logger.debug("Saving post data: %s", data)

    if post is None:
        post = Post(**data)
        db.session.add(post)
    else:
        for key, value in data.items():
            setattr(post, key, value)

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Post %s failed: %s", action, e)
        reason = getattr(e, "orig", None) or e
        raise PostValidationError(f"Failed to {action} post: {reason}") from e
    return post, warnings


def media_paths_for(post):
    """Storage keys in the `media` bucket that belong to a post."""
    paths = []
    if post.featured_image:
        featured = extract_path_from_url(post.featured_image)
        if featured:
            paths.append(featured)
        else:
            logger.warning("Could not extract path from featured image URL: %s", post.featured_image)
    if post.content:
        paths.extend(extract_media_paths_from_content(post.content))
    return paths


def delete_post_with_media(post, storage):
    """Remove a post's media objects one by one, then the post row.

    Media removal is best-effort: failures are logged and the row is deleted
    anyway. Returns the keys that were actually removed.
    """
    removed = []
    paths = media_paths_for(post)
    if not paths:
        logger.info("No media files found to delete for post %s", post.id)

    for path in paths:
        try:
            removed.extend(storage.remove("media", [path]))
        except StorageError as e:
            logger.error("Error deleting file %s: %s", path, e)

    db.session.delete(post)
    db.session.commit()
    return removed


# ----- listings -----

def published_query(category=None):
    query = Post.query.filter(Post.published.is_(True))
    if category and category != "all":
        query = query.filter(Post.category == category)
    return query


def total_pages(count, per_page):
    return max(1, math.ceil(count / per_page))


def paginate(query, page, per_page):
    """One page of `query`, newest first, plus the exact total count."""
    count = query.count()
    page = max(1, page)
    offset = (page - 1) * per_page
    items = query.order_by(Post.created_at.desc(), Post.id.desc()).offset(offset).limit(per_page).all()
    return items, count


def pagination_range(current, pages, window=MAX_PAGES_SHOWN):
    start = max(1, current - window // 2)
    end = start + window - 1
    if end > pages:
        end = pages
        start = max(1, end - window + 1)
    return list(range(start, end + 1))


def published_categories():
    rows = (
        db.session.query(Post.category)
        .filter(Post.published.is_(True))
        .group_by(Post.category)
        .order_by(Post.category)
        .all()
    )
    return [row[0] for row in rows]


def author_card(author_id):
    profile = db.session.get(Profile, author_id) if author_id else None
    return {
        "display_name": (profile.display_name if profile else None) or "Anonymous",
        "avatar_url": profile.avatar_url if profile else None,
    }


def count_published():
    return db.session.query(func.count(Post.id)).filter(Post.published.is_(True)).scalar()
