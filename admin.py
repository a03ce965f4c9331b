import logging
import os
import uuid

from flask import (
    Blueprint, abort, current_app, flash, jsonify, redirect, render_template,
    request, url_for
)
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.utils import secure_filename

from auth import AuthError, ensure_profile, sign_in, sign_out, update_email
from gemini import GenerationError, friendly_error_message, generate_markdown
from models import db, Post, Profile, Todo, CATEGORIES, DEFAULT_CATEGORY
from posts import PostValidationError, delete_post_with_media, save_post
from storage import StorageError, bucket_storage
from textconv import html_to_markdown, markdown_to_html

logger = logging.getLogger(__name__)

admin = Blueprint("admin", __name__, url_prefix="/admin")

MEDIA_FOLDERS = {"featured", "content"}


def allowed_image(filename):
    exts = current_app.config["ALLOWED_IMAGE_EXTENSIONS"]
    return "." in filename and filename.rsplit(".", 1)[1].lower() in exts


def _own_post_or_404(post_id):
    post = db.session.get(Post, post_id)
    if post is None or post.author_id != current_user.id:
        abort(404)
    return post


def _own_todo_or_404(todo_id):
    todo = db.session.get(Todo, todo_id)
    if todo is None or todo.user_id != current_user.id:
        abort(404)
    return todo


# ===== Session =====

@admin.route("", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("admin.dashboard"))

    if request.method == "POST":
        try:
            sign_in(request.form.get("email", ""), request.form.get("password", ""))
        except AuthError as e:
            logger.info("Failed sign-in for %s", request.form.get("email", ""))
            flash(f"Error signing in: {e}", "danger")
            return render_template("admin/login.html", email=request.form.get("email", "")), 401
        flash("Login successful. Welcome back!", "success")
        next_url = request.args.get("next", "")
        if not next_url.startswith("/") or next_url.startswith("//"):
            next_url = url_for("admin.dashboard")
        return redirect(next_url)

    return render_template("admin/login.html")


@admin.route("/logout", methods=["POST"])
@login_required
def logout():
    sign_out()
    flash("Signed out successfully.", "info")
    return redirect(url_for("site.index"))


# ===== Dashboard & todos =====

@admin.route("/dashboard")
@login_required
def dashboard():
    todos = (
        Todo.query.filter_by(user_id=current_user.id)
        .order_by(Todo.created_at.desc(), Todo.id.desc())
        .all()
    )
    return render_template("admin/dashboard.html", todos=todos)


@admin.route("/todos", methods=["POST"])
@login_required
def add_todo():
    title = request.form.get("title", "").strip()
    if not title:
        return redirect(url_for("admin.dashboard"))
    try:
        db.session.add(Todo(user_id=current_user.id, title=title, is_completed=False))
        db.session.commit()
        flash("Todo added successfully", "success")
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Error adding todo: %s", e)
        flash("Failed to add todo", "danger")
    return redirect(url_for("admin.dashboard"))


@admin.route("/todos/<int:todo_id>/toggle", methods=["POST"])
@login_required
def toggle_todo(todo_id):
    todo = _own_todo_or_404(todo_id)
    try:
        todo.is_completed = not todo.is_completed
        db.session.commit()
        flash("Todo marked as complete" if todo.is_completed else "Todo marked as incomplete", "success")
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Error updating todo: %s", e)
        flash("Failed to update todo status", "danger")
    return redirect(url_for("admin.dashboard"))


@admin.route("/todos/<int:todo_id>/delete", methods=["POST"])
@login_required
def delete_todo(todo_id):
    todo = _own_todo_or_404(todo_id)
    try:
        db.session.delete(todo)
        db.session.commit()
        flash("Todo deleted successfully", "info")
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Error deleting todo: %s", e)
        flash("Failed to delete todo", "danger")
    return redirect(url_for("admin.dashboard"))


# ===== Profile =====

@admin.route("/profile", methods=["GET", "POST"])
@login_required
def profile():
    prof = ensure_profile(current_user)

    if request.method == "POST":
        try:
            prof.display_name = request.form.get("display_name", "").strip() or None
            db.session.commit()
            flash("Your profile has been updated successfully.", "success")
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Error updating profile: %s", e)
            flash(f"Error updating profile: {e}", "danger")
        return redirect(url_for("admin.profile"))

    return render_template("admin/profile.html", profile=prof)


@admin.route("/profile/avatar", methods=["POST"])
@login_required
def upload_avatar():
    f = request.files.get("avatar")
    if not f or f.filename == "":
        return redirect(url_for("admin.profile"))

    if not allowed_image(f.filename):
        flash(f"Unsupported image type: {f.filename}", "danger")
        return redirect(url_for("admin.profile"))

    data = f.read()
    if len(data) > current_app.config["AVATAR_MAX_BYTES"]:
        flash("File too large. Image must be less than 2MB", "danger")
        return redirect(url_for("admin.profile"))

    ext = f.filename.rsplit(".", 1)[1].lower()
    key = f"{current_user.id}/{uuid.uuid4()}.{ext}"
    try:
        if not bucket_storage.bucket_exists("avatars"):
            bucket_storage.create_bucket("avatars")
        bucket_storage.upload("avatars", key, data)
        prof = ensure_profile(current_user)
        prof.avatar_url = bucket_storage.public_url("avatars", key)
        db.session.commit()
        flash("Your profile picture has been updated successfully.", "success")
    except (StorageError, SQLAlchemyError) as e:
        db.session.rollback()
        logger.error("Error uploading avatar: %s", e)
        flash(f"Error uploading avatar: {e}", "danger")
    return redirect(url_for("admin.profile"))


@admin.route("/profile/email", methods=["POST"])
@login_required
def change_email():
    try:
        update_email(current_user, request.form.get("email", ""))
        flash("Email updated successfully.", "success")
    except AuthError as e:
        logger.info("Email update rejected: %s", e)
        flash(f"Error updating email: {e}", "danger")
    return redirect(url_for("admin.profile"))


@admin.route("/profile/social", methods=["POST"])
@login_required
def update_social():
    prof = ensure_profile(current_user)
    try:
        for field in Profile.SOCIAL_FIELDS:
            setattr(prof, field, request.form.get(field, "").strip() or None)
        db.session.commit()
        flash("Your social media links have been updated successfully.", "success")
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Social media update error: %s", e)
        flash(f"Error updating social media: {e}", "danger")
    return redirect(url_for("admin.profile"))


# ===== Posts =====

@admin.route("/posts")
@login_required
def posts():
    items = (
        Post.query.filter_by(author_id=current_user.id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .all()
    )
    return render_template("admin/posts.html", posts=items)


def _render_editor(post=None, values=None, status=200):
    values = values or {}
    content = values.get("content", post.content if post else "")
    markdown_source = values.get("markdown") or html_to_markdown(content)
    return render_template(
        "admin/editor.html",
        post=post,
        values=values,
        content=content,
        markdown_source=markdown_source,
        editor_mode=values.get("editor_mode", "rich"),
        post_categories=CATEGORIES,
        default_category=DEFAULT_CATEGORY,
    ), status


def _submit_editor(post=None):
    values = request.form.to_dict()
    try:
        saved, warnings = save_post(values, current_user.id, post=post)
    except PostValidationError as e:
        logger.error("Error saving post: %s", e)
        flash(str(e), "danger")
        return _render_editor(post, values, status=400)

    for message in warnings:
        flash(message, "warning")
    verb = "updated" if post is not None else "created"
    flash(f'Your post "{saved.title}" has been {verb} successfully.', "success")
    return redirect(url_for("admin.posts"))


@admin.route("/posts/new", methods=["GET", "POST"])
@login_required
def new_post():
    if request.method == "POST":
        return _submit_editor()
    return _render_editor()


@admin.route("/posts/edit/<int:post_id>", methods=["GET", "POST"])
@login_required
def edit_post(post_id):
    post = _own_post_or_404(post_id)
    if request.method == "POST":
        return _submit_editor(post)
    return _render_editor(post)


@admin.route("/posts/<int:post_id>/delete", methods=["POST"])
@login_required
def delete_post(post_id):
    post = _own_post_or_404(post_id)
    try:
        delete_post_with_media(post, bucket_storage)
        flash("Your post and associated media files have been permanently deleted.", "info")
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Error during post deletion: %s", e)
        flash(f"Error deleting post: {e}", "danger")
    return redirect(url_for("admin.posts"))


# ===== Editor helpers (JSON) =====

@admin.route("/media/upload", methods=["POST"])
@login_required
def upload_media():
    folder = request.form.get("folder", "content")
    if folder not in MEDIA_FOLDERS:
        return jsonify({"error": f"Unknown media folder: {folder}"}), 400

    f = request.files.get("file")
    if not f or f.filename == "":
        return jsonify({"error": "No file selected"}), 400
    if not allowed_image(f.filename):
        return jsonify({"error": f"Unsupported image type: {f.filename}"}), 400

    filename = secure_filename(f.filename) or "upload"
    key = f"{folder}/{uuid.uuid4()}-{filename}"
    try:
        bucket_storage.ensure_writable("media")
        bucket_storage.upload("media", key, f)
    except StorageError as e:
        logger.error("Error uploading media: %s", e)
        return jsonify({"error": str(e)}), 500

    url = bucket_storage.public_url("media", key)
    return jsonify({"url": url, "path": key, "alt": os.path.splitext(filename)[0]})


def _json_payload():
    """The request's JSON object, or None when the body is not one."""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else None


@admin.route("/posts/generate", methods=["POST"])
@login_required
def generate_content():
    payload = _json_payload()
    if payload is None:
        if request.is_json:
            return jsonify({"error": "Request body must be a JSON object."}), 400
        payload = request.form
    prompt = payload.get("prompt") or ""
    if not isinstance(prompt, str):
        return jsonify({"error": "Prompt must be text."}), 400
    prompt = prompt.strip()
    if not prompt:
        return jsonify({"error": "Please enter a prompt for the AI to generate content."}), 400

    cfg = current_app.config
    try:
        text = generate_markdown(
            prompt,
            api_key=cfg["GEMINI_API_KEY"],
            models=cfg["GEMINI_MODELS"],
            api_url=cfg["GEMINI_API_URL"],
            timeout=cfg["GEMINI_TIMEOUT"],
        )
    except GenerationError as e:
        logger.error("Error generating content: %s", e)
        return jsonify({"error": friendly_error_message(e)}), 502

    return jsonify({"markdown": text, "html": markdown_to_html(text)})


@admin.route("/posts/convert", methods=["POST"])
@login_required
def convert_content():
    payload = _json_payload()
    if payload is None:
        if request.is_json:
            return jsonify({"error": "Request body must be a JSON object."}), 400
        payload = {}

    field = "markdown" if "markdown" in payload else "html"
    source = payload.get(field) or ""
    if not isinstance(source, str):
        return jsonify({"error": f"'{field}' must be text."}), 400
    if field == "markdown":
        return jsonify({"html": markdown_to_html(source)})
    return jsonify({"markdown": html_to_markdown(source)})
