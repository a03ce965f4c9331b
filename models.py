from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash
from datetime import datetime, timezone

db = SQLAlchemy()

# Category slugs used in URLs and DB
CATEGORIES = ["ai", "code", "tech", "game", "music", "projects"]
DEFAULT_CATEGORY = "tech"


def utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    profile = db.relationship("Profile", backref="user", uselist=False, cascade="all, delete-orphan")

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


class Profile(db.Model):
    __tablename__ = "profiles"
    # Same id as the owning user
    id = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True)
    display_name = db.Column(db.String(120))
    avatar_url = db.Column(db.String(500))
    youtube_url = db.Column(db.String(500))
    instagram_url = db.Column(db.String(500))
    twitter_url = db.Column(db.String(500))
    facebook_url = db.Column(db.String(500))
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    SOCIAL_FIELDS = ("youtube_url", "instagram_url", "twitter_url", "facebook_url")


class Post(db.Model):
    __tablename__ = "posts"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(240), unique=True, nullable=False)
    content = db.Column(db.Text, nullable=False, default="")  # HTML
    excerpt = db.Column(db.Text)
    category = db.Column(db.String(40), nullable=False, default=DEFAULT_CATEGORY, index=True)
    published = db.Column(db.Boolean, nullable=False, default=False, index=True)
    featured_image = db.Column(db.String(500))  # public storage URL
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    seo_title = db.Column(db.String(200))
    seo_description = db.Column(db.Text)
    seo_keywords = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    author = db.relationship("User", backref=db.backref("posts", lazy="dynamic"))


class Todo(db.Model):
    __tablename__ = "todos"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    title = db.Column(db.String(300), nullable=False)
    is_completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
