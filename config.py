import os
from dotenv import load_dotenv

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

load_dotenv(os.path.join(BASE_DIR, ".env"))


def _csv(name, default):
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")

    # Postgres in production, local sqlite file otherwise
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL", "sqlite:///" + os.path.join(BASE_DIR, "site.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Buckets live in <STORAGE_ROOT>/<bucket>/
    STORAGE_ROOT = os.getenv("STORAGE_ROOT", os.path.join(BASE_DIR, "storage"))
    STORAGE_BUCKETS = ("media", "avatars")
    # Absolute base for public object URLs; request host when empty
    STORAGE_PUBLIC_URL = os.getenv("STORAGE_PUBLIC_URL", "")

    MAX_CONTENT_LENGTH = 25 * 1024 * 1024  # 25 MB
    AVATAR_MAX_BYTES = 2 * 1024 * 1024  # 2 MB
    ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}

    POSTS_PER_PAGE = int(os.getenv("POSTS_PER_PAGE", "5"))

    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    GEMINI_API_URL = os.getenv(
        "GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta"
    )
    GEMINI_MODELS = _csv(
        "GEMINI_MODELS",
        [
            "gemini-1.5-pro",
            "gemini-2.0-flash",
            "gemini-pro",
            "gemini-1.0-pro",
            "text-unicorn",
            "text-bison",
        ],
    )
    GEMINI_TIMEOUT = float(os.getenv("GEMINI_TIMEOUT", "60"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Used by `flask create-admin` when no arguments are given
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
