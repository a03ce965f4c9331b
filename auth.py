import logging
import re

from flask_login import (
    LoginManager, login_user, logout_user, user_logged_in, user_logged_out
)

from models import db, User, Profile

logger = logging.getLogger(__name__)

login_manager = LoginManager()
login_manager.login_view = "admin.login"
login_manager.login_message = "Admin login required."
login_manager.login_message_category = "warning"

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthError(Exception):
    pass


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


def _on_signed_in(sender, user, **extra):
    logger.info("Session started for user %s", user.id)


def _on_signed_out(sender, user, **extra):
    logger.info("Session ended for user %s", getattr(user, "id", None))


user_logged_in.connect(_on_signed_in)
user_logged_out.connect(_on_signed_out)


def ensure_profile(user):
    """Profiles are created on first sign-in."""
    profile = db.session.get(Profile, user.id)
    if profile is None:
        profile = Profile(id=user.id, display_name=user.email.split("@", 1)[0])
        db.session.add(profile)
        db.session.commit()
    return profile


def sign_in(identifier, password):
    """Password sign-in. The identifier is the account email."""
    email = (identifier or "").strip().lower()
    user = User.query.filter_by(email=email).first()
    if user is None or not user.check_password(password or ""):
        raise AuthError("Invalid login credentials")
    login_user(user)
    ensure_profile(user)
    return user


def sign_out():
    logout_user()


def update_email(user, email):
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise AuthError("Unable to validate email address: invalid format")
    if email == user.email:
        return user
    if User.query.filter(User.email == email, User.id != user.id).first():
        raise AuthError("A user with this email address has already been registered")
    user.email = email
    db.session.commit()
    return user


def create_user(email, password):
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise AuthError("Unable to validate email address: invalid format")
    if not password:
        raise AuthError("Password is required")
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email)
        db.session.add(user)
    user.set_password(password)
    db.session.commit()
    return user
