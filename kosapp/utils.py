import logging
import os
from functools import wraps
from flask import session, redirect, render_template

from kosapp.storage import get_store
from kosapp.storage.base import ROLE_ADMIN, ROLE_GUEST

# Configure logging for your app (adjust level as needed)
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

GUEST_USER = {"user_id": "guest", "username": "Tamu", "role": ROLE_GUEST}


def login_user(user):
    session.clear()
    session.permanent = True
    session["user_id"] = user["user_id"]
    session["is_guest"] = False


def login_guest():
    session.clear()
    session.permanent = True
    session["user_id"] = GUEST_USER["user_id"]
    session["is_guest"] = True


def is_guest():
    return bool(session.get("is_guest"))


def current_user():
    """The logged-in user as a dict, the guest identity, or None."""
    if is_guest():
        return dict(GUEST_USER)
    user_id = session.get("user_id")
    if user_id is None:
        return None
    user = get_store().get_user_by_id(user_id)
    if user is None:
        # account was deleted while logged in
        session.clear()
    return user


def render_error(message, status=400):
    return render_template("error.html", message=message), status


def access_denied():
    return render_template("access_denied.html"), 403


# Any session, guest included
def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_user() is None:
            return redirect("/login")
        return f(*args, **kwargs)
    return decorated_function


# Registered accounts only; guests are sent back to the login page
def registered_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = current_user()
        if user is None or user["role"] == ROLE_GUEST:
            return redirect("/login")
        return f(*args, **kwargs)
    return decorated_function


# Admin authentication decorator
def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = current_user()
        if user is None or user["role"] != ROLE_ADMIN:
            return access_denied()
        return f(*args, **kwargs)
    return decorated_function
