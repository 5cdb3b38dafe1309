import hmac
import re
import secrets

from flask import Blueprint, current_app, flash, redirect, render_template, request, session, url_for
from passlib.context import CryptContext
from werkzeug.security import check_password_hash, generate_password_hash

from kosapp import google_oauth
from kosapp.google_oauth import GoogleOAuthError
from kosapp.storage import DuplicateUserError, get_store
from kosapp.utils import login_guest, login_user, logger, render_error

auth_bp = Blueprint('auth', __name__)

OAUTH_STATE_KEY = "google_oauth_state"

# bcrypt hashes ($2a$/$2b$) found in older users.json files
legacy_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _same_text(a, b):
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def password_matches(stored, password):
    if not stored:
        # Google-only account
        return False
    if stored.startswith("$2"):
        try:
            return legacy_pwd_context.verify(password, stored)
        except ValueError:
            return False
    if "$" in stored and ":" in stored.split("$", 1)[0]:
        return check_password_hash(stored, password)
    # legacy plain-text entry
    return _same_text(stored, password)


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "GET":
        return render_template("login.html", error=None)

    try:
        username = request.form.get("username", "").strip()
        password = request.form.get("password", "")

        user = get_store().get_user_by_username(username)
        if not user or not password_matches(user["password"], password):
            return render_template("login.html", error="Username atau password salah."), 400

        login_user(user)
        logger.info(f"User '{username}' logged in")
        return redirect("/dashboard")
    except Exception as e:
        logger.error(f"Login error: {e}")
        return render_error("Terjadi kesalahan server saat login.", 500)


@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    if request.method == "GET":
        return render_template("register.html", error=None)

    try:
        username = request.form.get("username", "").strip()
        password = request.form.get("password", "")
        if not username or not password:
            return render_template("register.html", error="Username dan password wajib diisi."), 400

        user = get_store().create_user(
            username=username,
            password=generate_password_hash(password),
            first_name=request.form.get("first_name", "").strip(),
            last_name=request.form.get("last_name", "").strip(),
            email=request.form.get("email", "").strip(),
            dob=request.form.get("dob") or None,
            phone_number=request.form.get("phone_number", "").strip(),
        )
    except DuplicateUserError:
        return render_error("Username atau email sudah terdaftar. Silakan pilih yang lain.", 400)
    except Exception as e:
        logger.error(f"Registrasi error: {e}")
        return render_error("Terjadi kesalahan server saat registrasi.", 500)

    login_user(user)
    logger.info(f"Registered new user '{username}'")
    return redirect("/dashboard")


@auth_bp.route("/guest")
def guest():
    login_guest()
    return redirect("/dashboard")


@auth_bp.route("/logout")
def logout():
    session.clear()
    return redirect("/login")


def _callback_url():
    return current_app.config.get("GOOGLE_CALLBACK_URL") or url_for("auth.google_callback", _external=True)


@auth_bp.route("/auth/google")
def google_login():
    if not google_oauth.is_configured(current_app.config):
        flash("Login dengan Google belum tersedia.", "warning")
        return redirect("/login")

    state = secrets.token_urlsafe(24)
    session[OAUTH_STATE_KEY] = state
    return redirect(google_oauth.build_authorize_url(
        current_app.config["GOOGLE_CLIENT_ID"], _callback_url(), state
    ))


def _unique_username(store, profile):
    email = profile.get("email") or ""
    base = email.split("@", 1)[0] if email else (profile.get("name") or "user")
    base = re.sub(r"[^A-Za-z0-9_.]", "", base) or "user"
    candidate, suffix = base, 1
    while store.get_user_by_username(candidate):
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


def user_from_google_profile(store, profile):
    """Find the account for a Google identity, linking or creating it."""
    google_id = profile["sub"]
    user = store.get_user_by_google_id(google_id)
    if user:
        return user

    email = profile.get("email") or ""
    if email and profile.get("email_verified", False):
        user = store.get_user_by_email(email)
        if user:
            logger.info(f"Linking Google account to existing user '{user['username']}'")
            return store.link_google_account(user["user_id"], google_id)

    return store.create_user(
        username=_unique_username(store, profile),
        password=None,
        google_id=google_id,
        first_name=profile.get("given_name") or profile.get("name") or "",
        last_name=profile.get("family_name") or "",
        email=email,
    )


@auth_bp.route("/auth/google/callback")
def google_callback():
    expected_state = session.pop(OAUTH_STATE_KEY, None)
    if request.args.get("error"):
        logger.warning(f"Google OAuth returned error: {request.args.get('error')}")
        flash("Login dengan Google dibatalkan.", "warning")
        return redirect("/login")

    state = request.args.get("state")
    code = request.args.get("code")
    if not code or not expected_state or not state or not _same_text(state, expected_state):
        logger.warning("Google OAuth callback with missing code or mismatched state")
        flash("Login dengan Google gagal. Silakan coba lagi.", "danger")
        return redirect("/login")

    try:
        profile = google_oauth.fetch_profile(
            code,
            current_app.config["GOOGLE_CLIENT_ID"],
            current_app.config["GOOGLE_CLIENT_SECRET"],
            _callback_url(),
        )
        user = user_from_google_profile(get_store(), profile)
    except (GoogleOAuthError, DuplicateUserError) as e:
        logger.warning(f"Google login failed: {e}")
        flash("Login dengan Google gagal. Silakan coba lagi.", "danger")
        return redirect("/login")
    except Exception as e:
        logger.error(f"Google callback error: {e}")
        flash("Terjadi kesalahan server saat login dengan Google.", "danger")
        return redirect("/login")

    login_user(user)
    logger.info(f"User '{user['username']}' logged in with Google")
    return redirect("/dashboard")
