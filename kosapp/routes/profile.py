from flask import Blueprint, flash, redirect, render_template, request

from kosapp.storage import DuplicateUserError, get_store
from kosapp.storage.base import ROLE_ADMIN
from kosapp.utils import admin_required, current_user, logger, registered_required, render_error

profile_bp = Blueprint('profile', __name__)

PLACEHOLDER_EMAIL = "belum_ada@gmail.com"


@profile_bp.route("/profile")
@registered_required
def profile():
    user = current_user()
    if user["role"] == ROLE_ADMIN:
        return redirect("/profileAdmin")
    return render_template("profile.html", user=user, placeholder_email=PLACEHOLDER_EMAIL)


@profile_bp.route("/profileAdmin")
@admin_required
def profile_admin():
    return render_template("profile_admin.html", user=current_user(), placeholder_email=PLACEHOLDER_EMAIL)


@profile_bp.route("/profile/update", methods=["POST"])
@registered_required
def update_profile():
    user = current_user()
    try:
        updated = get_store().update_profile(
            user["user_id"],
            first_name=request.form.get("first_name", "").strip(),
            last_name=request.form.get("last_name", "").strip(),
            email=request.form.get("email", "").strip(),
            phone_number=request.form.get("phone_number", "").strip(),
        )
    except DuplicateUserError:
        return render_error("Email sudah digunakan oleh pengguna lain.", 400)
    except Exception as e:
        logger.error(f"Profile update error: {e}")
        return render_error("Gagal memperbarui profil.", 500)

    if updated:
        flash("Profil berhasil diperbarui.", "success")
    if user["role"] == ROLE_ADMIN:
        return redirect("/profileAdmin")
    return redirect("/profile")
