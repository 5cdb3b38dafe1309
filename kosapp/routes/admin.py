from flask import Blueprint, flash, redirect, render_template, request

from kosapp.storage import DuplicateRoomError, get_store
from kosapp.storage.base import ROLE_ADMIN, ROLE_USER
from kosapp.utils import admin_required, current_user, logger, render_error

admin_bp = Blueprint('admin', __name__)


def _parse_non_negative(value):
    """Parse a form integer; None when missing, malformed or negative."""
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None


@admin_bp.route("/daftarUser")
@admin_required
def daftar_user():
    try:
        store = get_store()
        return render_template("daftar_user.html", user=current_user(),
                               admin_users=store.list_users_by_role(ROLE_ADMIN),
                               regular_users=store.list_users_by_role(ROLE_USER))
    except Exception as e:
        logger.error(f"daftarUser error: {e}")
        return render_error("Gagal memuat daftar pengguna.", 500)


@admin_bp.route("/daftarUser/delete", methods=["POST"])
@admin_required
def delete_user():
    username = request.form.get("username", "")
    if username == current_user()["username"]:
        return render_error("Anda tidak dapat menghapus akun Anda sendiri.", 400)
    try:
        if get_store().delete_user(username):
            logger.info(f"Deleted user '{username}'")
            flash(f"Pengguna {username} dihapus.", "success")
        return redirect("/daftarUser")
    except Exception as e:
        logger.error(f"Delete user error: {e}")
        return render_error("Gagal menghapus pengguna.", 500)


@admin_bp.route("/daftarUser/updateRole", methods=["POST"])
@admin_required
def update_role():
    username = request.form.get("username", "")
    new_role = request.form.get("newRole", "")
    if new_role not in (ROLE_ADMIN, ROLE_USER):
        return render_error("Peran tidak valid.", 400)
    try:
        if get_store().update_role(username, new_role):
            logger.info(f"Changed role of '{username}' to {new_role}")
        return redirect("/daftarUser")
    except Exception as e:
        logger.error(f"Update role error: {e}")
        return render_error("Gagal mengubah peran pengguna.", 500)


@admin_bp.route("/kelolaKamar")
@admin_required
def kelola_kamar():
    try:
        return render_template("kelola_kamar.html", user=current_user(),
                               kamar_list=get_store().list_rooms())
    except Exception as e:
        logger.error(f"kelolaKamar error: {e}")
        return render_error("Gagal memuat halaman kelola kamar.", 500)


@admin_bp.route("/kelolaKamar/add", methods=["POST"])
@admin_required
def add_kamar():
    tipe_kamar = request.form.get("tipe_kamar", "").strip()
    harga = _parse_non_negative(request.form.get("harga_kamar", "0") or "0")
    jumlah = _parse_non_negative(request.form.get("jumlah_tersedia", "0") or "0")
    if not tipe_kamar:
        return render_error("Tipe kamar wajib diisi.", 400)
    if harga is None or jumlah is None:
        return render_error("Harga dan jumlah kamar harus berupa angka positif.", 400)

    try:
        get_store().add_room(tipe_kamar, harga, request.form.get("deskripsi_kamar", "").strip(), jumlah)
    except DuplicateRoomError:
        return render_error(f"Tipe kamar {tipe_kamar} sudah ada.", 400)
    except Exception as e:
        logger.error(f"Add kamar error: {e}")
        return render_error("Gagal menambahkan kamar baru.", 500)

    logger.info(f"Added room type '{tipe_kamar}'")
    return redirect("/kelolaKamar")


@admin_bp.route("/kelolaKamar/update", methods=["POST"])
@admin_required
def update_kamar():
    room_id = _parse_non_negative(request.form.get("id"))
    jumlah = _parse_non_negative(request.form.get("jumlah_tersedia"))
    if room_id is None or jumlah is None:
        return render_error("Jumlah kamar tidak valid.", 400)
    try:
        get_store().update_room_availability(room_id, jumlah)
        return redirect("/kelolaKamar")
    except Exception as e:
        logger.error(f"Update kamar error: {e}")
        return render_error("Gagal memperbarui jumlah kamar.", 500)


@admin_bp.route("/kelolaKamar/delete", methods=["POST"])
@admin_required
def delete_kamar():
    room_id = _parse_non_negative(request.form.get("id"))
    if room_id is None:
        return render_error("Kamar tidak valid.", 400)
    try:
        get_store().delete_room(room_id)
        return redirect("/kelolaKamar")
    except Exception as e:
        logger.error(f"Delete kamar error: {e}")
        return render_error("Gagal menghapus kamar.", 500)
