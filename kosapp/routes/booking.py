from datetime import date

from flask import Blueprint, redirect, render_template, request

from kosapp.storage import RoomUnavailableError, get_store
from kosapp.utils import admin_required, current_user, logger, registered_required, render_error

booking_bp = Blueprint('booking', __name__)


@booking_bp.route("/Form")
@registered_required
def form():
    user = current_user()
    tipe = request.args.get("tipe", "").strip()
    if not tipe:
        return render_error("Parameter tipe dan harga tidak valid.", 400)

    try:
        kamar = get_store().get_room_by_type(tipe)
    except Exception as e:
        logger.error(f"Form error: {e}")
        return render_error("Gagal memuat formulir pemesanan.", 500)
    if kamar is None:
        return render_error("Parameter tipe dan harga tidak valid.", 400)

    nama = f"{user['first_name']} {user['last_name']}".strip()
    return render_template("form.html", user=user, kamar=kamar, nama=nama,
                           email=user["email"], tanggal_sewa=date.today().isoformat())


@booking_bp.route("/submitForm", methods=["POST"])
@registered_required
def submit_form():
    user = current_user()
    tipe_kamar = request.form.get("tipe_kamar", "").strip()
    try:
        laporan = get_store().book_room(tipe_kamar, user["user_id"])
    except RoomUnavailableError:
        logger.warning(f"Booking rejected for '{user['username']}': '{tipe_kamar}' not available")
        return render_error("Kamar yang Anda pilih tidak lagi tersedia.", 400)
    except Exception as e:
        logger.error(f"Error in submit_form: {e}")
        return render_error("Gagal memproses pesanan Anda. Silakan coba lagi.", 500)

    logger.info(f"Booking {laporan['id']} recorded: '{tipe_kamar}' for '{user['username']}'")
    return redirect("/laporanKeuangan")


@booking_bp.route("/laporanKeuangan")
@registered_required
def laporan_keuangan():
    user = current_user()
    try:
        rows = get_store().list_reports(user_id=user["user_id"])
        return render_template("laporan_keuangan.html", user=user, rows=rows)
    except Exception as e:
        logger.error(f"laporanKeuangan error: {e}")
        return render_error("Gagal memuat laporan keuangan.", 500)


@booking_bp.route("/laporanKeuanganAdmin")
@admin_required
def laporan_keuangan_admin():
    search_query = request.args.get("search", "").strip()
    try:
        rows = get_store().list_reports(username_search=search_query)
        return render_template("laporan_keuangan_admin.html", user=current_user(), rows=rows,
                               search_query=search_query)
    except Exception as e:
        logger.error(f"laporanKeuanganAdmin error: {e}")
        return render_error("Gagal memuat laporan keuangan admin.", 500)
