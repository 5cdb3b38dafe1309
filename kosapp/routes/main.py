from flask import Blueprint, redirect, render_template, request

from kosapp.storage import get_store
from kosapp.storage.base import ROLE_ADMIN
from kosapp.utils import admin_required, current_user, login_required, logger, render_error

main_bp = Blueprint('main', __name__)


@main_bp.route("/")
def home():
    return redirect("/login")


@main_bp.route("/dashboard")
@login_required
def dashboard():
    user = current_user()
    if user["role"] == ROLE_ADMIN:
        return redirect("/dashboardAdmin")
    try:
        semua_kamar = get_store().list_rooms()
        jumlah_tersedia = len([k for k in semua_kamar if k["jumlah_tersedia"] > 0])
        return render_template("dashboard.html", user=user, jumlah_tersedia=jumlah_tersedia)
    except Exception as e:
        logger.error(f"Dashboard error: {e}")
        return render_error("Gagal memuat dashboard.", 500)


@main_bp.route("/dashboardAdmin")
@admin_required
def dashboard_admin():
    return render_template("dashboard_admin.html", user=current_user())


@main_bp.route("/TipeKamar")
@login_required
def tipe_kamar():
    user = current_user()
    search_query = request.args.get("search", "").strip()
    try:
        semua_kamar = get_store().list_rooms(search_query)
        return render_template("tipe_kamar.html", user=user, kamar_list=semua_kamar,
                               search_query=search_query)
    except Exception as e:
        logger.error(f"TipeKamar error: {e}")
        return render_error("Gagal memuat halaman Tipe Kamar.", 500)


@main_bp.route("/kamarTersedia")
@login_required
def kamar_tersedia():
    user = current_user()
    try:
        tersedia = [k for k in get_store().list_rooms() if k["jumlah_tersedia"] > 0]
        return render_template("kamar_tersedia.html", user=user, kamar_list=tersedia)
    except Exception as e:
        logger.error(f"kamarTersedia error: {e}")
        return render_error("Gagal memuat halaman Kamar Tersedia.", 500)
