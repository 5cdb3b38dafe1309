"""Database-backed store on top of Flask-SQLAlchemy."""
import logging
from datetime import datetime, timezone

from sqlalchemy import case, func, or_, update
from sqlalchemy.exc import IntegrityError

from kosapp.models import KamarTersedia, LaporanKeuangan, User, db
from kosapp.storage.base import (
    ROLE_USER,
    DuplicateRoomError,
    DuplicateUserError,
    RoomUnavailableError,
    Store,
    with_status,
)

logger = logging.getLogger(__name__)


def _user_dict(user):
    return user.to_dict() if user else None


class SqlStore(Store):
    name = "sql"

    def init_storage(self):
        db.create_all()

    # users

    def get_user_by_id(self, user_id):
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            return None
        return _user_dict(db.session.get(User, user_id))

    def get_user_by_username(self, username):
        return _user_dict(User.query.filter_by(username=username).first())

    def get_user_by_email(self, email):
        if not email:
            return None
        return _user_dict(User.query.filter_by(email=email).first())

    def get_user_by_google_id(self, google_id):
        if not google_id:
            return None
        return _user_dict(User.query.filter_by(google_id=google_id).first())

    def create_user(self, username, password=None, first_name="", last_name="",
                    email="", dob=None, phone_number="", role=ROLE_USER, google_id=None):
        clauses = [User.username == username]
        if email:
            clauses.append(User.email == email)
        if User.query.filter(or_(*clauses)).first():
            raise DuplicateUserError(username)

        user = User(
            username=username,
            password=password,
            google_id=google_id,
            first_name=first_name or "",
            last_name=last_name or "",
            email=email or None,
            dob=dob or None,
            phone_number=phone_number or "",
            role=role,
        )
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise DuplicateUserError(username) from e
        return user.to_dict()

    def link_google_account(self, user_id, google_id):
        user = db.session.get(User, int(user_id))
        if not user:
            return None
        user.google_id = google_id
        db.session.commit()
        return user.to_dict()

    def update_profile(self, user_id, first_name, last_name, email, phone_number):
        user = db.session.get(User, int(user_id))
        if not user:
            return None
        if email and User.query.filter(User.email == email, User.user_id != user.user_id).first():
            raise DuplicateUserError(email)
        user.first_name = first_name or ""
        user.last_name = last_name or ""
        user.email = email or None
        user.phone_number = phone_number or ""
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise DuplicateUserError(email) from e
        return user.to_dict()

    def list_users_by_role(self, role):
        users = User.query.filter_by(role=role).order_by(User.user_id).all()
        return [u.to_dict() for u in users]

    def update_role(self, username, role):
        user = User.query.filter_by(username=username).first()
        if not user:
            return None
        user.role = role
        db.session.commit()
        return user.to_dict()

    def delete_user(self, username):
        user = User.query.filter_by(username=username).first()
        if not user:
            return False
        db.session.delete(user)
        db.session.commit()
        return True

    # rooms

    def list_rooms(self, search=""):
        query = KamarTersedia.query
        if search:
            q = search.lower()
            # % and _ in the term are literal
            tipe_match = func.lower(KamarTersedia.tipe_kamar).contains(q, autoescape=True)
            query = query.filter(or_(tipe_match, func.lower(KamarTersedia.deskripsi).contains(q, autoescape=True)))
            query = query.order_by(case((tipe_match, 0), else_=1), KamarTersedia.tipe_kamar)
        else:
            query = query.order_by(KamarTersedia.tipe_kamar)
        return [with_status(k.to_dict()) for k in query.all()]

    def get_room_by_type(self, tipe_kamar):
        kamar = KamarTersedia.query.filter_by(tipe_kamar=tipe_kamar).first()
        return with_status(kamar.to_dict()) if kamar else None

    def add_room(self, tipe_kamar, harga, deskripsi, jumlah_tersedia):
        if KamarTersedia.query.filter_by(tipe_kamar=tipe_kamar).first():
            raise DuplicateRoomError(tipe_kamar)
        kamar = KamarTersedia(
            tipe_kamar=tipe_kamar,
            harga=harga,
            deskripsi=deskripsi or "",
            jumlah_tersedia=jumlah_tersedia,
        )
        db.session.add(kamar)
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise DuplicateRoomError(tipe_kamar) from e
        return with_status(kamar.to_dict())

    def update_room_availability(self, room_id, jumlah_tersedia):
        kamar = db.session.get(KamarTersedia, int(room_id))
        if not kamar:
            return None
        kamar.jumlah_tersedia = jumlah_tersedia
        db.session.commit()
        return with_status(kamar.to_dict())

    def delete_room(self, room_id):
        kamar = db.session.get(KamarTersedia, int(room_id))
        if not kamar:
            return False
        db.session.delete(kamar)
        db.session.commit()
        return True

    # bookings and reports

    def book_room(self, tipe_kamar, user_id):
        # Check and decrement in one statement so concurrent bookings cannot oversell.
        result = db.session.execute(
            update(KamarTersedia)
            .where(KamarTersedia.tipe_kamar == tipe_kamar, KamarTersedia.jumlah_tersedia > 0)
            .values(jumlah_tersedia=KamarTersedia.jumlah_tersedia - 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise RoomUnavailableError(tipe_kamar)

        laporan = LaporanKeuangan(
            user_id=int(user_id),
            tipe_kamar=tipe_kamar,
            tanggal_pembayaran=datetime.now(timezone.utc),
        )
        db.session.add(laporan)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        # drop stale identity-map copies of the decremented row
        db.session.expire_all()
        return laporan.to_dict()

    def list_reports(self, user_id=None, username_search=""):
        query = (
            db.session.query(LaporanKeuangan, User.username)
            .outerjoin(User, User.user_id == LaporanKeuangan.user_id)
        )
        if user_id is not None:
            query = query.filter(LaporanKeuangan.user_id == int(user_id))
        if username_search:
            query = query.filter(func.lower(User.username).contains(username_search.lower(), autoescape=True))

        rows = []
        for laporan, username in query.order_by(LaporanKeuangan.id).all():
            row = laporan.to_dict()
            row["username"] = username or "Unknown"
            rows.append(row)
        return rows
