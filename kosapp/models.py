from datetime import timezone
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _as_utc(value):
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class User(db.Model):
    __tablename__ = "users"
    # ids of deleted accounts must not be handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    user_id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password = db.Column(db.String(200))  # Hashed Password, NULL for Google accounts
    google_id = db.Column(db.String(100), unique=True)
    first_name = db.Column(db.String(100), nullable=False, default="")
    last_name = db.Column(db.String(100), nullable=False, default="")
    email = db.Column(db.String(150), unique=True)  # NULL when not given
    dob = db.Column(db.String(20))
    phone_number = db.Column(db.String(20), nullable=False, default="")
    role = db.Column(db.String(10), nullable=False, default="user")

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "username": self.username,
            "password": self.password,
            "google_id": self.google_id,
            "first_name": self.first_name or "",
            "last_name": self.last_name or "",
            "email": self.email or "",
            "dob": self.dob,
            "phone_number": self.phone_number or "",
            "role": self.role,
        }


class KamarTersedia(db.Model):
    __tablename__ = "kamar_tersedia"

    id = db.Column(db.Integer, primary_key=True)
    tipe_kamar = db.Column(db.String(100), unique=True, nullable=False)
    harga = db.Column(db.Integer, nullable=False, default=0)  # Rupiah per month
    deskripsi = db.Column(db.Text, nullable=False, default="")
    jumlah_tersedia = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.CheckConstraint("jumlah_tersedia >= 0", name="ck_jumlah_tersedia_non_negative"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "tipe_kamar": self.tipe_kamar,
            "harga": self.harga,
            "deskripsi": self.deskripsi or "",
            "jumlah_tersedia": self.jumlah_tersedia,
        }


class LaporanKeuangan(db.Model):
    __tablename__ = "laporan_keuangan"

    id = db.Column(db.Integer, primary_key=True)
    # no foreign key: payment history outlives deleted accounts
    user_id = db.Column(db.Integer, nullable=False, index=True)
    tipe_kamar = db.Column(db.String(100), nullable=False)
    tanggal_pembayaran = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "tipe_kamar": self.tipe_kamar,
            "tanggal_pembayaran": _as_utc(self.tanggal_pembayaran),
        }
