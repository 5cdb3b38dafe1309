"""File-backed store: three JSON documents rewritten wholesale on each change."""
import copy
import json
import logging
import os
import tempfile
import threading
import time
from datetime import datetime, timezone

from kosapp.storage.base import (
    ROLE_USER,
    DuplicateRoomError,
    DuplicateUserError,
    RoomUnavailableError,
    Store,
    StoreError,
    with_status,
)

logger = logging.getLogger(__name__)

USERS_FILE = "users.json"
KAMAR_FILE = "kamar_tersedia.json"
LAPORAN_FILE = "laporan_keuangan.json"

# One lock for every document, so a booking sees rooms and reports consistently.
_lock = threading.RLock()


def _parse_timestamp(value):
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _next_id(rows, key):
    return max((int(r[key]) for r in rows), default=0) + 1


def _public_user(user):
    row = {
        "user_id": int(user["user_id"]),
        "username": user["username"],
        "password": user.get("password"),
        "google_id": user.get("google_id"),
        "first_name": user.get("first_name") or "",
        "last_name": user.get("last_name") or "",
        "email": user.get("email") or "",
        "dob": user.get("dob"),
        "phone_number": user.get("phone_number") or "",
        "role": user.get("role") or ROLE_USER,
    }
    return row


class JsonStore(Store):
    name = "json"

    def __init__(self, data_dir):
        self.data_dir = data_dir
        self.users_path = os.path.join(data_dir, USERS_FILE)
        self.kamar_path = os.path.join(data_dir, KAMAR_FILE)
        self.laporan_path = os.path.join(data_dir, LAPORAN_FILE)

    def init_storage(self):
        os.makedirs(self.data_dir, exist_ok=True)
        with _lock:
            for path in (self.users_path, self.kamar_path, self.laporan_path):
                if not os.path.exists(path):
                    logger.info(f"Creating empty document {path}")
                    self._write(path, [])

    def _read(self, path):
        if not os.path.exists(path):
            return []
        try:
            with open(path, "r", encoding="utf-8") as fh:
                raw = fh.read()
            return json.loads(raw or "[]")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StoreError(f"Cannot read {path}") from e

    def _write(self, path, rows):
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(rows, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StoreError(f"Cannot write {path}") from e

    # users

    def _find_user(self, predicate):
        with _lock:
            for user in self._read(self.users_path):
                if predicate(user):
                    return _public_user(user)
        return None

    def get_user_by_id(self, user_id):
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            return None
        return self._find_user(lambda u: int(u["user_id"]) == user_id)

    def get_user_by_username(self, username):
        return self._find_user(lambda u: str(u["username"]) == str(username))

    def get_user_by_email(self, email):
        if not email:
            return None
        return self._find_user(lambda u: (u.get("email") or "") == email)

    def get_user_by_google_id(self, google_id):
        if not google_id:
            return None
        return self._find_user(lambda u: u.get("google_id") == google_id)

    def create_user(self, username, password=None, first_name="", last_name="",
                    email="", dob=None, phone_number="", role=ROLE_USER, google_id=None):
        with _lock:
            users = self._read(self.users_path)
            for u in users:
                if str(u["username"]) == str(username) or (email and (u.get("email") or "") == email):
                    raise DuplicateUserError(username)
            # clock based so the id of a deleted account is never handed out again
            user = {
                "user_id": max(_next_id(users, "user_id"), int(time.time() * 1000)),
                "username": username,
                "password": password,
                "google_id": google_id,
                "first_name": first_name or "",
                "last_name": last_name or "",
                "email": email or "",
                "dob": dob or None,
                "phone_number": phone_number or "",
                "role": role,
            }
            users.append(user)
            self._write(self.users_path, users)
        return _public_user(user)

    def _mutate_user(self, match, change):
        with _lock:
            users = self._read(self.users_path)
            for user in users:
                if match(user):
                    change(user)
                    self._write(self.users_path, users)
                    return _public_user(user)
        return None

    def link_google_account(self, user_id, google_id):
        def change(user):
            user["google_id"] = google_id
        return self._mutate_user(lambda u: int(u["user_id"]) == int(user_id), change)

    def update_profile(self, user_id, first_name, last_name, email, phone_number):
        with _lock:
            if email:
                owner = self.get_user_by_email(email)
                if owner and owner["user_id"] != int(user_id):
                    raise DuplicateUserError(email)

            def change(user):
                user["first_name"] = first_name or ""
                user["last_name"] = last_name or ""
                user["email"] = email or ""
                user["phone_number"] = phone_number or ""
            return self._mutate_user(lambda u: int(u["user_id"]) == int(user_id), change)

    def list_users_by_role(self, role):
        with _lock:
            users = self._read(self.users_path)
        return [_public_user(u) for u in users if u.get("role") == role]

    def update_role(self, username, role):
        def change(user):
            user["role"] = role
        return self._mutate_user(lambda u: u["username"] == username, change)

    def delete_user(self, username):
        with _lock:
            users = self._read(self.users_path)
            remaining = [u for u in users if u["username"] != username]
            if len(remaining) == len(users):
                return False
            self._write(self.users_path, remaining)
        return True

    # rooms

    def list_rooms(self, search=""):
        with _lock:
            rows = self._read(self.kamar_path)
        if search:
            q = search.lower()
            rows = [
                r for r in rows
                if q in (r.get("tipe_kamar") or "").lower() or q in (r.get("deskripsi") or "").lower()
            ]
            rows.sort(key=lambda r: (0 if q in (r.get("tipe_kamar") or "").lower() else 1,
                                     str(r.get("tipe_kamar"))))
        else:
            rows.sort(key=lambda r: str(r.get("tipe_kamar")))
        return [with_status(r) for r in rows]

    def get_room_by_type(self, tipe_kamar):
        with _lock:
            for room in self._read(self.kamar_path):
                if room.get("tipe_kamar") == tipe_kamar:
                    return with_status(room)
        return None

    def add_room(self, tipe_kamar, harga, deskripsi, jumlah_tersedia):
        with _lock:
            rooms = self._read(self.kamar_path)
            if any(r.get("tipe_kamar") == tipe_kamar for r in rooms):
                raise DuplicateRoomError(tipe_kamar)
            room = {
                "id": _next_id(rooms, "id"),
                "tipe_kamar": tipe_kamar,
                "harga": harga,
                "deskripsi": deskripsi or "",
                "jumlah_tersedia": jumlah_tersedia,
            }
            rooms.append(room)
            self._write(self.kamar_path, rooms)
        return with_status(room)

    def update_room_availability(self, room_id, jumlah_tersedia):
        with _lock:
            rooms = self._read(self.kamar_path)
            for room in rooms:
                if int(room["id"]) == int(room_id):
                    room["jumlah_tersedia"] = jumlah_tersedia
                    self._write(self.kamar_path, rooms)
                    return with_status(room)
        return None

    def delete_room(self, room_id):
        with _lock:
            rooms = self._read(self.kamar_path)
            remaining = [r for r in rooms if int(r["id"]) != int(room_id)]
            if len(remaining) == len(rooms):
                return False
            self._write(self.kamar_path, remaining)
        return True

    # bookings and reports

    def book_room(self, tipe_kamar, user_id):
        with _lock:
            rooms = self._read(self.kamar_path)
            previous_rooms = copy.deepcopy(rooms)
            room = next((r for r in rooms if r.get("tipe_kamar") == tipe_kamar), None)
            if room is None or (room.get("jumlah_tersedia") or 0) <= 0:
                raise RoomUnavailableError(tipe_kamar)

            laporan = self._read(self.laporan_path)
            record = {
                "id": _next_id(laporan, "id"),
                "user_id": int(user_id),
                "tipe_kamar": tipe_kamar,
                "tanggal_pembayaran": datetime.now(timezone.utc).isoformat(),
            }
            room["jumlah_tersedia"] = room["jumlah_tersedia"] - 1
            laporan.append(record)
            self._write(self.kamar_path, rooms)
            try:
                self._write(self.laporan_path, laporan)
            except StoreError:
                # no payment record, so the decrement must not stay either
                logger.error(f"Restoring {self.kamar_path} after failed booking of '{tipe_kamar}'")
                self._write(self.kamar_path, previous_rooms)
                raise

        return dict(record, tanggal_pembayaran=_parse_timestamp(record["tanggal_pembayaran"]))

    def list_reports(self, user_id=None, username_search=""):
        with _lock:
            laporan = self._read(self.laporan_path)
            users = self._read(self.users_path)
        usernames = {int(u["user_id"]): u["username"] for u in users}

        rows = []
        for row in laporan:
            owner_id = int(row["user_id"])
            if user_id is not None and owner_id != int(user_id):
                continue
            username = usernames.get(owner_id)
            if username_search and (username is None or username_search.lower() not in username.lower()):
                continue
            rows.append({
                "id": row["id"],
                "user_id": owner_id,
                "username": username or "Unknown",
                "tipe_kamar": row["tipe_kamar"],
                "tanggal_pembayaran": _parse_timestamp(row["tanggal_pembayaran"]),
            })
        return rows
