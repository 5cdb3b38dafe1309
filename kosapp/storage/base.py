"""Store interface shared by the JSON and SQL backends.

Every store method returns plain dicts so routes and templates never care
which backend is active.
"""
import abc
import logging

from werkzeug.security import generate_password_hash

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLE_GUEST = "guest"

STATUS_TERSEDIA = "Tersedia"
STATUS_SOLD_OUT = "Sold Out"


class StoreError(Exception):
    """Base class for storage level failures."""


class DuplicateUserError(StoreError):
    pass


class DuplicateRoomError(StoreError):
    pass


class RoomUnavailableError(StoreError):
    def __init__(self, tipe_kamar):
        super().__init__(f"Room type {tipe_kamar!r} is not available")
        self.tipe_kamar = tipe_kamar


def with_status(kamar):
    row = dict(kamar)
    row["status"] = STATUS_TERSEDIA if (row.get("jumlah_tersedia") or 0) > 0 else STATUS_SOLD_OUT
    return row


class Store(abc.ABC):
    name = None

    @abc.abstractmethod
    def init_storage(self):
        """Create files or tables if they are missing."""

    def seed_admin(self, username, password):
        """Create the initial admin account when no admin exists yet."""
        if self.list_users_by_role(ROLE_ADMIN):
            return None
        if self.get_user_by_username(username):
            return None
        logger.info(f"Seeding initial admin account '{username}'")
        return self.create_user(
            username=username,
            password=generate_password_hash(password),
            first_name="Admin",
            role=ROLE_ADMIN,
        )

    # users

    @abc.abstractmethod
    def get_user_by_id(self, user_id):
        pass

    @abc.abstractmethod
    def get_user_by_username(self, username):
        pass

    @abc.abstractmethod
    def get_user_by_email(self, email):
        pass

    @abc.abstractmethod
    def get_user_by_google_id(self, google_id):
        pass

    @abc.abstractmethod
    def create_user(self, username, password=None, first_name="", last_name="",
                    email="", dob=None, phone_number="", role=ROLE_USER, google_id=None):
        """Insert a user, raising DuplicateUserError when the username or a
        non-empty email is already registered."""

    @abc.abstractmethod
    def link_google_account(self, user_id, google_id):
        pass

    @abc.abstractmethod
    def update_profile(self, user_id, first_name, last_name, email, phone_number):
        pass

    @abc.abstractmethod
    def list_users_by_role(self, role):
        pass

    @abc.abstractmethod
    def update_role(self, username, role):
        pass

    @abc.abstractmethod
    def delete_user(self, username):
        pass

    # rooms

    @abc.abstractmethod
    def list_rooms(self, search=""):
        """Room types with a derived ``status``.

        Without ``search`` the rows are ordered by type name. With it, only
        rows whose type name or description contains the term (ignoring case)
        are kept, type-name matches first.
        """

    @abc.abstractmethod
    def get_room_by_type(self, tipe_kamar):
        pass

    @abc.abstractmethod
    def add_room(self, tipe_kamar, harga, deskripsi, jumlah_tersedia):
        pass

    @abc.abstractmethod
    def update_room_availability(self, room_id, jumlah_tersedia):
        pass

    @abc.abstractmethod
    def delete_room(self, room_id):
        pass

    # bookings and reports

    @abc.abstractmethod
    def book_room(self, tipe_kamar, user_id):
        """Take one unit of ``tipe_kamar`` and record the payment.

        The availability check, the decrement and the payment record happen
        as one unit. Raises RoomUnavailableError when the type is unknown or
        sold out; nothing is written in that case.
        """

    @abc.abstractmethod
    def list_reports(self, user_id=None, username_search=""):
        """Payment records joined with the owner's username ("Unknown" once
        the account is gone), oldest first."""
