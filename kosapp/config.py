import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY") or "fallback_secret"

    # "sql" for the relational tables, "json" for the file-backed store
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "sql").lower()
    DATA_DIR = os.environ.get("DATA_DIR") or os.path.join(BASE_DIR, "data")

    db_url = os.environ.get("DATABASE_URL") or "sqlite:///" + os.path.join(BASE_DIR, "kos.db")
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)

    SQLALCHEMY_DATABASE_URI = db_url
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    INITIAL_ADMIN_USERNAME = os.environ.get("INITIAL_ADMIN_USERNAME") or "admin"
    INITIAL_ADMIN_PASSWORD = os.environ.get("INITIAL_ADMIN_PASSWORD") or "12345"

    GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID")
    GOOGLE_CLIENT_SECRET = os.environ.get("GOOGLE_CLIENT_SECRET")
    GOOGLE_CALLBACK_URL = os.environ.get("GOOGLE_CALLBACK_URL")

    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.environ.get("FLASK_ENV") == "production"

    PORT = int(os.environ.get("PORT", 3000))
