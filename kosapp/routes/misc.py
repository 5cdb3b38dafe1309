from flask import Blueprint, jsonify

from kosapp.storage import get_store
from kosapp.utils import logger

misc_bp = Blueprint('misc', __name__)


@misc_bp.route("/health")
def health_check():
    store = get_store()
    try:
        store.list_rooms()
        storage_status = "OK"
    except Exception as e:
        logger.error(f"Health check storage error: {e}")
        storage_status = f"Error: {str(e)}"

    return jsonify({
        "status": "healthy",
        "storage_backend": store.name,
        "storage": storage_status,
    })
