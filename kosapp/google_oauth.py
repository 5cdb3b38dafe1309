import logging
from urllib.parse import urlencode

import requests
from requests.exceptions import RequestException

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = "openid email profile"
TIMEOUT = 10


class GoogleOAuthError(Exception):
    pass


def is_configured(config):
    configured = bool(config.get("GOOGLE_CLIENT_ID") and config.get("GOOGLE_CLIENT_SECRET"))
    if not configured:
        logger.error("Google OAuth credentials not found in configuration")
    return configured


def _http_session():
    # Create a requests session with retry logic
    http = requests.Session()
    for adapter in http.adapters.values():
        adapter.max_retries = 3
    return http


def build_authorize_url(client_id, redirect_uri, state):
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": SCOPES,
        "state": state,
        "prompt": "select_account",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def fetch_profile(code, client_id, client_secret, redirect_uri):
    """Exchange an authorization code and return Google's userinfo claims."""
    http = _http_session()
    try:
        token_response = http.post(TOKEN_URL, data={
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        }, timeout=TIMEOUT)
        token_response.raise_for_status()
        access_token = token_response.json().get("access_token")
        if not access_token:
            raise GoogleOAuthError("Token response carried no access_token")

        userinfo_response = http.get(
            USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=TIMEOUT,
        )
        userinfo_response.raise_for_status()
        profile = userinfo_response.json()
    except (RequestException, ValueError) as e:
        logger.warning(f"Google OAuth request failed: {e}")
        raise GoogleOAuthError(str(e)) from e
    finally:
        http.close()

    if not profile.get("sub"):
        raise GoogleOAuthError("Userinfo response carried no subject")
    return profile
