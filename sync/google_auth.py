# sync/google_auth.py

import google_auth_httplib2
import httplib2
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.http import HttpRequest


SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
]

TOKEN_URI = "https://oauth2.googleapis.com/token"


def normalize_private_key(raw_key: str) -> str:
    # Hosting panels often store the PEM with literal "\n"
    return (raw_key or "").replace("\\n", "\n")


def get_credentials(client_email: str, private_key: str):
    info = {
        "type": "service_account",
        "client_email": client_email,
        "private_key": normalize_private_key(private_key),
        "token_uri": TOKEN_URI,
    }
    return service_account.Credentials.from_service_account_info(
        info, scopes=SCOPES
    )


def build_sheets_service(client_email: str, private_key: str, timeout: float):
    """
    Sheets v4 client whose requests each get their own httplib2 transport.

    - httplib2.Http is not thread-safe and the webhook serves on threads,
      so every request is built on a fresh AuthorizedHttp
    - every transport has a hard socket timeout, so a stalled call fails
      instead of hanging the handler
    """
    credentials = get_credentials(client_email, private_key)

    def new_http():
        return google_auth_httplib2.AuthorizedHttp(
            credentials, http=httplib2.Http(timeout=timeout)
        )

    def build_request(_shared_http, *args, **kwargs):
        return HttpRequest(new_http(), *args, **kwargs)

    return build(
        "sheets",
        "v4",
        http=new_http(),
        requestBuilder=build_request,
        cache_discovery=False,
    )
