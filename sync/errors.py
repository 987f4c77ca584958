# sync/errors.py

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError


# Anything the Sheets client can raise while talking to the remote store.
# Socket timeouts surface as OSError / TimeoutError.
TRANSPORT_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)


class SinkError(Exception):
    """Remote tabular store could not take the record."""


class SchemaError(SinkError):
    """Tab or header row could not be verified / created."""


class WriteError(SinkError):
    """Row append failed."""
