"""
Token authentication with the ``Token`` keyword.

JWT is the primary scheme; this subclass keeps opaque DRF tokens issued at
login usable by clients that cannot refresh JWTs, and gives the settings a
stable import path that does not pull in any view module.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    keyword = 'Token'
