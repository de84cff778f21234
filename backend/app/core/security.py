r"""backend\app\core\security.py

Bearer-token identity provider.

Tokens are issued out of band and listed in a YAML identities file::

    users:
      - uid: u-admin
        token: change-me
        name: Store Admin
        email: admin@example.com
        role: admin

Verifying a token yields the user's uid; the role used for authorization is
read from the user's profile in the document store, so an administrator can
change roles or deactivate users without touching this file.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from ..models.schemas import UserProfile
from .config import load_yaml
from .errors import AuthenticationError, InvalidInputError

LOGGER = logging.getLogger(__name__)

WRITE_ROLES = ("admin", "inventory-manager")
ADMIN_ROLES = ("admin",)


class IdentityProvider:
    """Map opaque bearer tokens to user ids."""

    def __init__(self, tokens: Mapping[str, str], profiles: Iterable[UserProfile] = ()) -> None:
        self._tokens = dict(tokens)
        self.seed_profiles: List[UserProfile] = list(profiles)

    @classmethod
    def from_yaml(cls, path: str) -> "IdentityProvider":
        """Build a provider from an identities file; a missing file yields no identities."""

        data = load_yaml(path)
        tokens: Dict[str, str] = {}
        profiles: List[UserProfile] = []
        for index, entry in enumerate(data.get("users") or []):
            if not isinstance(entry, dict) or not entry.get("uid") or not entry.get("token"):
                raise InvalidInputError(f"Identity entry {index} in {path} needs a uid and a token.")
            tokens[str(entry["token"])] = str(entry["uid"])
            profile = _seed_profile(entry)
            if profile is not None:
                profiles.append(profile)
        if not tokens:
            LOGGER.warning("No identities configured at %s; every protected route will return 401.", path)
        return cls(tokens, profiles)

    def verify(self, token: Optional[str]) -> str:
        """Return the uid for ``token`` or raise ``AuthenticationError``."""

        if not token:
            raise AuthenticationError("You must be logged in to perform this action.")
        for known, uid in self._tokens.items():
            if hmac.compare_digest(known, token):
                return uid
        raise AuthenticationError("The session token is invalid or has expired.")


def _seed_profile(entry: Dict[str, Any]) -> Optional[UserProfile]:
    if not entry.get("email") or not entry.get("name"):
        return None
    fields = {key: value for key, value in entry.items() if key != "token"}
    try:
        return UserProfile.model_validate(fields)
    except ValidationError as exc:
        raise InvalidInputError(f"Identity profile for {entry['uid']} is invalid: {exc}") from exc


def parse_bearer(header: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""

    if not header:
        return None
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()
