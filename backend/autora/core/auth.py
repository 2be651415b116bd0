"""
Session / identity adapter.

Resolves the bearer session token sent by the frontend to a Clerk user,
then to the local ``User`` row (created or re-linked on first sight).
"""
import logging
import time
from typing import List, Optional

import jwt
import requests
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from ..models.enums import UserRole
from ..models.user_model import User
from ..schemas.user_schema import ProviderProfile

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

REQUEST_TIMEOUT = 10
CLOCK_SKEW_SECONDS = 5
KEY_REFRESH_INTERVAL = 60


class AuthProviderError(Exception):
    """The auth provider could not be reached or answered with an error."""


class ClerkClient:
    """Minimal Clerk Backend API client: session JWT verification and user lookup."""

    def __init__(self, api_url: str, secret_key: Optional[str], authorized_parties: Optional[List[str]] = None):
        self.api_url = api_url.rstrip("/")
        self.secret_key = secret_key
        self.authorized_parties = authorized_parties or []
        self._keys = {}
        self._keys_loaded_at = None

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    def _fetch_signing_keys(self) -> dict:
        try:
            response = requests.get(
                f"{self.api_url}/jwks",
                headers=self._headers(),
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            jwk_set = jwt.PyJWKSet.from_dict(response.json())
        except requests.RequestException as e:
            raise AuthProviderError(f"Failed to fetch signing keys: {e}") from e
        except jwt.PyJWKSetError as e:
            raise AuthProviderError(f"Invalid signing keys: {e}") from e

        logger.info(f"Loaded {len(jwk_set.keys)} signing key(s) from the auth provider")
        return {key.key_id: key for key in jwk_set.keys}

    def _signing_key(self, key_id: Optional[str]):
        stale = (
            self._keys_loaded_at is None
            or time.monotonic() - self._keys_loaded_at > KEY_REFRESH_INTERVAL
        )
        # Unknown kid: keys may have been rotated, refetch at most once a minute
        if key_id not in self._keys and stale:
            self._keys = self._fetch_signing_keys()
            self._keys_loaded_at = time.monotonic()
        return self._keys.get(key_id)

    def verify_session(self, token: str) -> Optional[str]:
        """
        Verify a session JWT (the frontend's `getToken()` value) against the
        instance's JWKS and return its subject, or None if it is not valid.
        """
        if not self.secret_key:
            raise AuthProviderError("CLERK_SECRET_KEY is not configured")

        try:
            key_id = jwt.get_unverified_header(token).get("kid")
        except jwt.InvalidTokenError:
            return None

        signing_key = self._signing_key(key_id)
        if signing_key is None:
            logger.warning(f"No signing key matches kid {key_id}")
            return None

        try:
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                options={"verify_aud": False, "require": ["exp", "sub"]},
                leeway=CLOCK_SKEW_SECONDS,
            )
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected session token: {e}")
            return None

        if self.authorized_parties and claims.get("azp") not in self.authorized_parties:
            logger.warning(f"Session token issued for unexpected party {claims.get('azp')}")
            return None

        return claims["sub"]

    def get_user(self, provider_user_id: str) -> ProviderProfile:
        try:
            response = requests.get(
                f"{self.api_url}/users/{provider_user_id}",
                headers=self._headers(),
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise AuthProviderError(f"Failed to fetch user {provider_user_id}: {e}") from e

        payload = response.json()
        addresses = payload.get("email_addresses") or []
        primary_id = payload.get("primary_email_address_id")
        email = next(
            (a.get("email_address") for a in addresses if a.get("id") == primary_id),
            addresses[0].get("email_address") if addresses else None,
        )

        return ProviderProfile(
            provider_user_id=payload.get("id", provider_user_id),
            email=email,
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            image_url=payload.get("image_url"),
        )


_clerk_client = None

def get_auth_client() -> ClerkClient:
    global _clerk_client
    if _clerk_client is None:
        _clerk_client = ClerkClient(
            settings.CLERK_API_URL,
            settings.CLERK_SECRET_KEY,
            settings.CLERK_AUTHORIZED_PARTIES,
        )
    return _clerk_client


def check_user(db: Session, profile: ProviderProfile) -> Optional[User]:
    """
    Map a provider identity to a local user.

    Lookup order: provider id, then email (re-linking the provider id and
    refreshing profile fields), otherwise a new USER row is created.
    Returns None when the provider profile carries no email.
    """
    user = db.query(User).filter(User.clerk_user_id == profile.provider_user_id).first()
    if user:
        return user

    if not profile.email:
        logger.error(f"No email found for provider user {profile.provider_user_id}")
        return None

    user = db.query(User).filter(User.email == profile.email).first()
    if user:
        user.clerk_user_id = profile.provider_user_id
        user.name = profile.full_name or user.name
        user.image_url = profile.image_url
    else:
        user = User(
            clerk_user_id=profile.provider_user_id,
            email=profile.email,
            name=profile.full_name or None,
            image_url=profile.image_url,
        )
        db.add(user)

    try:
        db.commit()
        db.refresh(user)
    except Exception as e:
        logger.error(f"Failed to sync user {profile.provider_user_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to sync user")

    logger.info(f"Synced local user {user.id} for provider user {profile.provider_user_id}")
    return user


def _resolve_user(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: Session,
    auth_client: ClerkClient,
) -> Optional[User]:
    if not credentials or not credentials.credentials:
        return None

    try:
        provider_user_id = auth_client.verify_session(credentials.credentials)
        if not provider_user_id:
            return None

        user = db.query(User).filter(User.clerk_user_id == provider_user_id).first()
        if user:
            return user

        profile = auth_client.get_user(provider_user_id)
    except AuthProviderError as e:
        logger.error(f"Session check failed: {e}")
        raise HTTPException(status_code=502, detail="Authentication service unavailable")

    return check_user(db, profile)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    auth_client: ClerkClient = Depends(get_auth_client),
) -> User:
    user = _resolve_user(credentials, db, auth_client)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    auth_client: ClerkClient = Depends(get_auth_client),
) -> Optional[User]:
    return _resolve_user(credentials, db, auth_client)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Unauthorized access")
    return user
