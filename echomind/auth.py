"""
Account management backed by Firebase.

Sign-up and sign-in go through the Firebase Identity Toolkit REST API; user
profiles are written to Firestore through its REST `commit` endpoint so that
`createdAt` and `lastLogin` carry server timestamps. Provider failures are
raised as AuthError with the provider's message, ready to show next to the
sign-in form.
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field

from .config import Settings
from .errors import AuthError
from .models import UserProfile

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
FIRESTORE_URL = "https://firestore.googleapis.com/v1"
PROFILE_COLLECTION = "users"
GOOGLE_PROVIDER_ID = "google.com"


class AuthAccount(BaseModel):
    """A signed-in Firebase user."""

    uid: str
    email: str | None = None
    display_name: str | None = None
    id_token: str = Field(..., repr=False)
    refresh_token: str | None = Field(None, repr=False)
    is_new_user: bool = False
    profile: UserProfile | None = None


class FirebaseAuth:
    """
    Thin async client for Firebase Auth and the user profile collection.

    Args:
        api_key: Web API key of the Firebase project
        project_id: Firebase project id, used for Firestore paths
        http_client: Optional injected httpx.AsyncClient
    """

    def __init__(
        self,
        api_key: str,
        project_id: str,
        http_client: httpx.AsyncClient | None = None,
        identity_url: str = IDENTITY_TOOLKIT_URL,
        firestore_url: str = FIRESTORE_URL,
    ) -> None:
        self._api_key = api_key
        self._project_id = project_id
        self._http = http_client or httpx.AsyncClient(timeout=30.0)
        self._identity_url = identity_url.rstrip("/")
        self._firestore_url = firestore_url.rstrip("/")
        self._signed_in: dict[str, AuthAccount] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirebaseAuth | None":
        """Build a client, or return None when Firebase is not configured."""
        if not settings.firebase_api_key or not settings.firebase_project_id:
            return None
        return cls(settings.firebase_api_key, settings.firebase_project_id)

    async def aclose(self) -> None:
        await self._http.aclose()

    def is_signed_in(self, uid: str) -> bool:
        return uid in self._signed_in

    async def create_account(self, name: str, email: str, password: str) -> AuthAccount:
        """Register a user, set their display name and write a fresh profile."""
        data = await self._identity_call(
            "accounts:signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        account = _account_from(data, is_new_user=True)

        await self._identity_call(
            "accounts:update",
            {
                "idToken": account.id_token,
                "displayName": name,
                "returnSecureToken": False,
            },
        )
        account = account.model_copy(update={"display_name": name})

        profile = await self._upsert_profile(account, name=name, merge=False)
        return self._remember(account.model_copy(update={"profile": profile}))

    async def sign_in(self, email: str, password: str) -> AuthAccount:
        data = await self._identity_call(
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._remember(_account_from(data))

    async def google_sign_in(
        self, id_token: str, request_uri: str = "http://localhost"
    ) -> AuthAccount:
        """Federated sign-in with a Google ID token; the profile is merged."""
        data = await self._identity_call(
            "accounts:signInWithIdp",
            {
                "postBody": f"id_token={id_token}&providerId={GOOGLE_PROVIDER_ID}",
                "requestUri": request_uri,
                "returnIdpCredential": True,
                "returnSecureToken": True,
            },
        )
        account = _account_from(data, is_new_user=bool(data.get("isNewUser")))
        profile = await self._upsert_profile(
            account, name=account.display_name, merge=True
        )
        return self._remember(account.model_copy(update={"profile": profile}))

    def sign_out(self, uid: str) -> bool:
        """Forget the account's tokens. Firebase has no server-side sign-out."""
        return self._signed_in.pop(uid, None) is not None

    def profile_path(self, uid: str) -> str:
        return (
            f"projects/{self._project_id}/databases/(default)/documents/"
            f"{PROFILE_COLLECTION}/{uid}"
        )

    # MARK: - Private Helpers

    def _remember(self, account: AuthAccount) -> AuthAccount:
        self._signed_in[account.uid] = account
        return account

    async def _identity_call(self, method: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._identity_url}/{method}"
        try:
            response = await self._http.post(
                url, params={"key": self._api_key}, json=body
            )
        except httpx.HTTPError as e:
            logger.warning("Identity call %s failed: %s", method, e)
            raise AuthError("Could not reach the sign-in service.") from e

        data = _json_or_empty(response)
        if response.is_error:
            message, code = _firebase_error(data, response.status_code)
            logger.info("Identity call %s rejected: %s", method, code)
            raise AuthError(message, code=code)
        return data

    async def _upsert_profile(
        self, account: AuthAccount, *, name: str | None, merge: bool
    ) -> UserProfile:
        fields = {
            "name": _string_or_null(name),
            "email": _string_or_null(account.email),
        }
        write: dict[str, Any] = {
            "update": {"name": self.profile_path(account.uid), "fields": fields},
            "updateTransforms": [
                {"fieldPath": "createdAt", "setToServerValue": "REQUEST_TIME"},
                {"fieldPath": "lastLogin", "setToServerValue": "REQUEST_TIME"},
            ],
        }
        if merge:
            write["updateMask"] = {"fieldPaths": list(fields)}

        url = (
            f"{self._firestore_url}/projects/{self._project_id}"
            "/databases/(default)/documents:commit"
        )
        try:
            response = await self._http.post(
                url,
                json={"writes": [write]},
                headers={"Authorization": f"Bearer {account.id_token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("Profile upsert failed for %s: %s", account.uid, e)
            raise AuthError("Could not save your profile.") from e

        if response.is_error:
            data = _json_or_empty(response)
            message, code = _firebase_error(data, response.status_code)
            logger.warning("Profile upsert rejected for %s: %s", account.uid, code)
            raise AuthError(message, code=code)

        # Both transforms resolve to the server commit time.
        timestamps = _transform_timestamps(_json_or_empty(response))
        return UserProfile(
            uid=account.uid,
            name=name,
            email=account.email,
            created_at=timestamps[0] if timestamps else None,
            last_login=timestamps[1] if len(timestamps) > 1 else None,
        )


def _account_from(data: dict[str, Any], is_new_user: bool = False) -> AuthAccount:
    try:
        return AuthAccount(
            uid=data["localId"],
            email=data.get("email"),
            display_name=data.get("displayName") or None,
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken"),
            is_new_user=is_new_user,
        )
    except KeyError as e:
        raise AuthError("The sign-in service returned an incomplete response.") from e


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _firebase_error(data: dict[str, Any], status_code: int) -> tuple[str, str]:
    error = data.get("error") or {}
    message = error.get("message") or f"HTTP {status_code}"
    # Identity Toolkit messages look like "WEAK_PASSWORD : Password should be..."
    code = message.split(" : ", 1)[0].strip()
    return message, code


def _string_or_null(value: str | None) -> dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    return {"stringValue": value}


def _transform_timestamps(data: dict[str, Any]) -> list[str]:
    results = (data.get("writeResults") or [{}])[0].get("transformResults") or []
    return [r["timestampValue"] for r in results if "timestampValue" in r]
