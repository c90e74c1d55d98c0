"""
Tests for the Firebase account client.
"""

import json

import httpx
import pytest

from echomind.auth import FirebaseAuth
from echomind.errors import AuthError

COMMIT_TIME = "2024-05-01T12:00:00.123456Z"


class FakeFirebase:
    """Routes Identity Toolkit and Firestore calls to scripted answers."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.errors: dict[str, str] = {}
        self.is_new_user = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content)
        self.calls.append((method, body))

        if method in self.errors:
            return httpx.Response(
                400, json={"error": {"code": 400, "message": self.errors[method]}}
            )
        if method == "documents:commit":
            assert request.headers["authorization"] == "Bearer id-token"
            return httpx.Response(
                200,
                json={
                    "writeResults": [
                        {
                            "updateTime": COMMIT_TIME,
                            "transformResults": [
                                {"timestampValue": COMMIT_TIME},
                                {"timestampValue": COMMIT_TIME},
                            ],
                        }
                    ],
                    "commitTime": COMMIT_TIME,
                },
            )

        assert request.url.params["key"] == "web-key"
        account = {
            "localId": "uid-1",
            "email": "sam@example.com",
            "idToken": "id-token",
            "refreshToken": "refresh-token",
        }
        if method == "accounts:signInWithIdp":
            account["displayName"] = "Sam Google"
            account["isNewUser"] = self.is_new_user
        return httpx.Response(200, json=account)

    def client(self) -> FirebaseAuth:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return FirebaseAuth("web-key", "echomind-test", http_client=http)

    def call(self, method: str) -> dict:
        return next(body for name, body in self.calls if name == method)


class TestFirebaseAuth:
    def setup_method(self):
        self.firebase = FakeFirebase()
        self.auth = self.firebase.client()

    async def test_create_account_writes_fresh_profile(self):
        account = await self.auth.create_account("Sam", "sam@example.com", "secret1")

        assert [name for name, _ in self.firebase.calls] == [
            "accounts:signUp",
            "accounts:update",
            "documents:commit",
        ]
        assert self.firebase.call("accounts:update")["displayName"] == "Sam"

        write = self.firebase.call("documents:commit")["writes"][0]
        assert write["update"]["name"].endswith("/documents/users/uid-1")
        assert write["update"]["fields"]["name"] == {"stringValue": "Sam"}
        assert "updateMask" not in write
        assert {t["fieldPath"] for t in write["updateTransforms"]} == {
            "createdAt",
            "lastLogin",
        }

        assert account.display_name == "Sam"
        assert account.is_new_user
        assert account.profile.created_at is not None
        assert self.auth.is_signed_in("uid-1")

    async def test_sign_in_does_not_touch_profile(self):
        account = await self.auth.sign_in("sam@example.com", "secret1")

        assert account.uid == "uid-1"
        assert account.profile is None
        assert [name for name, _ in self.firebase.calls] == [
            "accounts:signInWithPassword"
        ]

    async def test_google_sign_in_merges_profile(self):
        self.firebase.is_new_user = True

        account = await self.auth.google_sign_in("google-token")

        idp = self.firebase.call("accounts:signInWithIdp")
        assert "id_token=google-token" in idp["postBody"]
        assert "providerId=google.com" in idp["postBody"]

        write = self.firebase.call("documents:commit")["writes"][0]
        assert write["updateMask"] == {"fieldPaths": ["name", "email"]}
        assert write["update"]["fields"]["name"] == {"stringValue": "Sam Google"}
        assert account.is_new_user
        assert account.profile.name == "Sam Google"

    async def test_provider_error_carries_code(self):
        self.firebase.errors["accounts:signUp"] = "EMAIL_EXISTS"

        with pytest.raises(AuthError) as excinfo:
            await self.auth.create_account("Sam", "sam@example.com", "secret1")

        assert excinfo.value.code == "EMAIL_EXISTS"
        assert len(self.firebase.calls) == 1

    async def test_error_code_is_split_from_description(self):
        self.firebase.errors["accounts:signUp"] = (
            "WEAK_PASSWORD : Password should be at least 6 characters"
        )

        with pytest.raises(AuthError) as excinfo:
            await self.auth.create_account("Sam", "sam@example.com", "123")

        assert excinfo.value.code == "WEAK_PASSWORD"
        assert "at least 6 characters" in excinfo.value.message

    async def test_sign_out(self):
        await self.auth.sign_in("sam@example.com", "secret1")

        assert self.auth.sign_out("uid-1")
        assert not self.auth.is_signed_in("uid-1")
        assert not self.auth.sign_out("uid-1")
