import time
from unittest.mock import MagicMock

import jwt
import pytest
import requests
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from autora.core import auth
from autora.core.auth import AuthProviderError, ClerkClient, check_user
from autora.models.enums import UserRole
from autora.models.user_model import User
from autora.schemas.user_schema import ProviderProfile

from conftest import make_user

ADMIN_ENDPOINTS = [
    ("get", "/api/v1/admin/cars/"),
    ("post", "/api/v1/admin/cars/"),
    ("delete", "/api/v1/admin/cars/some-car"),
    ("patch", "/api/v1/admin/cars/some-car"),
    ("post", "/api/v1/admin/cars/process-image"),
    ("get", "/api/v1/admin/test-drives"),
    ("patch", "/api/v1/admin/test-drives/some-booking"),
    ("get", "/api/v1/admin/dashboard"),
    ("put", "/api/v1/settings/working-hours"),
    ("get", "/api/v1/settings/users"),
    ("patch", "/api/v1/settings/users/some-user/role"),
]


@pytest.mark.parametrize("method,path", ADMIN_ENDPOINTS)
def test_admin_endpoints_reject_anonymous(client, method, path):
    response = client.request(method, path)
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Unauthorized"}


@pytest.mark.parametrize("method,path", ADMIN_ENDPOINTS)
def test_admin_endpoints_reject_unknown_token(client, method, path):
    response = client.request(method, path, headers={"Authorization": "Bearer forged"})
    assert response.status_code == 401


@pytest.mark.parametrize("method,path", ADMIN_ENDPOINTS)
def test_admin_endpoints_reject_non_admin(client, user_headers, method, path):
    response = client.request(method, path, headers=user_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Unauthorized access"


def test_admin_check(client, admin_headers, user_headers):
    response = client.get("/api/v1/admin/check", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["data"] == {"authorized": False, "reason": "not-admin"}

    data = client.get("/api/v1/admin/check", headers=admin_headers).json()["data"]
    assert data["authorized"] is True
    assert data["user"]["role"] == "ADMIN"

    assert client.get("/api/v1/admin/check").status_code == 401


def test_first_visit_creates_local_user(client, db, auth_client):
    auth_client.register("new-token", ProviderProfile(
        provider_user_id="clerk_new", email="new@example.com",
        first_name="Nia", last_name="New", image_url="https://img/nia.png",
    ))

    response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer new-token"})

    assert response.status_code == 200
    body = response.json()["data"]
    assert body["email"] == "new@example.com"
    assert body["name"] == "Nia New"
    assert body["role"] == "USER"
    assert db.query(User).filter(User.clerk_user_id == "clerk_new").count() == 1


def test_check_user_returns_existing(db):
    user = User(clerk_user_id="clerk_1", email="one@example.com", name="One")
    db.add(user)
    db.commit()

    found = check_user(db, ProviderProfile(provider_user_id="clerk_1", email="other@example.com"))
    assert found.id == user.id
    assert found.email == "one@example.com"


def test_check_user_relinks_by_email(db):
    user = User(clerk_user_id="clerk_old", email="same@example.com", name="Old Name")
    db.add(user)
    db.commit()

    relinked = check_user(db, ProviderProfile(
        provider_user_id="clerk_new", email="same@example.com",
        first_name="New", last_name="Name", image_url="https://img/new.png",
    ))

    assert relinked.id == user.id
    assert relinked.clerk_user_id == "clerk_new"
    assert relinked.name == "New Name"
    assert relinked.image_url == "https://img/new.png"
    assert db.query(User).count() == 1


def test_check_user_without_email(db):
    assert check_user(db, ProviderProfile(provider_user_id="clerk_x")) is None
    assert db.query(User).count() == 0


def test_new_users_are_not_admins(db):
    user = check_user(db, ProviderProfile(provider_user_id="clerk_y", email="y@example.com"))
    assert user.role == UserRole.USER


def _response(status, payload):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.json.return_value = payload
    return response


SIGNING_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
FOREIGN_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _jwks(*keys):
    entries = []
    for kid, private_key in keys:
        jwk = RSAAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
        jwk.update({"kid": kid, "use": "sig", "alg": "RS256"})
        entries.append(jwk)
    return {"keys": entries}


def _session_token(private_key=SIGNING_KEY, kid="ins_1", **claims):
    now = int(time.time())
    payload = {
        "sub": "user_a",
        "sid": "sess_1",
        "azp": "http://localhost:3000",
        "iat": now,
        "nbf": now,
        "exp": now + 60,
    }
    payload.update(claims)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})


@pytest.fixture
def jwks_get(monkeypatch):
    get = MagicMock(return_value=_response(200, _jwks(("ins_1", SIGNING_KEY))))
    monkeypatch.setattr(auth.requests, "get", get)
    return get


def test_clerk_verifies_session_jwt(jwks_get):
    client = ClerkClient("https://api.clerk.test/v1/", "sk_test")

    assert client.verify_session(_session_token()) == "user_a"

    assert jwks_get.call_args.args[0] == "https://api.clerk.test/v1/jwks"
    assert jwks_get.call_args.kwargs["headers"]["Authorization"] == "Bearer sk_test"


def test_clerk_caches_signing_keys(jwks_get):
    client = ClerkClient("https://api.clerk.test/v1", "sk")
    client.verify_session(_session_token())
    client.verify_session(_session_token(sub="user_b"))
    assert jwks_get.call_count == 1


@pytest.mark.parametrize("token", [
    "not-a-jwt",
    _session_token(exp=int(time.time()) - 120),
    _session_token(private_key=FOREIGN_KEY),
    _session_token(sub=None),
])
def test_clerk_rejects_invalid_tokens(jwks_get, token):
    assert ClerkClient("https://api.clerk.test/v1", "sk").verify_session(token) is None


def test_clerk_unknown_key_refetches_at_most_once(jwks_get):
    client = ClerkClient("https://api.clerk.test/v1", "sk")
    token = _session_token(kid="ins_2")

    assert client.verify_session(token) is None
    assert client.verify_session(token) is None
    assert jwks_get.call_count == 1


def test_clerk_picks_up_rotated_keys(jwks_get):
    client = ClerkClient("https://api.clerk.test/v1", "sk")
    client.verify_session(_session_token())

    rotated = FOREIGN_KEY
    jwks_get.return_value = _response(200, _jwks(("ins_1", SIGNING_KEY), ("ins_2", rotated)))
    client._keys_loaded_at -= auth.KEY_REFRESH_INTERVAL + 1

    assert client.verify_session(_session_token(private_key=rotated, kid="ins_2")) == "user_a"
    assert jwks_get.call_count == 2


def test_clerk_checks_authorized_party(jwks_get):
    client = ClerkClient("https://api.clerk.test/v1", "sk", authorized_parties=["https://autora.example"])
    assert client.verify_session(_session_token()) is None
    assert client.verify_session(_session_token(azp="https://autora.example")) == "user_a"


def test_clerk_signing_keys_outage(monkeypatch):
    monkeypatch.setattr(auth.requests, "get", MagicMock(side_effect=requests.ConnectionError("down")))
    with pytest.raises(AuthProviderError):
        ClerkClient("https://api.clerk.test/v1", "sk").verify_session(_session_token())


def test_clerk_requires_secret_key():
    with pytest.raises(AuthProviderError):
        ClerkClient("https://api.clerk.test/v1", None).verify_session("tok")


def test_clerk_get_user_uses_primary_email(monkeypatch):
    response = _response(200, {
        "id": "user_a",
        "first_name": "Asha",
        "last_name": "K",
        "image_url": "https://img/asha.png",
        "primary_email_address_id": "idn_2",
        "email_addresses": [
            {"id": "idn_1", "email_address": "old@example.com"},
            {"id": "idn_2", "email_address": "asha@example.com"},
        ],
    })
    monkeypatch.setattr(auth.requests, "get", MagicMock(return_value=response))

    profile = ClerkClient("https://api.clerk.test/v1", "sk").get_user("user_a")
    assert profile.email == "asha@example.com"
    assert profile.full_name == "Asha K"


def test_auth_provider_outage_is_502(client, monkeypatch, auth_client):
    def broken(token):
        raise AuthProviderError("down")

    monkeypatch.setattr(auth_client, "verify_session", broken)
    response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer any"})
    assert response.status_code == 502
    assert response.json()["success"] is False


def test_reserved_domain_emails_are_served(client, db, auth_client, admin_headers):
    make_user(db, auth_client, "dev-token", email="dev@corp.local", name="Dev Box")

    response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer dev-token"})
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "dev@corp.local"

    response = client.get("/api/v1/settings/users", headers=admin_headers)
    assert response.status_code == 200
    assert "dev@corp.local" in {u["email"] for u in response.json()["data"]}

    make_user(db, auth_client, "ops-token", role=UserRole.ADMIN, email="ops@dealer.test")
    response = client.get("/api/v1/admin/check", headers={"Authorization": "Bearer ops-token"})
    assert response.status_code == 200
    assert response.json()["data"]["user"]["email"] == "ops@dealer.test"
