"""Pytest fixtures: test client, in-memory DB, VAPID/client keys, fake push service."""
import base64
import hashlib
import hmac
import io
import os
import threading
from email.message import Message
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.error import HTTPError

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def _raw_public(private_key: ec.EllipticCurvePrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
    )


# Test ortamı: in-memory SQLite ve sabit bir VAPID çifti (app import edilmeden önce set edilmeli)
_VAPID_KEY = ec.generate_private_key(ec.SECP256R1())
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["VAPID_PUBLIC_KEY"] = _b64url(_raw_public(_VAPID_KEY))
os.environ["VAPID_PRIVATE_KEY"] = _b64url(_VAPID_KEY.private_numbers().private_value.to_bytes(32, "big"))
os.environ["VAPID_SUBJECT"] = "mailto:push-tests@ownly.app"
os.environ["INVOKE_TOKEN"] = ""

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, select  # noqa: E402

from ownly_push.core.config import VapidCredentials, settings  # noqa: E402
from ownly_push.core.database import engine, init_db  # noqa: E402
from ownly_push.main import app  # noqa: E402
from ownly_push.models import PushSubscription  # noqa: E402
from ownly_push.webpush import delivery  # noqa: E402


@pytest.fixture(autouse=True)
def _clean_db():
    init_db()
    yield
    with Session(engine) as s:
        for sub in s.exec(select(PushSubscription)).all():
            s.delete(sub)
        s.commit()


@pytest.fixture(scope="function")
def client():
    """TestClient; lifespan ile tablolar ve VAPID anahtarları hazır olur."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture
def vapid() -> VapidCredentials:
    return VapidCredentials.from_settings(settings)


@pytest.fixture
def vapid_public_pem() -> str:
    return _VAPID_KEY.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode()


class ClientKeys:
    """Tarayıcı tarafı: ECDH anahtar çifti + 16 byte auth secret."""

    def __init__(self):
        self.private_key = ec.generate_private_key(ec.SECP256R1())
        self.auth_secret = os.urandom(16)
        self.p256dh = _b64url(_raw_public(self.private_key))
        self.auth = _b64url(self.auth_secret)


@pytest.fixture
def client_keys():
    return ClientKeys


@pytest.fixture
def add_subscription(db):
    def _add(user_id="u1", endpoint="https://push.example.com/send/abc", keys=None, **fields):
        keys = keys or ClientKeys()
        sub = PushSubscription(
            user_id=user_id,
            endpoint=endpoint,
            p256dh=fields.pop("p256dh", keys.p256dh),
            auth=fields.pop("auth", keys.auth),
            **fields,
        )
        db.add(sub)
        db.commit()
        db.refresh(sub)
        return sub, keys

    return _add


def decrypt_push_body(body: bytes, keys: ClientKeys) -> bytes:
    """RFC 8291 receiver side, written against raw HMAC-SHA256 rather than the service's HKDF."""
    salt, rs, idlen = body[:16], int.from_bytes(body[16:20], "big"), body[20]
    server_public = body[21 : 21 + idlen]
    ciphertext = body[21 + idlen :]
    assert len(ciphertext) <= rs
    peer = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), server_public)
    ecdh_secret = keys.private_key.exchange(ec.ECDH(), peer)
    ua_public = _raw_public(keys.private_key)

    def hmac_sha256(key, data):
        return hmac.new(key, data, hashlib.sha256).digest()

    prk_key = hmac_sha256(keys.auth_secret, ecdh_secret)
    ikm = hmac_sha256(prk_key, b"WebPush: info\x00" + ua_public + server_public + b"\x01")
    prk = hmac_sha256(salt, ikm)
    cek = hmac_sha256(prk, b"Content-Encoding: aes128gcm\x00\x01")[:16]
    nonce = hmac_sha256(prk, b"Content-Encoding: nonce\x00\x01")[:12]
    padded = AESGCM(cek).decrypt(nonce, ciphertext, None).rstrip(b"\x00")
    assert padded.endswith(b"\x02"), "missing last-record delimiter"
    return padded[:-1]


@pytest.fixture
def decrypt_body():
    return decrypt_push_body


class _FakeResponse:
    def __init__(self, status: int):
        self.status = status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakePushService:
    """Delivery opener yerine geçer: endpoint -> status (veya fırlatılacak exception)."""

    def __init__(self):
        self.responses: dict = {}
        self.default_status = 201
        self.requests: list[dict] = []

    def open(self, req, timeout=None):
        self.requests.append(
            {
                "url": req.full_url,
                "method": req.get_method(),
                "headers": {k.lower(): v for k, v in req.header_items()},
                "body": req.data,
                "timeout": timeout,
            }
        )
        outcome = self.responses.get(req.full_url, self.default_status)
        if isinstance(outcome, BaseException):
            raise outcome
        if 200 <= outcome < 300:
            return _FakeResponse(outcome)
        raise HTTPError(req.full_url, outcome, "push error", Message(), io.BytesIO(b"push service says no"))

    def request_for(self, url: str) -> dict:
        return next(r for r in self.requests if r["url"] == url)


@pytest.fixture
def push_service(monkeypatch):
    service = FakePushService()
    monkeypatch.setattr(delivery, "_opener", service)
    return service


class _LocalPushHandler(BaseHTTPRequestHandler):
    """Gerçek soket üzerinden push servisi: /garbage bozuk yanıt, /redirect 302, diğerleri 201."""

    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        self.server.seen.append(("POST", self.path))
        if self.path.startswith("/garbage"):
            self.wfile.write(b"GARBAGE\r\n\r\n")
            self.close_connection = True
            return
        if self.path.startswith("/redirect"):
            self._reply(302, Location="/final")
            return
        self._reply(201)

    def do_GET(self):
        self.server.seen.append(("GET", self.path))
        self._reply(200)

    def _reply(self, status, **headers):
        self.send_response(status)
        for name, value in headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, format, *args):
        pass


@pytest.fixture
def local_push_server(monkeypatch):
    monkeypatch.setenv("no_proxy", "127.0.0.1")
    monkeypatch.setenv("NO_PROXY", "127.0.0.1")
    server = ThreadingHTTPServer(("127.0.0.1", 0), _LocalPushHandler)
    server.seen = []
    server.base_url = f"http://127.0.0.1:{server.server_address[1]}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
