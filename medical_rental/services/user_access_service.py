from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import secrets
import threading
import time
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.rental_models import Account


SESSION_TTL_SECONDS = 60 * 60 * 12
MIN_PASSWORD_LENGTH = 8

_LOCK = threading.Lock()
_REVOKED_TOKENS: dict[str, float] = {}


class AccountExistsError(ValueError):
    pass


def _require_session_secret() -> bytes:
    raw = (os.environ.get("SESSION_SIGNING_SECRET") or "").strip()
    if len(raw) < 32:
        raise RuntimeError("SESSION_SIGNING_SECRET must be set and at least 32 characters long.")
    return raw.encode("utf-8")


_SESSION_SECRET = _require_session_secret()


def normalize_email(raw: str | None) -> str:
    return (raw or "").strip().lower()


def _password_hash(password: str, salt: str) -> str:
    raw = hashlib.pbkdf2_hmac(
        "sha256",
        (password or "").encode("utf-8"),
        salt.encode("utf-8"),
        120000,
    )
    return raw.hex()


def find_account(db: Session, email: str) -> Account | None:
    return db.execute(
        select(Account).where(Account.Email == normalize_email(email))
    ).scalars().first()


def create_account(db: Session, email: str, password: str, full_name: str | None = None) -> Account:
    normalized = normalize_email(email)
    if "@" not in normalized:
        raise ValueError("A valid email address is required.")
    if len((password or "").strip()) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if find_account(db, normalized):
        raise AccountExistsError("An account with this email already exists.")

    salt = secrets.token_hex(16)
    account = Account(
        AccountID=str(uuid.uuid4()),
        Email=normalized,
        FullName=(full_name or "").strip() or None,
        PasswordSalt=salt,
        PasswordHash=_password_hash(password.strip(), salt),
    )
    db.add(account)
    return account


def verify_password(db: Session, email: str, password: str) -> Account | None:
    account = find_account(db, email)
    if not account:
        return None
    expected = _password_hash((password or "").strip(), account.PasswordSalt)
    if not hmac.compare_digest(expected, account.PasswordHash):
        return None
    return account


def session_identity(account: Account) -> dict[str, Any]:
    return {
        "accountID": account.AccountID,
        "email": account.Email,
        "fullName": account.FullName,
    }


def create_session(payload: dict[str, Any]) -> str:
    session_payload = dict(payload)
    session_payload["expiresAt"] = time.time() + SESSION_TTL_SECONDS
    session_payload["nonce"] = secrets.token_hex(8)
    body = json.dumps(session_payload, ensure_ascii=True, separators=(",", ":")).encode("utf-8")
    encoded = base64.urlsafe_b64encode(body).decode("ascii").rstrip("=")
    signature = hmac.new(_SESSION_SECRET, encoded.encode("ascii"), hashlib.sha256).digest()
    encoded_sig = base64.urlsafe_b64encode(signature).decode("ascii").rstrip("=")
    return f"{encoded}.{encoded_sig}"


def _decode_token(token: str) -> dict[str, Any] | None:
    try:
        encoded, encoded_sig = token.split(".", 1)
        expected_sig = hmac.new(_SESSION_SECRET, encoded.encode("ascii"), hashlib.sha256).digest()
        supplied_sig = base64.urlsafe_b64decode(encoded_sig + "=" * (-len(encoded_sig) % 4))
        if not hmac.compare_digest(expected_sig, supplied_sig):
            return None
        payload_raw = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
        decoded = json.loads(payload_raw.decode("utf-8"))
    except (ValueError, UnicodeError):
        return None
    return decoded if isinstance(decoded, dict) else None


def get_session(token: str | None) -> dict[str, Any] | None:
    if not token:
        return None
    decoded = _decode_token(token)
    if decoded is None:
        return None

    now = time.time()
    if now >= float(decoded.get("expiresAt") or 0.0):
        return None

    with _LOCK:
        for revoked_token, revoked_exp in list(_REVOKED_TOKENS.items()):
            if now >= revoked_exp:
                _REVOKED_TOKENS.pop(revoked_token, None)
        if token in _REVOKED_TOKENS:
            return None
    return decoded


def remove_session(token: str | None) -> None:
    if not token:
        return
    decoded = _decode_token(token)
    if decoded is None:
        return
    expires_at = float(decoded.get("expiresAt") or 0.0)
    if expires_at <= time.time():
        return
    with _LOCK:
        _REVOKED_TOKENS[token] = expires_at
