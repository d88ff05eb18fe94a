from __future__ import annotations

import hashlib
import hmac
import json
import os
import re
import secrets
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger as log

from quantai.core.errors import AuthError

_MOBILE_RE = re.compile(r"^\d{10,15}$")
_PBKDF2_ROUNDS = 120_000


@dataclass
class UserProfile:
    email: str
    pin: str
    mobile: Optional[str] = None
    is_admin: bool = True


def _hash_password(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), _PBKDF2_ROUNDS)
    return digest.hex()


def normalize_mobile(mobile: str) -> str:
    return re.sub(r"[\s-]", "", mobile or "")


class ProfileStore:
    """Single-profile credential store in a JSON file, looked up by email or mobile.

    Passwords are kept as salted PBKDF2 hashes. The 4-digit PIN re-locks the
    session and is compared in constant time.
    """

    def __init__(self, path: str = "~/.quantai/profile.json") -> None:
        self.path = Path(os.path.expandvars(os.path.expanduser(path)))
        self._lock = threading.Lock()

    def _read(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.warning(f"Failed to parse profile store {self.path}: {e}")
            return None
        if not isinstance(data, dict) or not data.get("email") or not data.get("pin"):
            return None
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    @staticmethod
    def _profile(data: Dict[str, Any]) -> UserProfile:
        return UserProfile(email=data["email"], pin=data["pin"], mobile=data.get("mobile"), is_admin=True)

    def load(self) -> Optional[UserProfile]:
        with self._lock:
            data = self._read()
        return self._profile(data) if data else None

    def get(self, identifier: str) -> Optional[UserProfile]:
        with self._lock:
            data = self._read()
        if data and identifier in (data.get("email"), data.get("mobile")):
            return self._profile(data)
        return None

    def signup(self, email: str, password: str, pin: str, confirm_pin: str, mobile: str) -> UserProfile:
        if len(pin) != 4 or not pin.isdigit():
            raise AuthError("PIN must be 4 digits")
        if pin != confirm_pin:
            raise AuthError("PINs do not match")
        if not email or not password or not mobile:
            raise AuthError("Please fill in all fields")
        if not _MOBILE_RE.match(normalize_mobile(mobile)):
            raise AuthError("Please enter a valid mobile number")

        salt = secrets.token_hex(16)
        data = {
            "email": email,
            "password_hash": _hash_password(password, salt),
            "salt": salt,
            "pin": pin,
            "mobile": mobile,
        }
        with self._lock:
            self._write(data)
        log.info(f"Profile created for {email}")
        return self._profile(data)

    def login(self, email: str, password: str) -> UserProfile:
        with self._lock:
            data = self._read()
        if data is None:
            raise AuthError("No account found. Please sign up.")
        expected = data.get("password_hash", "")
        actual = _hash_password(password, data.get("salt", ""))
        if data["email"] != email or not hmac.compare_digest(expected, actual):
            raise AuthError("Invalid email or password")
        return self._profile(data)

    def reset_password(self, identifier: str, new_password: str, confirm_password: str) -> None:
        with self._lock:
            data = self._read()
            if data is None:
                raise AuthError("No user database found.")
            if identifier not in (data.get("email"), data.get("mobile")):
                raise AuthError("Email or Mobile number does not match our records.")
            if len(new_password) < 4:
                raise AuthError("Password too short.")
            if new_password != confirm_password:
                raise AuthError("Passwords do not match.")
            salt = secrets.token_hex(16)
            data["salt"] = salt
            data["password_hash"] = _hash_password(new_password, salt)
            self._write(data)
        log.info("Password reset for stored profile")

    def verify_pin(self, pin: str) -> bool:
        profile = self.load()
        if profile is None:
            return False
        return hmac.compare_digest(profile.pin, str(pin))
