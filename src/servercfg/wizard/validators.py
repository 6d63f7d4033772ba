"""Pure field validators used by wizard steps."""

from __future__ import annotations

import re
from typing import Callable, Dict

from servercfg.wizard.types import ValidationOutcome


_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_SHELL_META_RE = re.compile(r"[;|&$`(){}\[\]<>'\"\\]")
_DOMAIN_LABEL_RE = re.compile(r"[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?")
_TLD_RE = re.compile(r"[A-Za-z]{2,}")
_USERNAME_RE = re.compile(r"[a-z_][a-z0-9_-]*")
_PATH_RE = re.compile(r"/[A-Za-z0-9/_.-]*")
_DIGITS_RE = re.compile(r"[0-9]+")

BOOLEAN_TRUE = ("y", "yes", "true")
BOOLEAN_FALSE = ("n", "no", "false")

MAX_EMAIL_LENGTH = 254
MAX_DOMAIN_LENGTH = 253
MAX_USERNAME_LENGTH = 32
MIN_PASSWORD_LENGTH = 8


def _ok() -> ValidationOutcome:
    return ValidationOutcome(ok=True)


def _fail(reason: str) -> ValidationOutcome:
    return ValidationOutcome(ok=False, reason=reason)


def is_ascii_digits(value: str) -> bool:
    return _DIGITS_RE.fullmatch(value) is not None


def validate_email(value: str) -> ValidationOutcome:
    if not value:
        return _fail("email is empty")
    if len(value) > MAX_EMAIL_LENGTH:
        return _fail("email longer than {0} characters".format(MAX_EMAIL_LENGTH))
    if _SHELL_META_RE.search(value):
        return _fail("email contains forbidden characters")
    if not _EMAIL_RE.fullmatch(value):
        return _fail("expected local@domain.tld")
    return _ok()


def validate_ipv4(value: str) -> ValidationOutcome:
    parts = value.split(".")
    if len(parts) != 4:
        return _fail("expected four dot-separated octets")
    for part in parts:
        if not is_ascii_digits(part):
            return _fail("octet {0!r} is not a decimal number".format(part))
        if int(part) > 255:
            return _fail("octet {0} is out of range 0-255".format(part))
    return _ok()


def validate_port(value: str) -> ValidationOutcome:
    if not is_ascii_digits(value):
        return _fail("port must be a number")
    port = int(value)
    if port < 1 or port > 65535:
        return _fail("port must be between 1 and 65535")
    return _ok()


def validate_domain(value: str) -> ValidationOutcome:
    if not value:
        return _fail("domain is empty")
    if len(value) > MAX_DOMAIN_LENGTH:
        return _fail("domain longer than {0} characters".format(MAX_DOMAIN_LENGTH))
    labels = value.split(".")
    if len(labels) < 2:
        return _fail("expected name.tld")
    for label in labels:
        if not _DOMAIN_LABEL_RE.fullmatch(label):
            return _fail("invalid label {0!r}".format(label))
    if not _TLD_RE.fullmatch(labels[-1]):
        return _fail("top-level domain must be at least two letters")
    return _ok()


def validate_username(value: str) -> ValidationOutcome:
    if len(value) > MAX_USERNAME_LENGTH:
        return _fail("username longer than {0} characters".format(MAX_USERNAME_LENGTH))
    if not _USERNAME_RE.fullmatch(value):
        return _fail("username must start with a lowercase letter or underscore")
    return _ok()


def validate_password(value: str) -> ValidationOutcome:
    if len(value) < MIN_PASSWORD_LENGTH:
        return _fail("password must be at least {0} characters".format(MIN_PASSWORD_LENGTH))
    return _ok()


def validate_path(value: str) -> ValidationOutcome:
    if not _PATH_RE.fullmatch(value):
        return _fail("expected an absolute path of [A-Za-z0-9/_.-]")
    if ".." in value.split("/"):
        return _fail("path must not contain '..'")
    return _ok()


def validate_boolean(value: str) -> ValidationOutcome:
    if value.strip().lower() in BOOLEAN_TRUE + BOOLEAN_FALSE:
        return _ok()
    return _fail("expected yes or no")


def validate_integer(value: str) -> ValidationOutcome:
    if not is_ascii_digits(value):
        return _fail("expected digits only")
    return _ok()


def validate_freeform(value: str) -> ValidationOutcome:
    if not value.strip():
        return _fail("value is empty")
    return _ok()


VALIDATORS: Dict[str, Callable[[str], ValidationOutcome]] = {
    "email": validate_email,
    "ipv4": validate_ipv4,
    "port": validate_port,
    "domain": validate_domain,
    "username": validate_username,
    "password": validate_password,
    "path": validate_path,
    "boolean": validate_boolean,
    "integer": validate_integer,
    "freeform": validate_freeform,
}


def validate(kind: str, value: str) -> ValidationOutcome:
    validator = VALIDATORS.get(kind)
    if validator is None:
        raise ValueError("unknown validator kind: {0}".format(kind))
    return validator(value)


def parse_boolean(value: str) -> bool:
    return str(value or "").strip().lower() in BOOLEAN_TRUE
