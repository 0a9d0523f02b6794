"""Command-line input checks for SEV-SNP attestation validation.

These helpers turn flag values into fields of a :class:`CheckConfig`. They
read trusted keys and parse hashes and integers. They also check that byte
fields have the lengths the attestation report format requires.
"""

from __future__ import annotations

import binascii
import os
import re
from collections.abc import Iterable

from cocos.attestation_config import CheckConfig

SIZE16 = 16
SIZE32 = 32
SIZE48 = 48
SIZE64 = 64

_PREFIX_BASES = (("0x", 16), ("0o", 8), ("0b", 2))
_DIGITS = {
    16: re.compile(r"[0-9a-fA-F]+"),
    10: re.compile(r"[0-9]+"),
    8: re.compile(r"[0-7]+"),
    2: re.compile(r"[01]+"),
}
_UINT8_MAX = 0xFF


def get_base(val: str) -> int:
    """Return the numeric base implied by a ``0x``, ``0o`` or ``0b`` prefix, else 10."""
    for prefix, base in _PREFIX_BASES:
        if val.startswith(prefix):
            return base
    return 10


def is_file_json(filename: str | os.PathLike) -> bool:
    """Tell whether ``filename`` ends in ``.json``."""
    return os.fspath(filename).endswith(".json")


def validate_field_length(field_name: str, field: bytes | None, expected_length: int) -> None:
    """Raise ``ValueError`` if ``field`` is set and its length differs from the expected one."""
    if field is not None and len(field) != expected_length:
        raise ValueError(
            f"{field_name} length should be at least {expected_length} bytes long"
        )


def parse_hashes(
    config: CheckConfig,
    author_key_hashes: Iterable[str],
    id_key_hashes: Iterable[str],
) -> None:
    """Decode hex hashes and append them to the trusted key hash lists of ``config``."""
    policy = config.policy
    for text in author_key_hashes:
        policy.trusted_author_key_hashes.append(_decode_hex(text))
    for text in id_key_hashes:
        policy.trusted_id_key_hashes.append(_decode_hex(text))


def parse_files(
    config: CheckConfig,
    attestation_file: str | os.PathLike,
    author_key_paths: Iterable[str | os.PathLike],
    id_key_paths: Iterable[str | os.PathLike],
) -> bytes:
    """Read the attestation report and the trusted key files.

    The key file contents are appended to ``config``. The report bytes are
    returned. Only binary reports can be read. A report given as JSON raises
    ``ValueError``.
    """
    if is_file_json(attestation_file):
        raise ValueError(
            f"attestation file {os.fspath(attestation_file)!r} is JSON; "
            "a binary attestation report is required"
        )
    with open(attestation_file, "rb") as handle:
        attestation = handle.read()

    policy = config.policy
    for path in author_key_paths:
        with open(path, "rb") as handle:
            policy.trusted_author_keys.append(handle.read())
    for path in id_key_paths:
        with open(path, "rb") as handle:
            policy.trusted_id_keys.append(handle.read())
    return attestation


def parse_uints(config: CheckConfig, stepping: str = "", platform_info: str = "") -> None:
    """Parse the machine stepping and platform info flags into ``config``.

    Each value is an unsigned 8-bit number, optionally prefixed by ``0x``,
    ``0o`` or ``0b``. An empty value leaves the field untouched.
    """
    if stepping:
        config.policy.machine_stepping = _parse_uint8(stepping)
    if platform_info:
        config.policy.platform_info = _parse_uint8(platform_info)


def validate_input(config: CheckConfig) -> None:
    """Check the CA bundle settings and the lengths of the policy byte fields."""
    root = config.root_of_trust
    if root.cabundle_paths or (root.cabundles and root.product_line == ""):
        raise ValueError("product name must be set if CA bundles are provided")

    policy = config.policy
    checks = (
        ("report_data", policy.report_data, SIZE64),
        ("host_data", policy.host_data, SIZE32),
        ("family_id", policy.family_id, SIZE16),
        ("image_id", policy.image_id, SIZE16),
        ("report_id", policy.report_id, SIZE32),
        ("report_id_ma", policy.report_id_ma, SIZE32),
        ("measurement", policy.measurement, SIZE48),
        ("chip_id", policy.chip_id, SIZE64),
    )
    for name, value, size in checks:
        validate_field_length(name, value, size)
    for digest in policy.trusted_author_key_hashes:
        validate_field_length("trusted_author_key_hash", digest, SIZE48)
    for digest in policy.trusted_id_key_hashes:
        validate_field_length("trusted_id_key_hash", digest, SIZE48)


def _decode_hex(text: str) -> bytes:
    try:
        return binascii.unhexlify(text)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid hex string {text!r}: {exc}") from None


def _parse_uint8(text: str) -> int:
    base = get_base(text)
    digits = text if base == 10 else text[2:]
    if not _DIGITS[base].fullmatch(digits):
        raise ValueError(f"invalid syntax for unsigned integer {text!r}")
    value = int(digits, base)
    if value > _UINT8_MAX:
        raise ValueError(f"value {text!r} out of range for an 8-bit unsigned integer")
    return value