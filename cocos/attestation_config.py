"""SEV-SNP check configuration: the root of trust and policy, read from and written to JSON.

The JSON form follows the protobuf JSON mapping: field names in lowerCamelCase
(original snake_case names are accepted on input), 64-bit integers written as
strings, byte fields in base64, and fields holding their default value omitted.
"""

from __future__ import annotations

import base64
import binascii
import json
import math
import re
from dataclasses import dataclass, field, fields
from typing import Any

SEV_PRODUCT_NAMES = {
    "SEV_PRODUCT_UNKNOWN": 0,
    "SEV_PRODUCT_MILAN": 1,
    "SEV_PRODUCT_GENOA": 2,
}
_PRODUCT_BY_NUMBER = {number: name for name, number in SEV_PRODUCT_NAMES.items()}

_DEFAULTS: dict[str, Any] = {
    "bool": False,
    "string": "",
    "uint32": 0,
    "uint64": 0,
    "bytes": None,
    "wrap_u32": None,
    "wrap_u64": None,
    "enum": "SEV_PRODUCT_UNKNOWN",
}
_BITS = {"uint32": 32, "wrap_u32": 32, "uint64": 64, "wrap_u64": 64}
_DECIMAL = re.compile(r"-?\d+")


def _field(kind: str, *, json_name: str | None = None, proto_name: str | None = None,
           group: str | None = None) -> Any:
    meta = {"kind": kind, "json": json_name, "proto": proto_name, "group": group}
    if kind.endswith("_list"):
        return field(default_factory=list, metadata=meta)
    return field(default=_DEFAULTS[kind], metadata=meta)


@dataclass
class RootOfTrust:
    """Where the AMD certificate chain comes from and how it is checked."""

    product: str = _field("string")
    cabundle_paths: list[str] = _field("string_list")
    cabundles: list[str] = _field("string_list")
    check_crl: bool = _field("bool")
    disallow_network: bool = _field("bool")
    product_line: str = _field("string")


@dataclass
class Policy:
    """Expected values and minimums that an attestation report must satisfy."""

    minimum_guest_svn: int = _field("uint32")
    policy: int = _field("uint64")
    family_id: bytes | None = _field("bytes")
    image_id: bytes | None = _field("bytes")
    vmpl: int | None = _field("wrap_u32")
    minimum_tcb: int = _field("uint64")
    minimum_launch_tcb: int = _field("uint64")
    platform_info: int | None = _field("wrap_u64")
    require_author_key: bool = _field("bool")
    report_data: bytes | None = _field("bytes")
    measurement: bytes | None = _field("bytes")
    host_data: bytes | None = _field("bytes")
    report_id: bytes | None = _field("bytes")
    report_id_ma: bytes | None = _field("bytes")
    chip_id: bytes | None = _field("bytes")
    minimum_build: int = _field("uint32")
    minimum_version: str = _field("string")
    permit_provisional_firmware: bool = _field("bool")
    require_id_block: bool = _field("bool")
    trusted_author_keys: list[bytes] = _field("bytes_list")
    trusted_author_key_hashes: list[bytes] = _field("bytes_list")
    trusted_id_keys: list[bytes] = _field("bytes_list")
    trusted_id_key_hashes: list[bytes] = _field("bytes_list")
    product_name: str = _field("enum", json_name="name", proto_name="name", group="product")
    product_stepping: int = _field("uint32", json_name="stepping", proto_name="stepping",
                                   group="product")
    machine_stepping: int | None = _field("wrap_u32", group="product",
                                          proto_name="machine_stepping")


@dataclass
class CheckConfig:
    """A complete attestation check configuration."""

    root_of_trust: RootOfTrust = field(default_factory=RootOfTrust)
    policy: Policy = field(default_factory=Policy)

    def to_json(self) -> str:
        """Serialise to compact JSON, omitting fields that hold their defaults."""
        data = {
            "rootOfTrust": _encode_fields(self.root_of_trust),
            "policy": _encode_fields(self.policy),
        }
        return json.dumps(data, separators=(",", ":"))

    @classmethod
    def from_json(cls, text: str | bytes) -> "CheckConfig":
        """Parse JSON into a new configuration; raise ``ValueError`` if it is invalid."""
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("config: expected a JSON object")
        config = cls()
        seen: set[str] = set()
        for key, raw in data.items():
            if key in ("rootOfTrust", "root_of_trust"):
                name, target_cls = "root_of_trust", RootOfTrust
            elif key == "policy":
                name, target_cls = "policy", Policy
            else:
                raise ValueError(f"config: unknown field {key!r}")
            if name in seen:
                raise ValueError(f"config: duplicate field {key!r}")
            seen.add(name)
            target = target_cls()
            if raw is not None:
                _decode_fields(target, raw, key)
            setattr(config, name, target)
        return config


def parse_config(text: str | bytes | None) -> CheckConfig:
    """Parse a JSON configuration, or return an empty one when ``text`` is empty."""
    if not text:
        return CheckConfig()
    return CheckConfig.from_json(text)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _names(f: Any) -> tuple[str, str]:
    proto = f.metadata["proto"] or f.name
    return f.metadata["json"] or _camel(proto), proto


def _is_default(kind: str, value: Any) -> bool:
    if kind.endswith("_list"):
        return not value
    if kind == "bytes":
        return not value
    if kind in ("wrap_u32", "wrap_u64"):
        return value is None
    return value == _DEFAULTS[kind]


def _encode_value(kind: str, value: Any) -> Any:
    if kind == "string_list":
        return list(value)
    if kind == "bytes_list":
        return [base64.b64encode(item).decode("ascii") for item in value]
    if kind == "bytes":
        return base64.b64encode(value).decode("ascii")
    if kind in ("uint64", "wrap_u64"):
        return str(value)
    return value


def _encode_fields(message: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    groups: dict[str, dict[str, Any]] = {}
    for f in fields(message):
        kind = f.metadata["kind"]
        value = getattr(message, f.name)
        if _is_default(kind, value):
            continue
        json_name, _ = _names(f)
        group = f.metadata["group"]
        target = groups.setdefault(group, {}) if group else out
        target[json_name] = _encode_value(kind, value)
    for group, values in groups.items():
        if values:
            out[group] = values
    return out


def _lookup(candidates: list[Any]) -> dict[str, Any]:
    table: dict[str, Any] = {}
    for f in candidates:
        json_name, proto_name = _names(f)
        table[json_name] = f
        table[proto_name] = f
    return table


def _decode_fields(message: Any, data: Any, where: str) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"{where}: expected a JSON object")
    all_fields = list(fields(message))
    top = _lookup([f for f in all_fields if not f.metadata["group"]])
    grouped: dict[str, list[Any]] = {}
    for f in all_fields:
        if f.metadata["group"]:
            grouped.setdefault(f.metadata["group"], []).append(f)
    seen: set[str] = set()
    for key, raw in data.items():
        if key in grouped:
            if key in seen:
                raise ValueError(f"{where}: duplicate field {key!r}")
            seen.add(key)
            if raw is not None:
                _decode_group(message, grouped[key], raw, f"{where}.{key}")
            continue
        f = top.get(key)
        if f is None:
            raise ValueError(f"{where}: unknown field {key!r}")
        if f.name in seen:
            raise ValueError(f"{where}: duplicate field {key!r}")
        seen.add(f.name)
        setattr(message, f.name, _decode_value(f.metadata["kind"], raw, f"{where}.{key}"))


def _decode_group(message: Any, group_fields: list[Any], data: Any, where: str) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"{where}: expected a JSON object")
    table = _lookup(group_fields)
    seen: set[str] = set()
    for key, raw in data.items():
        f = table.get(key)
        if f is None:
            raise ValueError(f"{where}: unknown field {key!r}")
        if f.name in seen:
            raise ValueError(f"{where}: duplicate field {key!r}")
        seen.add(f.name)
        setattr(message, f.name, _decode_value(f.metadata["kind"], raw, f"{where}.{key}"))


def _decode_value(kind: str, raw: Any, where: str) -> Any:
    if raw is None:
        return [] if kind.endswith("_list") else _DEFAULTS[kind]
    if kind.endswith("_list"):
        if not isinstance(raw, list):
            raise ValueError(f"{where}: expected a JSON array")
        element = kind[: -len("_list")]
        items = []
        for index, item in enumerate(raw):
            if item is None:
                raise ValueError(f"{where}[{index}]: null is not allowed in a list")
            items.append(_decode_value(element, item, f"{where}[{index}]"))
        return items
    if kind == "bool":
        if not isinstance(raw, bool):
            raise ValueError(f"{where}: expected a boolean")
        return raw
    if kind == "string":
        if not isinstance(raw, str):
            raise ValueError(f"{where}: expected a string")
        return raw
    if kind == "bytes":
        return _decode_bytes(raw, where)
    if kind == "enum":
        return _decode_enum(raw, where)
    return _decode_uint(raw, _BITS[kind], where)


def _decode_uint(raw: Any, bits: int, where: str) -> int:
    if isinstance(raw, bool):
        raise ValueError(f"{where}: expected an unsigned integer")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        if not math.isfinite(raw) or not raw.is_integer():
            raise ValueError(f"{where}: expected an unsigned integer")
        value = int(raw)
    elif isinstance(raw, str):
        if _DECIMAL.fullmatch(raw):
            value = int(raw, 10)
        else:
            try:
                number = float(raw)
            except ValueError:
                raise ValueError(f"{where}: invalid unsigned integer {raw!r}") from None
            if not math.isfinite(number) or not number.is_integer():
                raise ValueError(f"{where}: invalid unsigned integer {raw!r}")
            value = int(number)
    else:
        raise ValueError(f"{where}: expected an unsigned integer")
    if not 0 <= value < 1 << bits:
        raise ValueError(f"{where}: value {value} out of range for uint{bits}")
    return value


def _decode_bytes(raw: Any, where: str) -> bytes:
    if not isinstance(raw, str):
        raise ValueError(f"{where}: expected a base64 string")
    text = raw + "=" * (-len(raw) % 4)
    url_safe = "-" in raw or "_" in raw
    try:
        if url_safe:
            return base64.b64decode(text.replace("-", "+").replace("_", "/"), validate=True)
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError(f"{where}: invalid base64 data") from None


def _decode_enum(raw: Any, where: str) -> str:
    if isinstance(raw, str):
        if raw not in SEV_PRODUCT_NAMES:
            raise ValueError(f"{where}: invalid enum value {raw!r}")
        return raw
    if isinstance(raw, int) and not isinstance(raw, bool):
        if raw not in _PRODUCT_BY_NUMBER:
            raise ValueError(f"{where}: invalid enum value {raw}")
        return _PRODUCT_BY_NUMBER[raw]
    raise ValueError(f"{where}: expected an enum name or number")