"""Update the measurement or host data held in an attestation policy file."""

from __future__ import annotations

import base64
import binascii
import enum
import os

from cocos.attestation_config import CheckConfig

# Read, write and execute for the owner; read only for everyone else.
FILE_PERMISSION = 0o744
HOST_DATA_LENGTH = 32
MEASUREMENT_LENGTH = 48

ERR_DECODE = "base64 string could not be decoded"
ERR_DATA_LENGTH = "data does not have an adequate length"
ERR_READING_POLICY_FILE = "error while reading the attestation policy file"
ERR_UNMARSHAL_JSON = "failed to unmarshal json"
ERR_MARSHAL_JSON = "failed to marshal json"
ERR_WRITE_FILE = "failed to write to file"
ERR_POLICY_FIELD = "the specified field type does not exist in the attestation policy"


class FieldType(enum.IntEnum):
    """Policy fields that can be replaced from the command line."""

    MEASUREMENT = 0
    HOST_DATA = 1


class AttestationPolicyError(Exception):
    """Changing the attestation policy failed.

    ``reason`` is one of the ``ERR_*`` messages of this module and ``cause``
    the underlying exception, if any.
    """

    def __init__(self, reason: str, cause: BaseException | None = None) -> None:
        self.reason = reason
        self.cause = cause
        super().__init__(reason if cause is None else f"{reason} : {cause}")


def change_attestation_configuration(
    file_name: str | os.PathLike,
    base64_data: str,
    expected_length: int,
    field: FieldType | int,
) -> None:
    """Replace one byte field of the policy stored as JSON in ``file_name``.

    ``base64_data`` is standard, padded base64 that must decode to exactly
    ``expected_length`` bytes. Raises :class:`AttestationPolicyError`.
    """
    try:
        data = base64.b64decode(base64_data, validate=True)
    except (binascii.Error, ValueError):
        raise AttestationPolicyError(ERR_DECODE) from None

    if len(data) != expected_length:
        raise AttestationPolicyError(ERR_DATA_LENGTH)

    try:
        with open(file_name, "rb") as handle:
            raw = handle.read()
    except OSError as exc:
        raise AttestationPolicyError(ERR_READING_POLICY_FILE, exc) from exc

    try:
        config = CheckConfig.from_json(raw)
    except ValueError as exc:
        raise AttestationPolicyError(ERR_UNMARSHAL_JSON, exc) from exc

    if field == FieldType.MEASUREMENT:
        config.policy.measurement = data
    elif field == FieldType.HOST_DATA:
        config.policy.host_data = data
    else:
        raise AttestationPolicyError(ERR_POLICY_FIELD)

    try:
        text = config.to_json()
    except (TypeError, ValueError) as exc:
        raise AttestationPolicyError(ERR_MARSHAL_JSON, exc) from exc

    try:
        fd = os.open(file_name, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_PERMISSION)
        with os.fdopen(fd, "w", encoding="utf-8") as out:
            out.write(text)
    except OSError as exc:
        raise AttestationPolicyError(ERR_WRITE_FILE, exc) from exc