# cocos

Helpers for confidential-computing services: reading, checking and editing
SEV-SNP attestation check configurations, turning RPC failures into short
messages, writing log records as JSON agent-log events, and stopping servers
on a signal. The package uses only the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Attestation check configuration

`cocos.attestation_config` describes a check configuration with the dataclasses
`CheckConfig`, `RootOfTrust` and `Policy`. The JSON form follows the protobuf
JSON mapping: lowerCamelCase field names (snake_case accepted on input),
64-bit integers as strings, byte fields in base64, and fields that hold their
default value left out.

```python
from cocos.attestation_config import CheckConfig, parse_config

config = parse_config('{"rootOfTrust":{"product":"Milan"},"policy":{"minimumGuestSvn":1}}')
config.policy.measurement = bytes(48)
text = config.to_json()
same = CheckConfig.from_json(text)
```

`CheckConfig.from_json` raises `ValueError` on invalid JSON, unknown fields,
out-of-range integers or bad base64. `parse_config` returns an empty
`CheckConfig` when given an empty string or `None`.

## Checking command-line input

`cocos.attestation_checks` fills in and checks a `CheckConfig`:

- `parse_hashes(config, author_key_hashes, id_key_hashes)` decodes hex strings
  and appends them to the trusted key hash lists.
- `parse_files(config, attestation_file, author_key_paths, id_key_paths)` reads
  the trusted key files into the configuration and returns the bytes of the
  attestation report. A report file ending in `.json` raises `ValueError`.
- `parse_uints(config, stepping, platform_info)` parses 8-bit unsigned values,
  with an optional `0x`, `0o` or `0b` prefix (see `get_base`), into
  `machine_stepping` and `platform_info`.
- `validate_input(config)` checks the CA bundle settings and the lengths of the
  policy byte fields: report data and chip id 64 bytes, host data, report id
  and report id MA 32 bytes, family and image id 16 bytes, measurement and
  trusted key hashes 48 bytes. It raises `ValueError` on the first mismatch.

`is_file_json` and `validate_field_length` are available on their own too.

## Editing an attestation policy file

`cocos.attestation_policy.change_attestation_configuration` replaces the
measurement or the host data in a policy JSON file. The value is given as
standard base64 and must decode to the expected length (`MEASUREMENT_LENGTH`
is 48, `HOST_DATA_LENGTH` is 32).

```python
from cocos.attestation_policy import (
    MEASUREMENT_LENGTH,
    FieldType,
    change_attestation_configuration,
)

change_attestation_configuration(
    "attestation_policy.json", measurement_b64, MEASUREMENT_LENGTH, FieldType.MEASUREMENT
)
```

Failures raise `AttestationPolicyError`, whose `reason` is one of the module's
`ERR_*` messages and whose `cause` is the underlying exception, if any.

## RPC errors

`cocos.errors` defines `StatusCode`, `RPCError`, `SignatureVerificationError`
and `AgentServiceUnavailableError`. `decode_error` maps a permission-denied
`RPCError` to a `PermissionError` about signature verification, an unavailable
one to a `ConnectionError` saying the agent is unavailable, and an error caused
by a signature or agent-unavailable error to a fresh one of that kind; other
errors pass through unchanged.

```python
import sys
from cocos.errors import RPCError, StatusCode, print_error

err = RPCError(StatusCode.PERMISSION_DENIED, "permission denied")
print_error(sys.stdout, "Error: %v", err)
```

`print_error` decodes the error unless `verbose` is true, and writes the line
in red only when the output is a terminal.

## Agent log handler

`cocos.protohandler.ProtoHandler` is a `logging.Handler`. Each record is split
into chunks of at most 500 characters; each chunk is written to the stream as
one JSON line of the form `{"agentLog": {...}}` and, when a queue is given, put
on that queue. Records below the handler's level (INFO by default) are
ignored. `with_group(name)` tags later events with a computation id.

```python
import io, logging, queue
from cocos.protohandler import ProtoHandler

events = queue.Queue()
handler = ProtoHandler(io.StringIO(), queue=events).with_group("computation-1")
logger = logging.getLogger("agent")
logger.addHandler(handler)
```

## Server configuration and shutdown

`cocos.server` has the `Server` abstract class (`start`, `stop`) and the
configuration dataclasses `BaseConfig`, `ServerConfig` and `AgentConfig`
(which adds `attested_tls`); `get_base_config` returns the plain
`ServerConfig` part. `stop_all_servers` stops every server and then raises
`ServerStopError` if any failed. `stop_handler(cancel_event, logger, svc_name,
*servers)` must run in the main thread; it waits for SIGINT or SIGABRT, or
returns once `cancel_event` is set. On a signal it stops the servers, logs the
shutdown and sets `cancel_event`.

## What this package does not do

There is no command-line program, no agent or manager service, and no network
server or client: `Server` is only an interface. The package does not fetch
certificates, verify attestation report signatures, or read attestation
reports given as JSON. It does not compute file checksums or build zip
archives.