from .dispatcher import (
    WebhookDispatcher,
    build_payload,
    encode_payload,
    format_timestamp,
    sign,
    verify_signature,
)

__all__ = [
    "WebhookDispatcher",
    "build_payload",
    "encode_payload",
    "format_timestamp",
    "sign",
    "verify_signature",
]
