from __future__ import annotations

import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional


WEBHOOK_SECRET = "whsec_test_secret"


def stripe_signature(
    payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None
) -> str:
    """Build a `Stripe-Signature` header the way Stripe signs webhook bodies."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def event_payload(
    event_id: str,
    event_type: str,
    account_id: Optional[str] = None,
    extra_metadata: Optional[Dict[str, Any]] = None,
) -> bytes:
    metadata: Dict[str, Any] = dict(extra_metadata or {})
    if account_id is not None:
        metadata["userId"] = account_id
    body = {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": f"obj_{event_id}", "metadata": metadata}},
    }
    return json.dumps(body).encode("utf-8")
