"""Request signing for the signature-authenticated marketplace"""
import hashlib
import hmac

SIGNATURE_PREFIX = "dmar ed25519 "


def canonical_string(method: str, path: str, query: str, body: str, timestamp: int) -> str:
    """method + path + ?query + body + timestamp"""
    query_part = f"?{query}" if query else ""
    return f"{method.upper()}{path}{query_part}{body or ''}{int(timestamp)}"


def sign(method: str, path: str, query: str, body: str, secret_key: str, timestamp: int) -> str:
    """HMAC-SHA-256 of the canonical string, hex encoded.

    ``timestamp`` is Unix seconds chosen by the caller, so the same inputs
    always give the same signature.
    """
    message = canonical_string(method, path, query, body, timestamp)
    return hmac.new(secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def signed_headers(
    public_key: str,
    secret_key: str,
    method: str,
    path: str,
    query: str,
    body: str,
    timestamp: int,
) -> dict[str, str]:
    """Headers required on every signed call"""
    signature = sign(method, path, query, body, secret_key, timestamp)
    return {
        "X-Api-Key": public_key,
        "X-Request-Sign": f"{SIGNATURE_PREFIX}{signature}",
        "X-Sign-Date": str(int(timestamp)),
    }
