import hashlib
import hmac


def hash_token(s: str) -> str:
    return hashlib.sha256(s.encode()).hexdigest()


def tokens_match(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())
