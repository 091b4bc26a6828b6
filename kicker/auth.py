import hashlib
import hmac
import secrets

# scrypt cost parameters; changing them invalidates every stored hash
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
HASH_BYTES = 64


def normalize_username(value: str) -> str:
    """Canonical form used for uniqueness and lookup."""
    return (value or '').strip().lower()


def generate_salt() -> str:
    """128 random bits, hex encoded."""
    return secrets.token_hex(16)


def hash_password(password: str, salt: str) -> str:
    """
    Derive the password hash with scrypt.

    Any str is accepted, including lone surrogates from JSON escapes.

    Returns:
        128 hex characters (64 bytes); identical inputs give identical output.
    """
    derived = hashlib.scrypt(
        password.encode('utf-8', 'surrogatepass'),
        salt=salt.encode('utf-8'),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=HASH_BYTES
    )
    return derived.hex()


def verify_password(password: str, salt: str, expected_hash: str) -> bool:
    """
    Recompute the hash and compare in constant time.

    Malformed or wrong-length stored hashes verify as False instead of raising.
    """
    try:
        expected = bytes.fromhex(expected_hash or '')
    except (ValueError, TypeError):
        return False

    actual = bytes.fromhex(hash_password(password, salt))
    if len(expected) != len(actual):
        return False
    return hmac.compare_digest(expected, actual)


def new_session_token() -> str:
    """256-bit bearer token handed to the client; only its digest is stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """Lookup key for the session store."""
    return hashlib.sha256(token.encode('utf-8', 'surrogatepass')).hexdigest()
