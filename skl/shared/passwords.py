from passlib.context import CryptContext

pwd_ctx = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(plain: str) -> str:
    """Return a pbkdf2_sha256 hash for the plain password."""
    return pwd_ctx.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    if not plain or not hashed:
        return False
    try:
        return pwd_ctx.verify(plain, hashed)
    except ValueError:
        return False
