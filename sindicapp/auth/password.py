"""
SindicApp - Password Hashing

bcrypt hashing with a configurable work factor.

Security:
- Never log or expose plaintext passwords
- bcrypt includes salt automatically
- Hashes below the configured work factor are upgraded on login
- A dummy comparison equalizes timing for unknown accounts
"""

import bcrypt


DEFAULT_WORK_FACTOR = 12

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """
    bcrypt hasher bound to one work factor.
    
    Example:
        >>> hasher = PasswordHasher(work_factor=12)
        >>> hashed = hasher.hash("Correct1pw")
        >>> hasher.verify("Correct1pw", hashed)
        True
    """
    
    def __init__(self, work_factor: int = DEFAULT_WORK_FACTOR):
        self.work_factor = work_factor
        self._dummy_hash = None
    
    def hash(self, password: str) -> str:
        """Hash a password; the result embeds salt and work factor."""
        salt = bcrypt.gensalt(rounds=self.work_factor)
        return bcrypt.hashpw(_encode(password), salt).decode("utf-8")
    
    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Constant-time check of a password against a bcrypt hash.
        
        Returns False for malformed hashes instead of raising.
        """
        try:
            return bcrypt.checkpw(_encode(plain_password), hashed_password.encode("utf-8"))
        except (ValueError, TypeError):
            return False
    
    def verify_dummy(self, plain_password: str) -> bool:
        """
        Burn the same CPU as a real verification and always fail.
        
        Used when no account matches so response timing does not reveal
        whether an identifier exists.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("dummy-password-for-timing")
        self.verify(plain_password, self._dummy_hash)
        return False
    
    def needs_rehash(self, hashed_password: str) -> bool:
        """
        Check whether a hash was produced with a lower work factor.
        
        bcrypt format: $2b$XX$... where XX is the work factor.
        """
        try:
            work_factor_str = hashed_password.split("$")[2]
            return int(work_factor_str) < self.work_factor
        except (ValueError, IndexError):
            return True
