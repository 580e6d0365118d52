"""
SindicApp - Password Hashing Tests

Run with: pytest tests/test_password.py -v
"""

import bcrypt

from sindicapp.auth.password import PasswordHasher


class TestPasswordHasher:
    """Unit tests for bcrypt password utilities."""
    
    def test_hash_creates_bcrypt_hash(self, hasher):
        hashed = hasher.hash("Correct1pw")
        
        assert hashed.startswith("$2b$04$")
        assert len(hashed) == 60
    
    def test_verify_correct_password(self, hasher):
        hashed = hasher.hash("Correct1pw")
        
        assert hasher.verify("Correct1pw", hashed) is True
    
    def test_verify_incorrect_password(self, hasher):
        hashed = hasher.hash("Correct1pw")
        
        assert hasher.verify("Wrong1pw", hashed) is False
        assert hasher.verify("", hashed) is False
    
    def test_same_password_different_hashes(self, hasher):
        hash1 = hasher.hash("Correct1pw")
        hash2 = hasher.hash("Correct1pw")
        
        assert hash1 != hash2  # Different salts
        assert hasher.verify("Correct1pw", hash1)
        assert hasher.verify("Correct1pw", hash2)
    
    def test_malformed_hash_fails_closed(self, hasher):
        assert hasher.verify("Correct1pw", "not-a-bcrypt-hash") is False
    
    def test_long_password_supported(self, hasher):
        password = "Aa1" + "x" * 125
        hashed = hasher.hash(password)
        
        assert hasher.verify(password, hashed)
    
    def test_dummy_verification_always_fails(self, hasher):
        assert hasher.verify_dummy("Correct1pw") is False
        assert hasher.verify_dummy("dummy-password-for-timing") is False
    
    def test_needs_rehash_lower_work_factor(self):
        old_hash = bcrypt.hashpw(b"password", bcrypt.gensalt(rounds=4)).decode()
        
        assert PasswordHasher(work_factor=5).needs_rehash(old_hash) is True
    
    def test_needs_rehash_current_factor(self, hasher):
        assert hasher.needs_rehash(hasher.hash("password")) is False
    
    def test_needs_rehash_garbage(self, hasher):
        assert hasher.needs_rehash("garbage") is True
