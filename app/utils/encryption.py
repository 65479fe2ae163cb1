from cryptography.fernet import Fernet, InvalidToken

from settings import settings

cipher_suite = Fernet(settings.password_encryption_key.encode())


class SecretUtils:
    """Fernet helpers for mailbox secrets stored at rest."""

    @staticmethod
    def encrypt(value: str) -> str:
        return cipher_suite.encrypt(value.encode()).decode()

    @staticmethod
    def decrypt(value: str) -> str:
        """Decrypt a stored secret, raising ValueError when it was written under a different key."""
        try:
            return cipher_suite.decrypt(value.encode()).decode()
        except InvalidToken as exc:
            raise ValueError("Stored secret cannot be decrypted with the configured key") from exc
