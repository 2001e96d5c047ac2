from .password_reset import PasswordResetService
from .refresh_ledger import RefreshTokenLedger
from .verification import EmailVerificationService

__all__ = ["EmailVerificationService", "PasswordResetService", "RefreshTokenLedger"]
