from .service import CredentialService, principal_out

__all__ = ["CredentialService", "principal_out"]
