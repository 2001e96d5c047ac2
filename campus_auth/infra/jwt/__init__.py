from .flask_jwt_access_token_issuer import FlaskJWTAccessTokenIssuer

__all__ = ["FlaskJWTAccessTokenIssuer"]
