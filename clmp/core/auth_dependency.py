from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from clmp.core.errors import UnauthenticatedError, BillingError
from clmp.core.security import Identity, decode_access_token
from clmp.db.session import SessionLocal

bearer_scheme = HTTPBearer(auto_error=False)


def get_db():
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_identity(
    cred: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """Verified identity of the caller, 401 when missing or invalid."""
    if cred is None:
        raise UnauthenticatedError("Missing authorization header")
    return decode_access_token(cred.credentials)


def get_billing_identity(
    cred: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """
    Verified identity for billing endpoints.

    Billing endpoints report credential problems as 400 so the client
    treats them like any other billing failure.
    """
    if cred is None:
        raise BillingError("No authorization header")
    try:
        return decode_access_token(cred.credentials)
    except UnauthenticatedError:
        raise BillingError("Invalid user token")
