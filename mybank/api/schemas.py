"""
Pydantic schemas for API requests

Fields are optional so that missing values reach the ledger's own
validation and come back as ``InvalidRequest`` errors.
"""

from typing import Any, Optional
from pydantic import BaseModel, Field


# Account schemas
class CredentialsRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class BalanceRequest(BaseModel):
    username: Optional[str] = None


class SendRequest(BaseModel):
    from_: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    amount: Optional[Any] = Field(None, description="Positive number, at most the transfer cap")


# Admin schemas
#
# Every admin field accepts any JSON value; the credential check runs first
# and the ledger layer validates the rest.
class AdminRequest(BaseModel):
    adminUsername: Optional[Any] = None
    adminPassword: Optional[Any] = None


class AdminCreateUserRequest(AdminRequest):
    username: Optional[Any] = None
    password: Optional[Any] = None
    balance: Optional[Any] = 0
    is_admin: Optional[Any] = False


class AdminSetBalanceRequest(AdminRequest):
    username: Optional[Any] = None
    balance: Optional[Any] = None


class AdminFreezeRequest(AdminRequest):
    username: Optional[Any] = None
    freeze: Optional[Any] = False


class AdminDeleteRequest(AdminRequest):
    username: Optional[Any] = None


class AdminBroadcastRequest(AdminRequest):
    message: Optional[Any] = None
