# schemas/account.py
# Pydantic models for the decrypted vault document

from pydantic import BaseModel, Field
from typing import Optional, Dict


class AccountRecordModel(BaseModel):
    model_config = {"extra": "forbid"}

    password: str = Field(min_length=1)
    username: Optional[str] = None
    url: Optional[str] = None


class VaultDocument(BaseModel):
    """Top-level layout: {"version": 1, "accounts": {name: record}}"""
    model_config = {"extra": "forbid"}

    version: int = 1
    accounts: Dict[str, AccountRecordModel] = Field(default_factory=dict)
