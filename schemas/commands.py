# schemas/commands.py
# Pydantic models for the single operation a vault session performs

from pydantic import BaseModel, Field
from typing import Optional, Union

from vault.secret_buffer import SecretBuffer


class GeneratedPassword(BaseModel):
    """Ask the session to generate a password that passes the policy."""
    pass

class SuppliedPassword(BaseModel):
    model_config = {"arbitrary_types_allowed": True}

    secret: SecretBuffer

# Decided once by the caller before the session starts
PasswordChoice = Union[GeneratedPassword, SuppliedPassword]


class AddCommand(BaseModel):
    name: str = Field(min_length=1)
    password: PasswordChoice
    username: Optional[str] = None
    url: Optional[str] = None

class UpdateCommand(BaseModel):
    name: str = Field(min_length=1)
    # None keeps the current password
    password: Optional[PasswordChoice] = None
    username: Optional[str] = None
    url: Optional[str] = None

class GetCommand(BaseModel):
    name: str = Field(min_length=1)

class GetPasswordCommand(BaseModel):
    name: str = Field(min_length=1)

class DeleteCommand(BaseModel):
    name: str = Field(min_length=1)

class ListCommand(BaseModel):
    pass


MUTATING = (AddCommand, UpdateCommand, DeleteCommand)

# Union of all commands
Command = Union[AddCommand, UpdateCommand, GetCommand, GetPasswordCommand, DeleteCommand, ListCommand]


def command_secrets(command: Command):
    """SecretBuffers carried by a command, for release at session end."""
    choice = getattr(command, "password", None)
    if isinstance(choice, SuppliedPassword):
        return [choice.secret]
    return []
