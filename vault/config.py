# vault/config.py
from pathlib import Path
import platform
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from .strength import MIN_LENGTH
from .generator import DEFAULT_LENGTH, MAX_ATTEMPTS

APP_NAME = "passvault"


def get_app_data_dir() -> Path:
    """
    Get cross-platform app data directory.
    Windows: %APPDATA%\\passvault
    macOS: ~/Library/Application Support/passvault
    Linux: ~/.local/share/passvault
    """

    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif system == "Darwin":  # macOS
        base = Path.home() / "Library" / "Application Support"
    else:  # Linux and others
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    return base / APP_NAME


def default_vault_file() -> Path:
    return get_app_data_dir() / "vault.enc"


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class VaultSettings(BaseModel):
    """Validated vault configuration."""

    vault_file: Path = Field(default_factory=default_vault_file)
    min_password_length: int = Field(default=MIN_LENGTH, ge=MIN_LENGTH)
    generated_length: int = Field(default=DEFAULT_LENGTH, ge=8, le=256)
    max_generation_attempts: int = Field(default=MAX_ATTEMPTS, ge=1, le=100_000)
    lock_timeout: float = Field(default=0.0, ge=0.0)
    rewrite_on_read: bool = False

    @model_validator(mode="after")
    def check_generated_length(self) -> "VaultSettings":
        if self.generated_length < self.min_password_length:
            raise ValueError(
                f"generated_length ({self.generated_length}) must be at least "
                f"min_password_length ({self.min_password_length})"
            )
        return self

    @classmethod
    def from_env(cls) -> "VaultSettings":
        """Create VaultSettings from the environment (and a .env file, if any).

        VAULT_FILE overrides the vault location; useful for tests or custom
        deployments.
        """
        load_dotenv()

        values = {}
        env_vault = os.environ.get("VAULT_FILE")
        if env_vault:
            values["vault_file"] = Path(env_vault).expanduser()
        for key, env_name in (
            ("min_password_length", "VAULT_MIN_PASSWORD_LENGTH"),
            ("generated_length", "VAULT_PASSWORD_LENGTH"),
            ("max_generation_attempts", "VAULT_MAX_GENERATION_ATTEMPTS"),
            ("lock_timeout", "VAULT_LOCK_TIMEOUT"),
        ):
            raw = os.environ.get(env_name)
            if raw:
                values[key] = raw
        raw = os.environ.get("VAULT_REWRITE_ON_READ")
        if raw:
            values["rewrite_on_read"] = _env_bool(raw)
        return cls(**values)


def ensure_directories(settings: VaultSettings):
    """Create the vault's parent directory (owner-only) if missing."""
    settings.vault_file.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
