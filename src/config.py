"""Application configuration management using Pydantic Settings.

Two layers of configuration exist:

- ``Settings``: process-level settings loaded from environment variables
  (.env file) such as file locations, the notification webhook and logging.
- ``BankConfig``: the NetBanking credentials and the ordered account list,
  read from a JSON file (``config.json`` by default).

Sensitive values are wrapped in SecretStr to prevent accidental logging.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SELECTORS_PATH = Path(__file__).parent / "selectors.yaml"


class Settings(BaseSettings):
    """Process settings loaded from environment variables."""

    # Files
    config_path: str = Field(
        default="config.json", description="Path to the bank config JSON file"
    )
    state_path: str = Field(
        default="state.json", description="Path to the persisted marker file"
    )
    selectors_path: str = Field(
        default=str(DEFAULT_SELECTORS_PATH),
        description="Path to CSS selectors YAML configuration file",
    )

    # NetBanking
    netbanking_url: str = Field(
        default="https://netbanking.hdfcbank.com/netbanking/",
        description="NetBanking portal root",
    )
    statement_date_format: str = Field(
        default="%d/%m/%y", description="strptime format of statement dates"
    )

    # Browser Configuration
    browser_timeout_ms: int = Field(
        default=30000, description="Default navigation/selector timeout"
    )

    # Notification webhook
    tg_bot_name: str = Field(default="", description="Telegram relay bot name")
    tg_bot_secret: SecretStr = Field(
        default=SecretStr(""), description="Secret sent along with every message"
    )
    notifier_base_url: str = Field(
        default="https://tg.mihir.ch", description="Telegram relay base URL"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="json", description="Log output format (json or console)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def notifier_url(self) -> str:
        return f"{self.notifier_base_url.rstrip('/')}/{self.tg_bot_name}"


class BankConfig(BaseModel):
    """NetBanking credentials and the accounts to watch.

    ``accounts`` is positional: the n-th name labels the n-th "view statement"
    button on the account summary page, so the order must match the portal.
    """

    customer_id: str = Field(..., alias="customerId")
    password: SecretStr
    headless: bool = True
    secure_access: bool = Field(default=False, alias="secureAccess")
    accounts: list[str] = Field(..., min_length=1)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


def load_bank_config(config_path: str | Path) -> BankConfig:
    """Load the bank configuration from a JSON file.

    Args:
        config_path: Path to the JSON config file.

    Returns:
        Validated BankConfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If required keys are missing or invalid.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Bank config not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    return BankConfig.model_validate(data)


def load_selectors(selectors_path: str | Path) -> dict[str, Any]:
    """Load CSS selectors from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid YAML or not a mapping of groups.
    """
    path = Path(selectors_path)
    if not path.exists():
        raise FileNotFoundError(f"Selectors file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            selectors = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid selectors file {path}: {e}") from e

    if not isinstance(selectors, dict):
        raise ValueError(f"Selectors file {path} must hold a mapping of selector groups")
    return selectors
