"""Configuration loader and validation for reconciliation settings."""

from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class MultiClaimPolicy(str, Enum):
    """What to do when more than one report claims the same order."""

    LAST_WINS = "last_wins"
    FLAG = "flag"
    REJECT = "reject"


class MalformedClaimsMode(str, Enum):
    """What to do when a report's claimed order list cannot be parsed."""

    IGNORE = "ignore"
    ERROR = "error"


class DatabaseConfig(BaseModel):
    """Connection settings for the order, report and ledger tables."""

    url: str = "sqlite:///cash_recon.db"
    echo: bool = False


class InputConfig(BaseModel):
    """Configuration for CSV ingestion."""

    encoding: str = "utf-8"
    delimiter: str = ","
    default_currency: str = "MXN"


class MatchingConfig(BaseModel):
    """Configuration for the matcher."""

    multi_claim_policy: MultiClaimPolicy = MultiClaimPolicy.LAST_WINS
    malformed_claims: MalformedClaimsMode = MalformedClaimsMode.IGNORE


class ThresholdsConfig(BaseModel):
    """Classification thresholds, in currency units and percent."""

    high_priority_amount: Decimal = Field(default=Decimal("100"), ge=0)
    high_priority_percent: Decimal = Field(default=Decimal("10"), ge=0)
    noise_threshold: Decimal = Field(default=Decimal("0.005"), ge=0)


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "reconciliation_report_{date}_{time}.xlsx"
    include_timestamp: bool = True


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    records: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Records"))
    discrepancies: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Discrepancies")
    )
    high_priority: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="High Priority")
    )
    store_breakdown: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Store Breakdown")
    )


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "database": {
            "url": "sqlite:///cash_recon.db",
            "echo": False,
        },
        "input": {
            "encoding": "utf-8",
            "delimiter": ",",
            "default_currency": "MXN",
        },
        "matching": {
            "multi_claim_policy": "last_wins",
            "malformed_claims": "ignore",
        },
        "thresholds": {
            "high_priority_amount": "100",
            "high_priority_percent": "10",
            "noise_threshold": "0.005",
        },
        "output": {
            "excel": {
                "filename_template": "reconciliation_report_{date}_{time}.xlsx",
                "include_timestamp": True,
            },
            "sheets": {
                "summary": {"enabled": True, "name": "Summary"},
                "records": {"enabled": True, "name": "Records"},
                "discrepancies": {"enabled": True, "name": "Discrepancies"},
                "high_priority": {"enabled": True, "name": "High Priority"},
                "store_breakdown": {"enabled": True, "name": "Store Breakdown"},
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    }


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file cannot be read or holds invalid values
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read configuration {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(
                f"Configuration {config_path} must be a mapping, got {type(user_config).__name__}"
            )

        # Deep merge user config into defaults
        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Store cash reconciliation configuration
# Generated configuration file - customize as needed
#
# matching.multi_claim_policy: last_wins | flag | reject
# matching.malformed_claims:   ignore | error

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
