import os
from dataclasses import dataclass
from typing import Literal

from pennywise.core import settings

ValueType = Literal["string", "int", "float"]


@dataclass(frozen=True)
class ConfigField:
    key: str
    label: str
    description: str
    category: str
    value_type: ValueType = "string"
    sensitive: bool = False
    restart_required: bool = False


CONFIG_FIELDS: tuple[ConfigField, ...] = (
    ConfigField(
        key="STORE_URL",
        label="Store URL",
        description="Base URL of the REST row store holding transactions and categories.",
        category="Storage",
    ),
    ConfigField(
        key="STORE_TOKEN",
        label="Store Token",
        description="API key sent to the row store.",
        category="Storage",
        sensitive=True,
    ),
    ConfigField(
        key="STORE_TIMEOUT",
        label="Store Timeout",
        description="Seconds before a store request is abandoned.",
        category="Storage",
        value_type="float",
    ),
    ConfigField(
        key="DATA_DIR",
        label="Data Directory",
        description="Directory for local preferences (preferences.json).",
        category="Storage",
        restart_required=True,
    ),
    ConfigField(
        key="AED_TO_GBP_RATE",
        label="AED to GBP Rate",
        description="Fixed conversion rate used for every import and report.",
        category="Import",
        value_type="float",
        restart_required=True,
    ),
    ConfigField(
        key="MAPPING_THRESHOLD",
        label="Merchant Mapping Threshold",
        description="Confirmations needed before a merchant is auto-categorized.",
        category="Import",
        value_type="int",
        restart_required=True,
    ),
    ConfigField(
        key="WEBHOOK_TIMEOUT",
        label="Webhook Timeout",
        description="Seconds before an import webhook POST is abandoned.",
        category="Import",
        value_type="float",
    ),
    ConfigField(
        key="OPENAI_API_KEY",
        label="OpenAI API Key",
        description="API key used by the financial advisor.",
        category="Advisor",
        sensitive=True,
    ),
    ConfigField(
        key="OPENAI_MODEL",
        label="OpenAI Model",
        description="Model name for the OpenAI-compatible client.",
        category="Advisor",
    ),
    ConfigField(
        key="OPENAI_BASE_URL",
        label="OpenAI Base URL",
        description="Override OpenAI base URL for compatible providers.",
        category="Advisor",
    ),
    ConfigField(
        key="LOG_DIR",
        label="Log Directory",
        description="Directory for application logs.",
        category="Logging",
        restart_required=True,
    ),
    ConfigField(
        key="LOG_LEVEL",
        label="Log Level",
        description="Logging verbosity for the application.",
        category="Logging",
        restart_required=True,
    ),
)


def get_config_keys() -> tuple[str, ...]:
    return tuple(field.key for field in CONFIG_FIELDS)


def build_config_view() -> dict[str, object]:
    """Current configuration grouped by section, secrets masked."""
    sections: dict[str, list[dict[str, object]]] = {}
    for field in CONFIG_FIELDS:
        raw_value = os.getenv(field.key)
        if raw_value is None:
            value = None
        elif field.sensitive:
            value = settings.mask_env_value(field.key, raw_value)
        else:
            value = raw_value
        sections.setdefault(field.category, []).append(
            {
                "key": field.key,
                "label": field.label,
                "description": field.description,
                "value_type": field.value_type,
                "value": value,
                "env_override": settings.is_env_override(field.key),
                "restart_required": field.restart_required,
            }
        )
    return {
        "config_path": settings.get_config_path() or "Not configured",
        "sections": [{"name": name, "fields": fields} for name, fields in sections.items()],
    }
