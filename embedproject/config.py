import configparser
import os
from typing import Optional, overload


class EmbedSettingsError(Exception):
    pass


config_file = configparser.RawConfigParser()
config_file.read(os.environ.get("EMBEDS_CONFIG_FILE", "/etc/embeds/embeds.conf"))

# Whether this instance is running in a production environment.
PRODUCTION = config_file.has_option("machine", "deploy_type")
DEVELOPMENT = not PRODUCTION


@overload
def get_config(section: str, key: str, default_value: str) -> str: ...


@overload
def get_config(section: str, key: str, default_value: Optional[str] = None) -> Optional[str]: ...


def get_config(section: str, key: str, default_value: Optional[str] = None) -> Optional[str]:
    return config_file.get(section, key, fallback=default_value)


def get_int_config(section: str, key: str, default_value: int) -> int:
    value = get_config(section, key)
    if value is None:
        return default_value
    try:
        return int(value)
    except ValueError:
        raise EmbedSettingsError(f'Setting "{section}.{key}" must be an integer, got "{value}"')
