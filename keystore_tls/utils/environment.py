import os
from typing import Optional

TRUE_STRINGS = ['true', 'yes', 'on', '1']
FALSE_STRINGS = ['false', 'no', 'off', '0']


def loadConfigValueFromFileOrEnvironment(key: str, default_value: str = '') -> str:
    """
    Load configuration values from a file or environment variable.
    This function reads the entire file content and strips leading/trailing whitespace.
    """
    VALUE_FILE = os.environ.get(f'{key}_FILE')
    if VALUE_FILE:
        if not os.path.exists(VALUE_FILE) or not os.path.isfile(VALUE_FILE):
            raise FileNotFoundError(f'{key}_FILE is set but the path does not exist or is not a file.')

        with open(VALUE_FILE, 'r') as file:
            file_content = file.read().strip()

        if file_content:
            return file_content

    return os.environ.get(key, default_value)


def loadOptionalConfigValue(key: str) -> Optional[str]:
    """
    Load an optional configuration value, returning None when it is unset or empty.
    Supports the same {key}_FILE indirection as loadConfigValueFromFileOrEnvironment.
    """
    value = loadConfigValueFromFileOrEnvironment(key, '')
    return value if value else None


def loadBoolConfigValue(key: str, default: str, prefer: bool = False) -> bool:
    """
    Load a boolean configuration value from the environment.

    With prefer=False, anything other than an explicit false string is True.
    With prefer=True, anything other than an explicit true string is False.
    """
    value = os.environ.get(key, default).lower().strip()
    if prefer:
        return value in TRUE_STRINGS
    return value not in FALSE_STRINGS
