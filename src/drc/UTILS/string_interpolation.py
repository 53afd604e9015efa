"""
Utilities for string interpolation using environment variables.
"""
import re
from typing import Dict

class EnvironmentInterpolator:
    """
    Utility for interpolating environment variables in strings.
    Supports ${VAR}, ${VAR:-default} and ${VAR:+value}.
    """
    # Group 1: VAR name, group 2: '-' or '+', group 3: default or value
    PATTERN = re.compile(r'\$\{([^}:]+)(?::(-|\+)([^}]*))?\}')

    @classmethod
    def interpolate(cls, template: str, context: Dict[str, str]) -> str:
        """
        Interpolates environment variables in the template string using the provided context.

        :param template: The string containing ${VAR} placeholders.
        :param context: The environment variables context.
        :return: The interpolated string.
        :raises KeyError: If a plain ${VAR} is not found in the context.
        """
        def replace(match):
            var_name = match.group(1)
            modifier = match.group(2)
            alt_value = match.group(3)

            value = context.get(var_name)

            if modifier == '-':
                # unset or empty -> default
                return value if value else alt_value
            if modifier == '+':
                # set and non-empty -> value, else empty
                return alt_value if value else ''
            if value is None:
                raise KeyError(f"Variable {var_name} not found in context")
            return value

        return cls.PATTERN.sub(replace, template)
