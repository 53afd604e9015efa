"""
Parser for the client's YAML configuration file.
"""
import logging
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import dotenv_values

from ..MODELS.client_config import ClientConfig
from ..UTILS.string_interpolation import EnvironmentInterpolator

logger = logging.getLogger(__name__)

# Environment variables overriding file values, e.g. DRC_POLL_INTERVAL=0.1
ENV_PREFIX = "DRC_"

class ConfigParser:
    """
    Builds a ClientConfig from defaults, an optional YAML file and the environment,
    later sources overriding earlier ones.

    Example file::

        base_url: ${DOCKER_HOST:-unix:///var/run/docker.sock}
        timeout: 120
        poll_interval: 0.25
        layer_limit: 100
    """
    def __init__(self, context: Optional[Dict[str, str]] = None, env_file: Optional[str] = None):
        """
        Initializes the parser with an optional environment context for interpolation.

        :param context: Variables for interpolation and overrides. Defaults to the process environment.
        :param env_file: Optional dotenv file merged under the context.
        """
        self.context: Dict[str, str] = {}
        if env_file:
            self.context.update(
                {k: v for k, v in dotenv_values(env_file).items() if v is not None}
            )
        self.context.update(context if context is not None else dict(os.environ))

    def parse(self, config_path: Optional[str] = None) -> ClientConfig:
        """
        Parses a configuration file from a path. A missing or unset path yields
        the defaults plus environment overrides.

        :param config_path: Path to the YAML file.
        :return: Parsed configuration.
        """
        if config_path and os.path.exists(config_path):
            with open(config_path, 'r') as f:
                return self.parse_from_string(f.read())
        if config_path:
            logger.debug(f"Config file {config_path} not found, using defaults")
        return self._build({})

    def parse_from_string(self, content: str) -> ClientConfig:
        """
        Parses a configuration from a YAML string.

        :param content: YAML content.
        :return: Parsed configuration.
        :raises KeyError: If a ${VAR} without default is not set.
        :raises pydantic.ValidationError: If a value is invalid.
        """
        content = EnvironmentInterpolator.interpolate(content, self.context)
        data = yaml.safe_load(content) or {}
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a mapping")
        return self._build(data)

    def _build(self, data: Dict[str, Any]) -> ClientConfig:
        merged = dict(data)
        for field in ClientConfig.model_fields:
            env_key = f"{ENV_PREFIX}{field.upper()}"
            if env_key in self.context:
                merged[field] = self.context[env_key]
        # Empty strings from interpolation mean "unset"
        merged = {k: v for k, v in merged.items() if v != ''}
        return ClientConfig(**merged)
