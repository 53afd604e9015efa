"""
Parsers for container environment files.
"""
from typing import Dict
from dotenv import dotenv_values

class EnvParser:
    """
    Parser for .env files handed to containers.
    """
    @staticmethod
    def parse(env_path: str) -> Dict[str, str]:
        """
        Parses an .env file from a path.

        Args:
            env_path (str): Path to the .env file.

        Returns:
            Dict[str, str]: Environment variables; keys declared without a value are dropped.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        with open(env_path, 'r') as f:
            return EnvParser.parse_stream(f)

    @staticmethod
    def parse_stream(stream) -> Dict[str, str]:
        """
        Parses environment variables from an open text stream.
        Handles quotes, comments, exports and escaped characters.
        """
        values = dotenv_values(stream=stream, interpolate=False)
        return {key: value for key, value in values.items() if value is not None}
