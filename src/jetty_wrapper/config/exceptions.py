"""Configuration-related exceptions."""

from typing import Any, Dict, Optional, Sequence


class ConfigurationError(Exception):
    """The supervisor cannot tell where Jetty is or how to launch it.

    ``env_vars`` names the environment variables that would have supplied
    the missing value; they become the suggestion shown to the user.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        env_vars: Sequence[str] = (),
    ):
        self.message = message
        self.details = details or {}
        self.env_vars = tuple(env_vars)
        super().__init__(message)

    @property
    def suggestion(self) -> Optional[str]:
        if not self.env_vars:
            return None
        return "Set " + " or ".join(self.env_vars)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        rendered = ", ".join(f"{key}={value}" for key, value in sorted(self.details.items()))
        return f"{self.message} ({rendered})"
