"""Settings and endpoint list loading."""

from dataclasses import dataclass
import os
from typing import List, Mapping, Optional


class ConfigError(Exception):
    """Raised when the run cannot start because configuration is missing or invalid."""


DEFAULT_ADVISORY_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_ADVISORY_MODEL = "gpt-4o-mini"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Configuration for one run, built once at startup and passed down."""

    advisory_enabled: bool = True
    advisory_api_key: Optional[str] = None
    advisory_url: str = DEFAULT_ADVISORY_URL
    advisory_model: str = DEFAULT_ADVISORY_MODEL
    advisory_max_tokens: int = 200
    advisory_temperature: float = 0.3
    advisory_timeout: float = 15.0

    probe_connect_timeout: float = 5.0
    probe_total_timeout: float = 10.0
    workers: int = 1

    notify_method: str = "log"
    email_to: Optional[str] = None
    email_from: Optional[str] = None
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_starttls: bool = False
    smtp_timeout: float = 10.0
    webhook_url: Optional[str] = None
    webhook_timeout: float = 10.0

    endpoints_file: str = "endpoints.txt"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        ``env`` defaults to ``os.environ``; pass a dict in tests.
        """
        if env is None:
            env = os.environ

        def _str(name: str, default: Optional[str] = None) -> Optional[str]:
            value = env.get(name)
            if value is None or not value.strip():
                return default
            return value.strip()

        def _bool(name: str, default: bool) -> bool:
            raw = _str(name)
            if raw is None:
                return default
            value = raw.lower()
            if value in _TRUE:
                return True
            if value in _FALSE:
                return False
            raise ConfigError(f"{name} must be a boolean, got {raw!r}")

        def _number(name: str, default, kind):
            raw = _str(name)
            if raw is None:
                return default
            try:
                return kind(raw)
            except ValueError:
                raise ConfigError(f"{name} must be a {kind.__name__}, got {raw!r}") from None

        settings = cls(
            advisory_enabled=_bool("ADVISORY_ENABLED", True),
            advisory_api_key=_str("ADVISORY_API_KEY", _str("OPENAI_API_KEY")),
            advisory_url=_str("ADVISORY_URL", DEFAULT_ADVISORY_URL),
            advisory_model=_str("ADVISORY_MODEL", DEFAULT_ADVISORY_MODEL),
            advisory_max_tokens=_number("ADVISORY_MAX_TOKENS", 200, int),
            advisory_temperature=_number("ADVISORY_TEMPERATURE", 0.3, float),
            advisory_timeout=_number("ADVISORY_TIMEOUT", 15.0, float),
            probe_connect_timeout=_number("PROBE_CONNECT_TIMEOUT", 5.0, float),
            probe_total_timeout=_number("PROBE_TOTAL_TIMEOUT", 10.0, float),
            workers=_number("CHECK_WORKERS", 1, int),
            notify_method=(_str("NOTIFY_METHOD", "log") or "log").lower(),
            email_to=_str("ALERT_EMAIL_TO"),
            email_from=_str("ALERT_EMAIL_FROM"),
            smtp_host=_str("SMTP_HOST", "localhost"),
            smtp_port=_number("SMTP_PORT", 25, int),
            smtp_username=_str("SMTP_USERNAME"),
            smtp_password=_str("SMTP_PASSWORD"),
            smtp_starttls=_bool("SMTP_STARTTLS", False),
            smtp_timeout=_number("SMTP_TIMEOUT", 10.0, float),
            webhook_url=_str("WEBHOOK_URL"),
            webhook_timeout=_number("WEBHOOK_TIMEOUT", 10.0, float),
            endpoints_file=_str("ENDPOINTS_FILE", "endpoints.txt"),
            log_level=(_str("LOG_LEVEL", "INFO") or "INFO").upper(),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Reject combinations that would make every probe misbehave."""
        if self.probe_connect_timeout <= 0 or self.probe_total_timeout <= 0:
            raise ConfigError("probe timeouts must be positive")
        if self.probe_connect_timeout >= self.probe_total_timeout:
            raise ConfigError(
                "PROBE_CONNECT_TIMEOUT must be smaller than PROBE_TOTAL_TIMEOUT"
            )
        if self.workers < 1:
            raise ConfigError("CHECK_WORKERS must be at least 1")
        if self.notify_method not in ("log", "smtp", "webhook"):
            raise ConfigError(f"unknown NOTIFY_METHOD {self.notify_method!r}")
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"unknown LOG_LEVEL {self.log_level!r}")


def parse_endpoints(lines) -> List[str]:
    """Return the URLs from ``lines``, skipping blanks and ``#`` comments."""
    endpoints = []
    for line in lines:
        url = line.strip()
        if not url or url.startswith("#"):
            continue
        endpoints.append(url)
    return endpoints


def load_endpoints(path: str) -> List[str]:
    """Read the endpoint list file, one URL per line."""
    try:
        with open(path, encoding="utf-8") as fh:
            return parse_endpoints(fh)
    except FileNotFoundError:
        raise ConfigError(f"endpoint list not found: {path}") from None
    except OSError as exc:
        raise ConfigError(f"cannot read endpoint list {path}: {exc}") from None
