import logging
import os
import yaml

from settings_schema import ConfigurationError, ThresholdSettings, validate_settings

APP_VERSION = "1.0.0"
SETTINGS_ENV = "LIFTLENS_SETTINGS"

logger = logging.getLogger(__name__)


class YamlConfig:
    """Load and save settings to a YAML file."""

    def __init__(self, path: str = "settings.yaml") -> None:
        self.path = path

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"invalid YAML in {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{self.path} must contain a mapping")
        return data

    def save(self, data: dict) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(dict(data), f)


def load_thresholds(path: str | None = None) -> ThresholdSettings:
    """Read the ``thresholds`` section of ``path`` and validate it."""
    if path is None:
        return ThresholdSettings()
    data = YamlConfig(path).load()
    section = data.get("thresholds", {})
    if section is not None and not isinstance(section, dict):
        raise ConfigurationError("thresholds must be a mapping")
    thresholds = validate_settings(section)
    logger.info("Loaded analysis thresholds from %s", path)
    return thresholds


_thresholds: ThresholdSettings | None = None


def configure(path: str | None = None) -> ThresholdSettings:
    """Initialise the process-wide thresholds, once, at start-up."""
    global _thresholds
    _thresholds = load_thresholds(path)
    return _thresholds


def get_thresholds() -> ThresholdSettings:
    """Return the process-wide thresholds, loading them on first use."""
    if _thresholds is None:
        return configure(os.environ.get(SETTINGS_ENV))
    return _thresholds
