"""Project configuration loader."""

from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from docwatch.config.constants import COMPONENT_CONFIG, CONFIG_FILE_NAME
from docwatch.config.schemas import ProjectConfig
from docwatch.errors import ConfigValidationError


logger = structlog.get_logger()


class ConfigLoader:
    """Loads and validates ``docwatch.yaml`` from the watched directory.

    A missing file is not an error: the defaults apply. A present but
    invalid file raises ConfigValidationError with every field error.
    """

    def __init__(self, root: Path) -> None:
        """Initialize the loader.

        Args:
            root: Directory containing the configuration file.
        """
        self._root = root
        self._validation_errors: list[dict[str, str]] = []
        self._log = logger.bind(component=COMPONENT_CONFIG)

    @property
    def config_path(self) -> Path:
        """Path where the configuration file is expected."""
        return self._root / CONFIG_FILE_NAME

    @property
    def validation_errors(self) -> list[dict[str, str]]:
        """Get validation errors if any."""
        return self._validation_errors.copy()

    def load(self) -> ProjectConfig:
        """Load and validate the project configuration.

        Returns:
            Validated ProjectConfig.

        Raises:
            ConfigValidationError: If the file is not valid YAML or fails
                schema validation.
        """
        path = self.config_path
        if not path.is_file():
            self._log.debug("config_file_absent", file_path=str(path))
            return ProjectConfig()

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            self._validation_errors.append(
                {"loc": "", "msg": str(e), "type": "yaml_parse_error"}
            )
            self._log.error(
                "config_validation_failed",
                file_path=str(path),
                errors=self._validation_errors,
            )
            raise ConfigValidationError(self._validation_errors, str(path)) from e

        try:
            config = ProjectConfig.model_validate(data)
        except ValidationError as e:
            for err in e.errors():
                self._validation_errors.append(
                    {
                        "loc": ".".join(str(loc) for loc in err["loc"]),
                        "msg": err["msg"],
                        "type": err["type"],
                    }
                )
            self._log.error(
                "config_validation_failed",
                file_path=str(path),
                validation_error_count=len(self._validation_errors),
                errors=self._validation_errors,
            )
            raise ConfigValidationError(self._validation_errors, str(path)) from e

        self._log.info(
            "config_loaded",
            file_path=str(path),
            document_count=len(config.documents),
            grammar_count=len(config.grammars),
        )
        return config
