import pathlib
from typing import List, Optional

import yaml
from pydantic import ValidationError

from sqllink.common.settings import settings

from .links import LinkConfig, LinkFileConfig
from .secrets import SecretResolver, secret_resolver


class ConfigManager:
    """
    Reads linked table declarations from YAML.

    Args:
        project_root: Directory the configured path is relative to; the
            current working directory if omitted.
        resolver: Resolves ``${env:VAR}`` references in loaded values.
    """

    def __init__(self, project_root: Optional[pathlib.Path] = None, resolver: Optional[SecretResolver] = None):
        root = project_root or pathlib.Path.cwd()
        self._links_path = root / settings.links_config_path
        self._resolver = resolver or secret_resolver

    @property
    def links_path(self) -> pathlib.Path:
        return self._links_path

    def load_links(self, path: Optional[pathlib.Path] = None) -> List[LinkConfig]:
        """
        Loads and validates link declarations.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is not valid YAML, fails validation, or
                references a secret that cannot be resolved.
        """
        target_path = path or self._links_path

        if not target_path.exists():
            raise FileNotFoundError(f"Link config not found: {target_path}")

        try:
            raw = yaml.safe_load(target_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse YAML from {target_path}: {e}")

        try:
            file_config = LinkFileConfig.model_validate(raw)
        except ValidationError as e:
            raise ValueError(f"Link Configuration Invalid: {e}")

        return self._resolver.resolve_object(file_config.links)

    def get_link(self, name: str, path: Optional[pathlib.Path] = None) -> LinkConfig:
        for link in self.load_links(path):
            if link.name == name:
                return link
        raise KeyError(f"No link named '{name}' in {path or self._links_path}")
