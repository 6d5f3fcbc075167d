"""
Configuration file and environment handling.

A configuration file is a YAML or JSON document with two optional sections:

    render:
      num_workers: 4
      iteration_policy: additive
    view:
      center_x: -0.75
      zoom: 400
      max_iter_base: 300

``render`` maps onto :class:`RenderConfig` and ``view`` onto
:class:`ViewParams`. Environment variables override file values.
"""

import os
import json
from dataclasses import fields, asdict
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, Union, Mapping
import logging

import yaml

from ..api import RenderConfig
from ..core.parameters import ViewParams

logger = logging.getLogger(__name__)


YAML_SUFFIXES = ('.yaml', '.yml')


def detect_format(filepath: Union[str, Path]) -> str:
    """'yaml' or 'json' from the file suffix; anything else is treated as YAML."""
    return 'json' if Path(filepath).suffix.lower() == '.json' else 'yaml'


class ConfigManager:
    """Loads and saves engine and view configuration files."""

    def load_config(self, filepath: Union[str, Path]) -> Dict[str, Any]:
        """
        Load a YAML or JSON configuration file.

        Args:
            filepath: Path to the file

        Returns:
            Parsed configuration dictionary
        """
        filepath = Path(filepath)
        with open(filepath, 'r', encoding='utf-8') as f:
            try:
                if detect_format(filepath) == 'json':
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
            except (json.JSONDecodeError, yaml.YAMLError) as e:
                raise ValueError(f"Invalid configuration file {filepath}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {filepath} must contain a mapping")

        logger.info(f"Loaded configuration: {filepath}")
        return data

    def create_render_config(self, data: Mapping[str, Any]) -> RenderConfig:
        """Build a validated RenderConfig from the ``render`` section."""
        section = dict(data.get('render', {}))
        known = {f.name for f in fields(RenderConfig)}
        unknown = set(section) - known
        if unknown:
            raise ValueError(f"Unknown render configuration keys: {', '.join(sorted(unknown))}")

        config = RenderConfig(**section)
        config.validate()
        return config

    def create_view_params(self, data: Mapping[str, Any]) -> ViewParams:
        """Build a ViewParams snapshot from the ``view`` section."""
        section = dict(data.get('view', {}))
        known = {f.name for f in fields(ViewParams)}
        unknown = set(section) - known
        if unknown:
            raise ValueError(f"Unknown view configuration keys: {', '.join(sorted(unknown))}")
        return ViewParams.from_dict(section)

    def save_config(self, filepath: Union[str, Path], render_config: RenderConfig,
                    view: Optional[ViewParams] = None) -> None:
        """Write a configuration file that :meth:`load_config` reads back."""
        render_section = asdict(render_config)
        render_section['iteration_policy'] = render_config.get_policy().value
        data: Dict[str, Any] = {'render': render_section}
        if view is not None:
            data['view'] = view.to_dict()

        filepath = Path(filepath)
        with open(filepath, 'w', encoding='utf-8') as f:
            if detect_format(filepath) == 'json':
                json.dump(data, f, indent=2)
            else:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        logger.info(f"Saved configuration: {filepath}")


class EnvironmentConfig:
    """Render configuration overrides taken from environment variables."""

    PREFIX = 'FRACTAL_EXPLORER_'
    VARIABLES = {
        'WORKERS': ('num_workers', int),
        'BAND_ROWS': ('band_rows', int),
        'ITERATION_POLICY': ('iteration_policy', str),
        'FAST_BLOCK_SIZE': ('fast_block_size', int),
    }

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    def overrides(self) -> Dict[str, Any]:
        """Collect overrides present in the environment."""
        result = {}
        for suffix, (attribute, convert) in self.VARIABLES.items():
            name = self.PREFIX + suffix
            raw = self.environ.get(name)
            if raw is None or raw == '':
                continue
            try:
                result[attribute] = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {name}: {raw!r}") from e
        return result

    def apply(self, config: RenderConfig) -> RenderConfig:
        """Apply overrides to ``config`` in place and revalidate it."""
        for attribute, value in self.overrides().items():
            logger.debug(f"Environment override: {attribute}={value!r}")
            setattr(config, attribute, value)
        config.validate()
        return config


def load_config_from_args(config_file: Optional[Union[str, Path]] = None,
                          environ: Optional[Mapping[str, str]] = None) -> Tuple[RenderConfig, ViewParams]:
    """
    Resolve the engine configuration and initial view for a command.

    Args:
        config_file: Optional YAML or JSON configuration file
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Tuple of (render_config, view_params)
    """
    manager = ConfigManager()
    data: Dict[str, Any] = manager.load_config(config_file) if config_file else {}

    render_config = manager.create_render_config(data)
    view = manager.create_view_params(data)
    EnvironmentConfig(environ).apply(render_config)
    return render_config, view
