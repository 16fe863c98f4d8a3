"""YAML configuration for the exporter: defaults, ${ENV} substitution, validation and CLI overrides."""

import copy
import os
import re
from typing import Any, Dict
from urllib.parse import urlparse

import yaml

from models import ExportFormat

DEFAULT_CONFIG: Dict[str, Any] = {
    'environment': 'production',
    'source': {
        'mode': 'file',
        'dump_path': './dump',
    },
    'storage': {
        'mode': 'local',
        'path': './dump/blobs',
    },
    'export': {
        'format': 'json',
        'output_path': './export.zip',
        'collections': [],
        'pretty_json': False,
        'frontmatter': False,
        'progress_bars': False,
        'attachments': {
            'max_workers': 10,
        },
    },
    'advanced': {
        'request_timeout': 30,
        'max_retries': 3,
        'rate_limit': 0.0,
        'verify_ssl': True,
    },
    'logging': {
        'level': None,
        'file': None,
    },
}

ENVIRONMENTS = ('production', 'development', 'test')
BOOLEAN_FIELDS = ('export.pretty_json', 'export.frontmatter', 'export.progress_bars', 'advanced.verify_ssl')

ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')


def substitute_env_vars(data: Any) -> Any:
    """
    Replace ${NAME} references in every string of a parsed YAML document.

    References to unset variables are kept verbatim so validation can point
    at them.
    """
    if isinstance(data, dict):
        return {key: substitute_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [substitute_env_vars(item) for item in data]
    if isinstance(data, str):
        return ENV_VAR_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(0)), data)
    return data


class ConfigLoader:
    """Loads, completes and validates exporter configuration."""

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Read a YAML configuration file.

        Environment references are substituted and anything the file leaves
        out is taken from DEFAULT_CONFIG.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the document is not a mapping
            yaml.YAMLError: If the file is not valid YAML
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"{config_path} must contain a mapping at the top level")

        return cls.with_defaults(substitute_env_vars(data))

    @classmethod
    def with_defaults(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge a configuration over DEFAULT_CONFIG."""
        return _deep_merge(copy.deepcopy(DEFAULT_CONFIG), config)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Check a complete configuration.

        Raises:
            ValueError: Naming the first offending dotted key
        """
        if get_nested(config, 'environment', 'production') not in ENVIRONMENTS:
            raise ValueError(f"environment must be one of {list(ENVIRONMENTS)}")

        cls._validate_source(config)
        cls._validate_storage(config)
        cls._validate_export(config)
        cls._validate_advanced(config)

    @classmethod
    def _validate_source(cls, config: Dict[str, Any]) -> None:
        mode = get_nested(config, 'source.mode', 'file')
        if mode == 'file':
            _require(config, 'source.dump_path')
            dump_path = get_nested(config, 'source.dump_path')
            if not os.path.isdir(dump_path):
                raise ValueError(f"source.dump_path '{dump_path}' is not a valid directory")
        elif mode == 'api':
            _require(config, 'source.base_url')
            _require(config, 'source.api_token')
            _require_http_url(config, 'source.base_url')
        else:
            raise ValueError(f"source.mode must be 'file' or 'api', got {mode!r}")

    @classmethod
    def _validate_storage(cls, config: Dict[str, Any]) -> None:
        mode = get_nested(config, 'storage.mode', 'local')
        if mode == 'local':
            _require(config, 'storage.path')
        elif mode == 'http':
            _require(config, 'storage.base_url')
            _require_http_url(config, 'storage.base_url')
        else:
            raise ValueError(f"storage.mode must be 'local' or 'http', got {mode!r}")

    @classmethod
    def _validate_export(cls, config: Dict[str, Any]) -> None:
        export_format = get_nested(config, 'export.format', 'json')
        if export_format not in [f.value for f in ExportFormat]:
            raise ValueError(
                f"export.format must be one of {[f.value for f in ExportFormat]}, got {export_format!r}"
            )

        _require(config, 'export.output_path')
        output_path = get_nested(config, 'export.output_path')
        if os.path.isdir(output_path):
            raise ValueError(f"export.output_path '{output_path}' is a directory")

        if not isinstance(get_nested(config, 'export.collections', []), list):
            raise ValueError("export.collections must be a list of collection ids")

        max_workers = get_nested(config, 'export.attachments.max_workers', 10)
        if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
            raise ValueError("export.attachments.max_workers must be a positive integer")

        for field in BOOLEAN_FIELDS:
            value = get_nested(config, field)
            if value is not None and not isinstance(value, bool):
                raise ValueError(f"{field} must be true or false")

    @classmethod
    def _validate_advanced(cls, config: Dict[str, Any]) -> None:
        checks = (
            ('advanced.request_timeout', 30, lambda v: v > 0, "a positive number"),
            ('advanced.max_retries', 3, lambda v: v >= 0 and float(v).is_integer(), "a non-negative integer"),
            ('advanced.rate_limit', 0.0, lambda v: v >= 0, "a non-negative number"),
        )
        for field, default, is_valid, expected in checks:
            value = get_nested(config, field, default)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not is_valid(value):
                raise ValueError(f"{field} must be {expected}")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Apply command line overrides on top of a configuration.

        Only arguments that were actually given win; the input is not modified.

        Args:
            config: Loaded configuration
            args: argparse namespace from export_cli

        Returns:
            New configuration dictionary
        """
        merged = copy.deepcopy(config)
        source = merged.setdefault('source', {})
        storage = merged.setdefault('storage', {})
        export_settings = merged.setdefault('export', {})

        def given(name):
            return getattr(args, name, None)

        if given('source_mode'):
            source['mode'] = args.source_mode
        if given('dump_path'):
            source['dump_path'] = args.dump_path
        if given('storage_path'):
            storage['mode'] = 'local'
            storage['path'] = args.storage_path

        if given('format'):
            export_settings['format'] = ExportFormat(args.format).value
        if given('output'):
            export_settings['output_path'] = args.output
        if given('collections'):
            export_settings['collections'] = [
                collection_id.strip() for collection_id in args.collections.split(',')
                if collection_id.strip()
            ]
        if given('max_workers'):
            export_settings.setdefault('attachments', {})['max_workers'] = args.max_workers

        if given('environment'):
            merged['environment'] = args.environment
        if given('log_file'):
            merged.setdefault('logging', {})['file'] = args.log_file

        return merged


def _require(config: Dict[str, Any], field: str) -> None:
    value = get_nested(config, field)
    if value is None or value == '':
        raise ValueError(f"Missing required configuration: {field}")

    if isinstance(value, str):
        unresolved = ENV_VAR_PATTERN.search(value)
        if unresolved:
            raise ValueError(
                f"{field} refers to ${{{unresolved.group(1)}}} but {unresolved.group(1)} is not set"
            )


def _require_http_url(config: Dict[str, Any], field: str) -> None:
    url = get_nested(config, field)
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https'):
        raise ValueError(f"{field} must use http or https: {url}")
    if not parsed.netloc:
        raise ValueError(f"{field} has no host: {url}")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Look up a dotted path such as "export.attachments.max_workers"."""
    value = config
    for key in path.split('.'):
        if not isinstance(value, dict) or key not in value:
            return default
        value = value[key]
    return value


__all__ = ['ConfigLoader', 'DEFAULT_CONFIG', 'get_nested', 'substitute_env_vars']
