"""
Configuration management for the register auditing pipeline.

This module provides utilities for loading, validating, and accessing
configuration parameters from YAML files. Configuration objects are
built once and passed explicitly to the classifier and the scanner.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import yaml

from sigaudit.errors import ConfigurationError


@dataclass
class ScanConfig:
    """Configuration for register scanning."""
    columns: int = 4
    normalized_width: Optional[int] = None
    signature_ratio_threshold: float = 0.004
    signature_cell_margin: int = 15
    noise_threshold: int = 8


@dataclass
class SignatureConfig:
    """Configuration for signature preprocessing and feature extraction."""
    normalized_width: int = 300
    thinning_method: str = "zhang_suen"
    include_geometric_centers: bool = True


@dataclass
class ClassifierConfig:
    """
    Configuration for per-identity classifiers.

    Attributes:
        networks_dir: Directory holding one artifact per identity
        name_template: Artifact file name template; ``{NAME}`` and ``{ID}``
            are substituted with the sanitized identity fields
        extension: Artifact file extension
        hidden_layers: Width of each hidden layer
        learning_rate: Backpropagation learning rate
        momentum: Backpropagation momentum
        max_iterations: Number of training epochs
        random_seed: Seed for weight initialization
    """
    networks_dir: str = "networks"
    name_template: str = "{NAME}_{ID}"
    extension: str = ".pt"
    hidden_layers: List[int] = field(default_factory=lambda: [10])
    learning_rate: float = 0.01
    momentum: float = 0.01
    max_iterations: int = 1000
    random_seed: Optional[int] = 42


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    log_dir: str = "logs"
    save_results: bool = True


@dataclass
class Config:
    """
    Main configuration container for the register auditing pipeline.

    Attributes:
        scan: Register scanning settings
        signature: Signature preprocessing settings
        classifier: Classifier training and artifact settings
        logging: Logging configuration
        extra: Remaining, section-less configuration values
    """
    scan: ScanConfig = field(default_factory=ScanConfig)
    signature: SignatureConfig = field(default_factory=SignatureConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extra: Dict[str, Any] = field(default_factory=dict)


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        Dictionary containing the configuration

    Raises:
        FileNotFoundError: If the configuration file does not exist
        yaml.YAMLError: If the YAML file is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    The override dictionary values take precedence over base values.

    Args:
        base: Base configuration dictionary
        override: Override configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def _build_section(section_cls, values: Dict[str, Any], section_name: str):
    """Instantiate a config dataclass, rejecting unknown keys."""
    known = set(section_cls.__dataclass_fields__)
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in '{section_name}' section: {sorted(unknown)}"
        )
    return section_cls(**values)


def config_from_dict(config_dict: Dict[str, Any]) -> Config:
    """
    Build a Config object from a plain dictionary.

    Args:
        config_dict: Dictionary with optional 'scan', 'signature',
            'classifier' and 'logging' sections

    Returns:
        Config object
    """
    config_dict = dict(config_dict)

    scan_dict = config_dict.pop('scan', None) or {}
    signature_dict = config_dict.pop('signature', None) or {}
    classifier_dict = config_dict.pop('classifier', None) or {}
    logging_dict = config_dict.pop('logging', None) or {}

    classifier_config = _build_section(ClassifierConfig, classifier_dict, 'classifier')
    if not classifier_config.hidden_layers:
        raise ConfigurationError("Length of hidden layers cannot be zero")

    return Config(
        scan=_build_section(ScanConfig, scan_dict, 'scan'),
        signature=_build_section(SignatureConfig, signature_dict, 'signature'),
        classifier=classifier_config,
        logging=_build_section(LoggingConfig, logging_dict, 'logging'),
        extra=config_dict
    )


def load_config(
    config_path: Union[str, Path],
    base_config_path: Optional[Union[str, Path]] = None
) -> Config:
    """
    Load configuration from YAML files.

    Optionally merges with a base configuration file.

    Args:
        config_path: Path to the main configuration file
        base_config_path: Optional path to base configuration to merge with

    Returns:
        Config object with loaded settings
    """
    config_dict = load_yaml(config_path)

    if base_config_path is not None:
        base_dict = load_yaml(base_config_path)
        config_dict = merge_configs(base_dict, config_dict)

    return config_from_dict(config_dict)


def get_extra_config(config: Config, key: str, default: Any = None) -> Any:
    """
    Get a section-less configuration value.

    Args:
        config: Configuration object
        key: Dot-separated key path (e.g., 'experiment.output_dir')
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    keys = key.split('.')
    value = config.extra

    for k in keys:
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default

    return value


# Default configuration instance
DEFAULT_CONFIG = Config()
