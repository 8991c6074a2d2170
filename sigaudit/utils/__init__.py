"""
Utility modules for the register auditing pipeline.
"""

from .config import (
    Config,
    ScanConfig,
    SignatureConfig,
    ClassifierConfig,
    LoggingConfig,
    config_from_dict,
    load_config,
    load_yaml,
    merge_configs,
    get_extra_config,
    DEFAULT_CONFIG
)
from .logger import (
    AuditLogger,
    ProgressTracker,
    get_logger
)
from .io import (
    load_image,
    save_image,
    discover_images,
    read_text,
    write_text,
    load_json,
    save_json,
    sanitize_name,
    sanitize_id,
    SUPPORTED_EXTENSIONS
)

__all__ = [
    # Config
    'Config',
    'ScanConfig',
    'SignatureConfig',
    'ClassifierConfig',
    'LoggingConfig',
    'config_from_dict',
    'load_config',
    'load_yaml',
    'merge_configs',
    'get_extra_config',
    'DEFAULT_CONFIG',
    # Logger
    'AuditLogger',
    'ProgressTracker',
    'get_logger',
    # IO
    'load_image',
    'save_image',
    'discover_images',
    'read_text',
    'write_text',
    'load_json',
    'save_json',
    'sanitize_name',
    'sanitize_id',
    'SUPPORTED_EXTENSIONS',
]
