"""
Utility modules for the globule detection pipeline.

Provides:
- Configuration management
- Logging utilities
- Parameter validation (requires pydantic)
- Binary mask cleanup
"""

from .config import (
    DEFAULT_CONFIG,
    DEFAULT_PATHS,
    DETECTION_DEFAULTS,
    ConfigValidationError,
    load_config,
    save_config,
    validate_config,
    get_output_dir,
    get_detection_defaults,
    parameters_from_config,
    tissue_parameters_from_config,
)

from .logging import (
    get_logger,
    setup_logging,
    log_parameters,
    log_processing_end,
    ProcessingTimer,
)

from .schemas import (
    HsvBounds,
    GlobuleDetectionParameters,
    TissueDetectionParameters,
)

from .mask_cleanup import (
    FOREGROUND,
    BACKGROUND,
    check_mask,
    fill_holes,
    add_border,
    remove_border,
    invert_mask,
)

from .json_utils import NumpyEncoder, sanitize_for_json

__all__ = [
    # Config
    "DEFAULT_CONFIG",
    "DEFAULT_PATHS",
    "DETECTION_DEFAULTS",
    "ConfigValidationError",
    "load_config",
    "save_config",
    "validate_config",
    "get_output_dir",
    "get_detection_defaults",
    "parameters_from_config",
    "tissue_parameters_from_config",
    # Logging
    "get_logger",
    "setup_logging",
    "log_parameters",
    "log_processing_end",
    "ProcessingTimer",
    # Schemas
    "HsvBounds",
    "GlobuleDetectionParameters",
    "TissueDetectionParameters",
    # Masks
    "FOREGROUND",
    "BACKGROUND",
    "check_mask",
    "fill_holes",
    "add_border",
    "remove_border",
    "invert_mask",
    # JSON
    "NumpyEncoder",
    "sanitize_for_json",
]
