"""
Configuration module for the globule detection pipeline.

Provides centralized defaults and config file loading/saving for:
- Fat globule detection (per-tile classification and separation)
- Tissue detection (low-resolution foreground outlines)

Usage:
    from fatseg.utils.config import load_config, parameters_from_config

    # Load config with defaults
    config = load_config('/path/to/experiment')

    # Build validated detector parameters
    params = parameters_from_config(config)

Environment Variables:
    FATSEG_OUTPUT_DIR: Default output directory
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from fatseg.utils.json_utils import NumpyEncoder as _NumpyEncoder
from fatseg.utils.logging import get_logger
from fatseg.utils.schemas import (
    HUE_MAX,
    SATURATION_MAX,
    VALUE_MAX,
    GlobuleDetectionParameters,
    TissueDetectionParameters,
)

logger = get_logger(__name__)


# Validation constraints for each config section
_VALIDATION_RULES: Dict[str, Dict[str, Any]] = {
    "processing": {
        "pixel_size_um": {"min": 0.01, "max": 100.0, "type": float},
        "tile_width": {"min": 0, "max": 65536, "type": int},
        "tile_height": {"min": 0, "max": 65536, "type": int},
        "padding": {"min": 0, "max": 4096, "type": int},
        "boundary_threshold": {"min": 0.0, "max": 1.0, "type": float},
    },
    "globule": {
        "min_isolated_elongation": {"min": -1.0, "max": 1.0, "type": float},
        "min_overlapping_elongation": {"min": -1.0, "max": 1.0, "type": float},
        "min_isolated_solidity": {"min": 0.0, "max": 1.0, "type": float},
        "min_overlapping_solidity": {"min": 0.0, "max": 1.0, "type": float},
        "min_diameter_um": {"min": 0.0, "max": 10000.0, "type": float},
        "max_diameter_um": {"min": 0.0, "max": 10000.0, "type": float},
    },
    "tissue": {
        "downsample": {"min": 1.0, "max": 1024.0, "type": float},
        "min_tissue_area_um2": {"min": 0.0, "max": 1e12, "type": float},
    },
    "hsv": {
        "hue": {"min": 0, "max": HUE_MAX, "type": int},
        "saturation": {"min": 0, "max": SATURATION_MAX, "type": int},
        "value": {"min": 0, "max": VALUE_MAX, "type": int},
    },
}


DEFAULT_PATHS = {
    "output_dir": os.getenv("FATSEG_OUTPUT_DIR", str(Path.home() / "fatseg_output")),
}


def get_output_dir() -> Path:
    """Get the default output directory (``FATSEG_OUTPUT_DIR`` or ~/fatseg_output)."""
    return Path(DEFAULT_PATHS["output_dir"])


# Detector defaults
DETECTION_DEFAULTS = {
    "globule": {
        "lower_bound": [0, 0, 200],
        "upper_bound": [HUE_MAX, 25, 255],
        "min_isolated_elongation": 0.4,
        "min_overlapping_elongation": 0.05,
        "min_isolated_solidity": 0.85,
        "min_overlapping_solidity": 0.7,
        "min_diameter_um": 5.0,
        "max_diameter_um": 100.0,
    },
    "tissue": {
        "lower_bound": [0, 0, 200],
        "upper_bound": [HUE_MAX, 10, 255],
        "downsample": 32.0,
        "min_tissue_area_um2": 5e5,
    },
}

DEFAULT_CONFIG = {
    "pixel_size_um": 0.5,
    "tile_width": 512,
    "tile_height": 512,
    "padding": 64,
    "boundary_threshold": 0.5,
    "globule": copy.deepcopy(DETECTION_DEFAULTS["globule"]),
    "tissue": copy.deepcopy(DETECTION_DEFAULTS["tissue"]),
}


def get_detection_defaults(kind: str) -> Dict[str, Any]:
    """
    Get default detection parameters for a detector.

    Args:
        kind: Detector name ('globule' or 'tissue')

    Returns:
        Dict of detection parameters, empty dict if kind not found
    """
    return copy.deepcopy(DETECTION_DEFAULTS.get(kind, {}))


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Merge override into base in place; only dict values merge key by key."""
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _deep_merge(current, value)
        else:
            base[key] = copy.deepcopy(value)


def load_config(
    experiment_dir: Union[str, Path],
    config_filename: str = "config.json"
) -> Dict[str, Any]:
    """
    Read a run's config.json on top of DEFAULT_CONFIG.

    A missing file gives the defaults.  A file that cannot be read or parsed
    is reported with a warning and also gives the defaults, so a batch over
    many slides is not stopped by one damaged run directory.

    Args:
        experiment_dir: Run directory holding the config file
        config_filename: File name inside experiment_dir

    Returns:
        Full config dict with every default key present
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    config_path = Path(experiment_dir) / config_filename
    if not config_path.exists():
        return config

    try:
        with open(config_path, 'r') as f:
            _deep_merge(config, json.load(f))
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Ignoring unreadable config {config_path}: {e}")

    return config


def save_config(
    experiment_dir: Union[str, Path],
    config: Dict[str, Any],
    config_filename: str = "config.json"
) -> Path:
    """Write config as indented JSON into experiment_dir, creating it if needed."""
    config_path = Path(experiment_dir) / config_filename
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(config, f, cls=_NumpyEncoder, indent=2)

    logger.debug(f"Saved config to {config_path}")
    return config_path


# =============================================================================
# VALIDATION
# =============================================================================

class ConfigValidationError(ValueError):
    """A config dict failed validate_config(raise_on_error=True)."""


def _is_number(value: Any) -> bool:
    # bool is an int subclass, but True is never a threshold
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_range(
    value: Any,
    key: str,
    min_val: Union[int, float],
    max_val: Union[int, float],
    expected_type: type
) -> List[str]:
    """
    Check the type and the inclusive [min_val, max_val] range of one value.

    Float settings accept ints; int settings (tile sizes, HSV channels)
    reject floats.

    Returns:
        Error messages prefixed with key, empty if the value is acceptable
    """
    if not _is_number(value) or (expected_type is int and not isinstance(value, int)):
        expected = "numeric type" if expected_type is float else expected_type.__name__
        return [f"{key}: expected {expected}, got {type(value).__name__}"]

    if not min_val <= value <= max_val:
        return [f"{key}: value {value} out of range [{min_val}, {max_val}]"]

    return []


def _validate_hsv(values: Any, key: str) -> List[str]:
    if not isinstance(values, (list, tuple)) or len(values) != 3:
        return [f"{key}: expected [hue, saturation, value] list, got {values}"]

    errors = []
    for channel, value in zip(("hue", "saturation", "value"), values):
        rule = _VALIDATION_RULES["hsv"][channel]
        errors.extend(_validate_range(
            value, f"{key}.{channel}", rule["min"], rule["max"], rule["type"]
        ))
    return errors


def _validate_section(section: Dict[str, Any], rules_key: str, prefix: str) -> List[str]:
    errors = []
    for key, rule in _VALIDATION_RULES[rules_key].items():
        if key in section:
            errors.extend(_validate_range(
                section[key], f"{prefix}{key}", rule["min"], rule["max"], rule["type"]
            ))
    for bound in ("lower_bound", "upper_bound"):
        if bound in section:
            errors.extend(_validate_hsv(section[bound], f"{prefix}{bound}"))
    return errors


def validate_config(
    config: Optional[Dict[str, Any]] = None,
    raise_on_error: bool = False
) -> Dict[str, Union[bool, List[str]]]:
    """
    Validate a configuration dictionary against expected types and ranges.

    Args:
        config: Config dict (like DEFAULT_CONFIG). If None, validates DEFAULT_CONFIG.
        raise_on_error: If True, raises ConfigValidationError when validation fails.
            If False (default), returns dict with all errors.

    Returns:
        Dict with validation results:
            - 'valid': bool, True if all validations passed
            - 'errors': List of error message strings
            - 'warnings': List of warning message strings

    Raises:
        ConfigValidationError: If raise_on_error=True and validation fails

    Example:
        >>> result = validate_config({"boundary_threshold": 1.5})
        >>> result['errors']
        ['boundary_threshold: value 1.5 out of range [0.0, 1.0]']
    """
    errors: List[str] = []
    warnings: List[str] = []

    if config is None:
        config = DEFAULT_CONFIG

    errors.extend(_validate_section(config, "processing", ""))

    globule = config.get("globule", {})
    if isinstance(globule, dict):
        errors.extend(_validate_section(globule, "globule", "globule."))
        # Cross-field checks only compare numbers; type errors are reported above
        min_diameter = globule.get("min_diameter_um")
        max_diameter = globule.get("max_diameter_um")
        if _is_number(min_diameter) and _is_number(max_diameter) and min_diameter >= max_diameter:
            errors.append("globule: min_diameter_um must be less than max_diameter_um")
        overlapping_solidity = globule.get("min_overlapping_solidity", 0)
        isolated_solidity = globule.get("min_isolated_solidity", 1)
        if (_is_number(overlapping_solidity) and _is_number(isolated_solidity)
                and overlapping_solidity > isolated_solidity):
            warnings.append(
                "globule.min_overlapping_solidity > globule.min_isolated_solidity: "
                "clusters are expected to be less solid than single globules"
            )
    else:
        errors.append(f"globule: expected dict, got {type(globule).__name__}")

    tissue = config.get("tissue", {})
    if isinstance(tissue, dict):
        errors.extend(_validate_section(tissue, "tissue", "tissue."))
    else:
        errors.append(f"tissue: expected dict, got {type(tissue).__name__}")

    result = {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
    }

    if raise_on_error and errors:
        raise ConfigValidationError(f"Configuration validation failed: {errors[0]}")

    return result


# =============================================================================
# PARAMETER CONSTRUCTION
# =============================================================================

def parameters_from_config(config: Optional[Dict[str, Any]] = None) -> GlobuleDetectionParameters:
    """
    Build validated globule detection parameters from a config dict.

    Args:
        config: Config dict as returned by load_config(). Missing keys use defaults.

    Returns:
        Frozen GlobuleDetectionParameters

    Raises:
        pydantic.ValidationError: If any value is out of range
    """
    merged = copy.deepcopy(DEFAULT_CONFIG)
    if config:
        _deep_merge(merged, config)

    return GlobuleDetectionParameters(
        pixel_size_um=merged["pixel_size_um"],
        tile_width=merged["tile_width"],
        tile_height=merged["tile_height"],
        padding=merged["padding"],
        boundary_threshold=merged["boundary_threshold"],
        **merged["globule"],
    )


def tissue_parameters_from_config(
    config: Optional[Dict[str, Any]] = None,
    pixel_size_um: Optional[float] = None,
) -> TissueDetectionParameters:
    """
    Build validated tissue detection parameters from a config dict.

    Args:
        config: Config dict as returned by load_config()
        pixel_size_um: Full-resolution pixel size; defaults to config['pixel_size_um']

    Returns:
        Frozen TissueDetectionParameters
    """
    merged = copy.deepcopy(DEFAULT_CONFIG)
    if config:
        _deep_merge(merged, config)

    if pixel_size_um is None:
        pixel_size_um = merged["pixel_size_um"]

    return TissueDetectionParameters(pixel_size_um=pixel_size_um, **merged["tissue"])
