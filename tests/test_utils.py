"""
Unit tests for core utility modules in fatseg.

Tests the following modules:
- fatseg/utils/config.py - Configuration management and validation
- fatseg/utils/schemas.py - Detection parameter models
- fatseg/utils/logging.py - Logging helpers
- fatseg/utils/json_utils.py - JSON encoding helpers

Run with: pytest tests/test_utils.py -v
"""

import sys
import os
import logging
from pathlib import Path
from unittest import TestCase
from unittest.mock import patch
import tempfile
import json

import numpy as np
from pydantic import ValidationError

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


# =============================================================================
# CONFIG MODULE TESTS
# =============================================================================

class TestConfigValidation(TestCase):
    """Tests for validate_config() function in config module."""

    def test_validate_config_default_passes(self):
        """Test that default config passes validation."""
        from fatseg.utils.config import validate_config

        result = validate_config()

        self.assertTrue(result['valid'])
        self.assertEqual(result['errors'], [])
        self.assertEqual(result['warnings'], [])

    def test_validate_config_invalid_boundary_threshold(self):
        """Test that boundary_threshold outside [0, 1] fails validation."""
        from fatseg.utils.config import validate_config

        result = validate_config(config={'boundary_threshold': 1.5})

        self.assertFalse(result['valid'])
        self.assertIn('boundary_threshold: value 1.5 out of range [0.0, 1.0]', result['errors'])

    def test_validate_config_invalid_tile_width_type(self):
        """Test that a float tile width fails validation."""
        from fatseg.utils.config import validate_config

        result = validate_config(config={'tile_width': 512.5})

        self.assertFalse(result['valid'])
        self.assertTrue(any('tile_width' in e for e in result['errors']))

    def test_validate_config_rejects_bool(self):
        """Test that booleans are not accepted as numbers."""
        from fatseg.utils.config import validate_config

        result = validate_config(config={'padding': True})

        self.assertFalse(result['valid'])

    def test_validate_config_invalid_solidity(self):
        """Test that a solidity floor above 1 fails validation."""
        from fatseg.utils.config import validate_config

        result = validate_config(config={'globule': {'min_isolated_solidity': 1.2}})

        self.assertFalse(result['valid'])
        self.assertTrue(any('globule.min_isolated_solidity' in e for e in result['errors']))

    def test_validate_config_non_numeric_thresholds(self):
        """Test that string thresholds are reported, not compared."""
        from fatseg.utils.config import validate_config

        result = validate_config(config={'globule': {
            'min_overlapping_solidity': '0.7',
            'min_diameter_um': '5',
            'max_diameter_um': 100.0,
        }})

        self.assertFalse(result['valid'])
        self.assertTrue(any('globule.min_overlapping_solidity' in e for e in result['errors']))
        self.assertTrue(any('globule.min_diameter_um' in e for e in result['errors']))
        self.assertEqual(result['warnings'], [])

    def test_validate_config_invalid_hsv(self):
        """Test that invalid HSV bounds fail validation."""
        from fatseg.utils.config import validate_config

        # Wrong length
        result = validate_config(config={'globule': {'lower_bound': [0, 0]}})
        self.assertFalse(result['valid'])

        # Hue above 180
        result = validate_config(config={'tissue': {'upper_bound': [181, 10, 255]}})
        self.assertFalse(result['valid'])
        self.assertTrue(any('tissue.upper_bound.hue' in e for e in result['errors']))

    def test_validate_config_diameter_order(self):
        """Test that min_diameter_um >= max_diameter_um fails validation."""
        from fatseg.utils.config import validate_config

        result = validate_config(config={'globule': {'min_diameter_um': 50, 'max_diameter_um': 10}})

        self.assertFalse(result['valid'])
        self.assertTrue(any('less than' in e for e in result['errors']))

    def test_validate_config_section_not_dict(self):
        """Test that a non-dict detector section fails validation."""
        from fatseg.utils.config import validate_config

        result = validate_config(config={'tissue': [1, 2, 3]})

        self.assertFalse(result['valid'])

    def test_validate_config_raise_on_error(self):
        """Test that raise_on_error=True raises exception."""
        from fatseg.utils.config import validate_config, ConfigValidationError

        with self.assertRaises(ConfigValidationError):
            validate_config(config={'pixel_size_um': -1.0}, raise_on_error=True)

    def test_validate_config_returns_warnings(self):
        """Test that validation returns warnings for logical issues."""
        from fatseg.utils.config import validate_config

        result = validate_config(config={'globule': {
            'min_isolated_solidity': 0.6,
            'min_overlapping_solidity': 0.8,
        }})

        # Should still be valid but have warnings
        self.assertTrue(result['valid'])
        self.assertTrue(len(result['warnings']) > 0)


class TestConfigDetectionDefaults(TestCase):
    """Tests for get_detection_defaults() function in config module."""

    def test_get_detection_defaults_globule(self):
        """Test detection defaults for the globule detector."""
        from fatseg.utils.config import get_detection_defaults

        result = get_detection_defaults('globule')

        self.assertEqual(result['lower_bound'], [0, 0, 200])
        self.assertEqual(result['upper_bound'], [180, 25, 255])
        self.assertEqual(result['min_isolated_elongation'], 0.4)
        self.assertEqual(result['min_overlapping_elongation'], 0.05)
        self.assertEqual(result['min_isolated_solidity'], 0.85)
        self.assertEqual(result['min_overlapping_solidity'], 0.7)
        self.assertEqual(result['min_diameter_um'], 5.0)
        self.assertEqual(result['max_diameter_um'], 100.0)

    def test_get_detection_defaults_tissue(self):
        """Test detection defaults for the tissue detector."""
        from fatseg.utils.config import get_detection_defaults

        result = get_detection_defaults('tissue')

        self.assertEqual(result['upper_bound'], [180, 10, 255])
        self.assertEqual(result['downsample'], 32.0)
        self.assertEqual(result['min_tissue_area_um2'], 5e5)

    def test_get_detection_defaults_unknown_returns_empty(self):
        """Test that an unknown detector returns an empty dict."""
        from fatseg.utils.config import get_detection_defaults

        self.assertEqual(get_detection_defaults('vessel'), {})

    def test_get_detection_defaults_returns_copy(self):
        """Test that modifying the result doesn't affect the defaults."""
        from fatseg.utils.config import get_detection_defaults, DETECTION_DEFAULTS

        result = get_detection_defaults('globule')
        result['lower_bound'][2] = 0

        self.assertEqual(DETECTION_DEFAULTS['globule']['lower_bound'], [0, 0, 200])


class TestConfigLoadSave(TestCase):
    """Tests for load_config() / save_config()."""

    def test_load_config_missing_file_returns_defaults(self):
        """Test that a missing config file gives the defaults."""
        from fatseg.utils.config import load_config, DEFAULT_CONFIG

        with tempfile.TemporaryDirectory() as tmp:
            config = load_config(tmp)

        self.assertEqual(config, DEFAULT_CONFIG)
        self.assertIsNot(config, DEFAULT_CONFIG)

    def test_load_config_deep_merges(self):
        """Test that nested sections are merged key by key."""
        from fatseg.utils.config import load_config

        with tempfile.TemporaryDirectory() as tmp:
            with open(Path(tmp) / 'config.json', 'w') as f:
                json.dump({'pixel_size_um': 0.25, 'globule': {'min_diameter_um': 8}}, f)

            config = load_config(tmp)

        self.assertEqual(config['pixel_size_um'], 0.25)
        self.assertEqual(config['globule']['min_diameter_um'], 8)
        self.assertEqual(config['globule']['max_diameter_um'], 100.0)
        self.assertEqual(config['tile_width'], 512)

    def test_load_config_invalid_json_returns_defaults(self):
        """Test that an unreadable file is logged and defaults are returned."""
        from fatseg.utils.config import load_config, DEFAULT_CONFIG

        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / 'config.json').write_text('{not json')

            with self.assertLogs('fatseg.utils.config', level='WARNING'):
                config = load_config(tmp)

        self.assertEqual(config, DEFAULT_CONFIG)

    def test_save_and_reload(self):
        """Test that a saved config with numpy values loads back."""
        from fatseg.utils.config import load_config, save_config

        with tempfile.TemporaryDirectory() as tmp:
            path = save_config(Path(tmp) / 'run', {
                'pixel_size_um': np.float32(0.5),
                'tile_width': np.int64(1024),
                'globule': {'lower_bound': np.array([0, 0, 210])},
            })

            self.assertTrue(path.exists())
            config = load_config(Path(tmp) / 'run')

        self.assertEqual(config['tile_width'], 1024)
        self.assertEqual(config['globule']['lower_bound'], [0, 0, 210])

    def test_get_output_dir_from_environment(self):
        """Test that FATSEG_OUTPUT_DIR is read when the module is loaded."""
        import importlib
        import fatseg.utils.config as config_module

        with patch.dict(os.environ, {'FATSEG_OUTPUT_DIR': '/tmp/fatseg_env_test'}):
            reloaded = importlib.reload(config_module)
            self.assertEqual(reloaded.get_output_dir(), Path('/tmp/fatseg_env_test'))

        importlib.reload(config_module)


class TestParametersFromConfig(TestCase):
    """Tests for parameters_from_config() / tissue_parameters_from_config()."""

    def test_defaults(self):
        """Test that the default config builds default parameters."""
        from fatseg.utils.config import parameters_from_config
        from fatseg.utils.schemas import GlobuleDetectionParameters

        self.assertEqual(parameters_from_config(), GlobuleDetectionParameters())

    def test_overrides(self):
        """Test that config values reach the parameter model."""
        from fatseg.utils.config import parameters_from_config

        params = parameters_from_config({
            'pixel_size_um': 0.25,
            'padding': 32,
            'globule': {'upper_bound': [180, 40, 255], 'max_diameter_um': 60},
        })

        self.assertEqual(params.pixel_size_um, 0.25)
        self.assertEqual(params.padding, 32)
        self.assertEqual(params.upper_bound.saturation, 40)
        self.assertEqual(params.max_diameter_um, 60)

    def test_invalid_values_raise(self):
        """Test that out-of-range values raise a pydantic ValidationError."""
        from fatseg.utils.config import parameters_from_config

        with self.assertRaises(ValidationError):
            parameters_from_config({'globule': {'min_isolated_solidity': 1.5}})

    def test_tissue_parameters(self):
        """Test tissue parameters with an explicit pixel size."""
        from fatseg.utils.config import tissue_parameters_from_config

        params = tissue_parameters_from_config(pixel_size_um=0.22)

        self.assertEqual(params.downsample, 32.0)
        self.assertAlmostEqual(params.effective_pixel_size_um, 0.22 * 32)


# =============================================================================
# SCHEMA TESTS
# =============================================================================

class TestHsvBounds(TestCase):
    """Tests for the HsvBounds model."""

    def test_from_list(self):
        from fatseg.utils.schemas import HsvBounds

        bound = HsvBounds.model_validate([10, 20, 30])

        self.assertEqual(bound.to_tuple(), (10, 20, 30))
        self.assertEqual(bound.to_list(), [10, 20, 30])

    def test_hue_range_inclusive(self):
        from fatseg.utils.schemas import HsvBounds

        self.assertEqual(HsvBounds(hue=180, saturation=0, value=0).hue, 180)

        with self.assertRaises(ValidationError) as ctx:
            HsvBounds(hue=181, saturation=0, value=0)
        self.assertIn('The supplied hue (181) is not within the required range ([0, 180])', str(ctx.exception))

    def test_saturation_and_value_range(self):
        from fatseg.utils.schemas import HsvBounds

        with self.assertRaises(ValidationError):
            HsvBounds(hue=0, saturation=256, value=0)
        with self.assertRaises(ValidationError):
            HsvBounds(hue=0, saturation=0, value=-1)

    def test_wrong_length(self):
        from fatseg.utils.schemas import HsvBounds

        with self.assertRaises(ValidationError):
            HsvBounds.model_validate([1, 2])

    def test_frozen(self):
        from fatseg.utils.schemas import HsvBounds

        bound = HsvBounds(hue=0, saturation=0, value=0)
        with self.assertRaises(ValidationError):
            bound.hue = 5


class TestGlobuleDetectionParameters(TestCase):
    """Tests for the GlobuleDetectionParameters model."""

    def test_defaults(self):
        from fatseg.utils.schemas import GlobuleDetectionParameters

        params = GlobuleDetectionParameters()

        self.assertEqual(params.pixel_size_um, 0.5)
        self.assertEqual(params.lower_bound.to_tuple(), (0, 0, 200))
        self.assertEqual(params.upper_bound.to_tuple(), (180, 25, 255))
        self.assertEqual(params.tile_width, 512)
        self.assertEqual(params.tile_height, 512)
        self.assertEqual(params.padding, 64)
        self.assertEqual(params.boundary_threshold, 0.5)

    def test_bounds_from_lists(self):
        from fatseg.utils.schemas import GlobuleDetectionParameters

        params = GlobuleDetectionParameters(lower_bound=[0, 0, 180], upper_bound=[180, 30, 255])
        self.assertEqual(params.lower_bound.value, 180)

    def test_lower_above_upper(self):
        from fatseg.utils.schemas import GlobuleDetectionParameters

        with self.assertRaises(ValidationError) as ctx:
            GlobuleDetectionParameters(lower_bound=[0, 50, 200], upper_bound=[180, 25, 255])
        self.assertIn('lower_bound.saturation', str(ctx.exception))

    def test_diameter_order(self):
        from fatseg.utils.schemas import GlobuleDetectionParameters

        with self.assertRaises(ValidationError):
            GlobuleDetectionParameters(min_diameter_um=100, max_diameter_um=100)

    def test_field_ranges(self):
        from fatseg.utils.schemas import GlobuleDetectionParameters

        for kwargs in (
            {'pixel_size_um': 0},
            {'min_isolated_solidity': 1.1},
            {'min_overlapping_elongation': -2},
            {'tile_width': -1},
            {'padding': -5},
            {'boundary_threshold': 1.5},
        ):
            with self.assertRaises(ValidationError, msg=str(kwargs)):
                GlobuleDetectionParameters(**kwargs)

    def test_unknown_field_rejected(self):
        from fatseg.utils.schemas import GlobuleDetectionParameters

        with self.assertRaises(ValidationError):
            GlobuleDetectionParameters(min_area=5)

    def test_frozen(self):
        from fatseg.utils.schemas import GlobuleDetectionParameters

        params = GlobuleDetectionParameters()
        with self.assertRaises(ValidationError):
            params.pixel_size_um = 1.0


class TestTissueDetectionParameters(TestCase):
    """Tests for the TissueDetectionParameters model."""

    def test_defaults(self):
        from fatseg.utils.schemas import TissueDetectionParameters

        params = TissueDetectionParameters()

        self.assertEqual(params.upper_bound.to_tuple(), (180, 10, 255))
        self.assertEqual(params.min_tissue_area_um2, 5e5)

    def test_invalid_downsample(self):
        from fatseg.utils.schemas import TissueDetectionParameters

        with self.assertRaises(ValidationError):
            TissueDetectionParameters(downsample=0)


# =============================================================================
# LOGGING TESTS
# =============================================================================

class TestLogging(TestCase):
    """Tests for fatseg.utils.logging helpers."""

    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            if isinstance(handler, logging.FileHandler):
                handler.close()
                root.removeHandler(handler)

    def test_get_logger_cached(self):
        from fatseg.utils.logging import get_logger

        self.assertIs(get_logger('fatseg.test'), get_logger('fatseg.test'))

    def test_setup_logging_log_dir(self):
        from fatseg.utils.logging import setup_logging, get_logger

        with tempfile.TemporaryDirectory() as tmp:
            setup_logging(level='DEBUG', log_dir=tmp, console=False)
            get_logger('fatseg.test').debug('hello file')
            for handler in logging.getLogger().handlers:
                handler.flush()

            logs = list(Path(tmp).glob('fatseg_*.log'))
            self.assertEqual(len(logs), 1)
            self.assertIn('hello file', logs[0].read_text())
            self.tearDown()

    def test_colored_formatter_keeps_record(self):
        from fatseg.utils.logging import ColoredFormatter, DEFAULT_FORMAT

        record = logging.LogRecord('x', logging.WARNING, __file__, 1, 'msg', None, None)
        text = ColoredFormatter(DEFAULT_FORMAT).format(record)

        self.assertIn('\033[33m', text)
        self.assertEqual(record.levelname, 'WARNING')

    def test_processing_timer_logs(self):
        from fatseg.utils.logging import ProcessingTimer, get_logger

        logger = get_logger('fatseg.test.timer')
        with self.assertLogs('fatseg.test.timer', level='INFO') as logs:
            with ProcessingTimer(logger, 'unit of work'):
                pass

        self.assertTrue(any('Starting: unit of work' in line for line in logs.output))
        self.assertTrue(any('Completed: unit of work' in line for line in logs.output))

    def test_processing_timer_logs_failure(self):
        from fatseg.utils.logging import ProcessingTimer, get_logger

        logger = get_logger('fatseg.test.timer')
        with self.assertLogs('fatseg.test.timer', level='ERROR'):
            with self.assertRaises(RuntimeError):
                with ProcessingTimer(logger, 'failing work'):
                    raise RuntimeError('boom')

    def test_log_parameters(self):
        from fatseg.utils.logging import log_parameters, get_logger

        logger = get_logger('fatseg.test.params')
        with self.assertLogs('fatseg.test.params', level='INFO') as logs:
            log_parameters(logger, {'pixel_size_um': 0.5, 'bounds': list(range(10))})

        self.assertTrue(any('pixel_size_um: 0.5' in line for line in logs.output))
        self.assertTrue(any('[10 items]' in line for line in logs.output))


# =============================================================================
# JSON TESTS
# =============================================================================

class TestJsonUtils(TestCase):
    """Tests for NumpyEncoder / sanitize_for_json."""

    def test_numpy_encoder(self):
        from fatseg.utils.json_utils import NumpyEncoder

        data = {'a': np.int32(3), 'b': np.float64(0.5), 'c': np.array([1, 2]), 'd': np.bool_(True),
                'e': np.float32('nan')}
        self.assertEqual(json.loads(json.dumps(data, cls=NumpyEncoder)),
                         {'a': 3, 'b': 0.5, 'c': [1, 2], 'd': True, 'e': None})

    def test_sanitize_for_json(self):
        from fatseg.utils.json_utils import sanitize_for_json

        result = sanitize_for_json({'x': [float('inf'), np.float32(1.5)], 'y': (np.int64(2),)})

        self.assertEqual(result, {'x': [None, 1.5], 'y': [2]})
