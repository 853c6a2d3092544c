"""JSON helpers for configs and exported globule measurements.

Configs and polygon_to_dict() results carry numpy scalars and arrays, and
shape metrics can be NaN for broken inputs; strict JSON has no NaN token, so
both are mapped to plain Python values (NaN/Inf become null).
"""

import json
import math

import numpy as np


def _finite_or_none(value: float):
    return None if math.isnan(value) or math.isinf(value) else value


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder for numpy scalars and arrays.

    Usage::

        json.dump(config, f, cls=NumpyEncoder, indent=2)
    """

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.bool_):
            return bool(obj)
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return _finite_or_none(float(obj))
        return super().default(obj)


def sanitize_for_json(obj):
    """Return a copy of a nested structure that strict JSON accepts.

    The encoder's default() never sees Python floats, so NaN/Inf hidden in
    lists and dicts have to be replaced by walking the structure.  Tuples
    become lists and numpy values become native types.
    """
    if isinstance(obj, dict):
        return {key: sanitize_for_json(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize_for_json(value) for value in obj]
    if isinstance(obj, np.ndarray):
        return sanitize_for_json(obj.tolist())
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, (float, np.floating)):
        return _finite_or_none(float(obj))
    return obj
