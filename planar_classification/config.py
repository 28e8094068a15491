"""
Planar Classification - Configuration
"""
import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

# Base paths
PACKAGE_DIR = Path(__file__).parent
BASE_DIR = PACKAGE_DIR.parent
DEFAULT_CONFIG_PATH = PACKAGE_DIR / "configs" / "default.yaml"

# Model path (TFLite flatbuffer, input [1, 2] float32 -> output [1, 1] probability)
MODEL_PATH = BASE_DIR / "models" / "planar_classifier.tflite"
CPU_NUM_THREADS = 4

# Coordinate domain of the training dataset
X_MIN = -4.5
X_MAX = 4.0
Y_MIN = -4.0
Y_MAX = 4.0
MOVE_STEP = 0.2

# Classification
PROBABILITY_THRESHOLD = 0.5
MIN_INFERENCE_TIME_MS = 1  # sub-millisecond runs are reported as 1ms

# Benchmark protocol
CPU_WARMUP_RUNS = 3
WARMUP_SETTLE_SECONDS = 0.1
BACKEND_PAUSE_SECONDS = 0.5
BASELINE_BACKEND = "CPU"

# Probe coordinates (circular pattern), shared by every backend
PROBE_POINTS = [
    (-3.0, -2.0), (-2.0, -3.0), (0.0, -3.5), (2.0, -3.0),
    (3.0, -2.0), (3.5, 0.0), (3.0, 2.0), (2.0, 3.0),
    (0.0, 3.5), (-2.0, 3.0), (-3.0, 2.0), (-3.5, 0.0),
    (-1.0, -1.0), (1.0, -1.0), (1.0, 1.0), (-1.0, 1.0),
    (0.0, 0.0), (-2.5, 0.0), (2.5, 0.0), (0.0, -2.5),
    (0.0, 2.5), (-1.5, -1.5), (1.5, -1.5), (1.5, 1.5),
    (-1.5, 1.5), (-4.0, 0.0), (3.5, 0.0), (0.0, -3.8),
]

# Server settings
HOST = "0.0.0.0"
PORT = 8000

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    'model': {
        'path': str(MODEL_PATH),
        'num_threads': CPU_NUM_THREADS,
    },
    'domain': {
        'x_min': X_MIN,
        'x_max': X_MAX,
        'y_min': Y_MIN,
        'y_max': Y_MAX,
        'move_step': MOVE_STEP,
    },
    'ground_truth': {
        'rule': 'primary',
    },
    'benchmark': {
        'cpu_warmup_runs': CPU_WARMUP_RUNS,
        'warmup_settle_seconds': WARMUP_SETTLE_SECONDS,
        'backend_pause_seconds': BACKEND_PAUSE_SECONDS,
        'baseline_backend': BASELINE_BACKEND,
    },
    'training': {
        'samples': 2000,
        'epochs': 200,
        'batch_size': 64,
        'hidden_units': [16, 8],
        'learning_rate': 0.01,
        'seed': 42,
    },
    'server': {
        'host': HOST,
        'port': PORT,
    },
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
    """
    Load a YAML config file and overlay it on the defaults.

    Sections missing from the file keep their default values; keys inside a
    section override the default keys one by one.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    with open(path, 'r') as f:
        loaded = yaml.safe_load(f) or {}

    if not isinstance(loaded, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")

    config = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values

    logger.info(f"Loaded config from {path}")
    return config
