"""
Planar Classification - Inference Backends

A backend maps a point to the probability of the Blue class. The core only
relies on `name` and `infer()`; how the probability is computed (TFLite on
CPU, an accelerator, a plain function) stays behind this contract.
"""
import logging
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Union

import numpy as np

from .config import CPU_NUM_THREADS
from .records import Point

logger = logging.getLogger(__name__)

CPU = "CPU"
GPU = "GPU"
NPU = "NPU"
BACKEND_ORDER = (CPU, GPU, NPU)

# Interactive classification with the accelerator toggle on
ACCELERATOR_PREFERENCE = (NPU, GPU, CPU)


class InferenceBackend:
    """Base class for inference providers."""

    name: str = CPU

    def infer(self, point: Point) -> float:
        raise NotImplementedError

    def close(self):
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class CallableBackend(InferenceBackend):
    """Wraps a plain function `fn(x, y) -> probability`."""

    def __init__(self, name: str, fn: Callable[[float, float], float]):
        self.name = name
        self.fn = fn

    def infer(self, point: Point) -> float:
        return float(self.fn(point.x, point.y))


class TFLiteBackend(InferenceBackend):
    """Runs a planar classifier flatbuffer with the TFLite interpreter."""

    def __init__(self, model_path: Union[str, Path], name: str = CPU,
                 num_threads: int = CPU_NUM_THREADS):
        import tensorflow as tf

        self.name = name
        self.model_path = str(model_path)
        self.interpreter = tf.lite.Interpreter(model_path=self.model_path, num_threads=num_threads)
        self.interpreter.allocate_tensors()

        self.input_details = self.interpreter.get_input_details()
        self.output_details = self.interpreter.get_output_details()

        input_shape = tuple(self.input_details[0]['shape'])
        if input_shape[-1] != 2:
            raise ValueError(f"Expected a model with 2 inputs (x, y), got shape {input_shape}")

        logger.info(f"{name} interpreter initialized ({self.model_path}, threads={num_threads})")

    def infer(self, point: Point) -> float:
        input_data = np.array([[point.x, point.y]], dtype=np.float32)
        self.interpreter.set_tensor(self.input_details[0]['index'], input_data)
        self.interpreter.invoke()
        output = self.interpreter.get_tensor(self.output_details[0]['index'])
        return float(np.ravel(output)[0])

    def close(self):
        self.interpreter = None


def timed_inference(backend: InferenceBackend, point: Point,
                    clock: Callable[[], int] = time.perf_counter_ns) -> Tuple[float, int]:
    """
    Run one inference and measure it.

    Returns (probability, elapsed milliseconds) using a nanosecond clock.
    Zero-millisecond results are floored when the record is built.
    """
    start = clock()
    probability = backend.infer(point)
    elapsed_ms = (clock() - start) // 1_000_000
    return probability, int(elapsed_ms)


def load_backends(model_path: Union[str, Path],
                  num_threads: int = CPU_NUM_THREADS) -> Dict[str, Optional[InferenceBackend]]:
    """
    Build the backend table for a model file.

    Only the CPU interpreter is created here; GPU and NPU stay unbound
    (None) unless a caller registers its own provider for them.
    """
    backends: Dict[str, Optional[InferenceBackend]] = {name: None for name in BACKEND_ORDER}

    if not Path(model_path).exists():
        logger.warning(f"No model found at {model_path}, CPU backend unavailable")
        return backends

    try:
        backends[CPU] = TFLiteBackend(model_path, name=CPU, num_threads=num_threads)
    except Exception as e:
        logger.error(f"Failed to initialize CPU interpreter: {e}")

    return backends
