#!/usr/bin/env python3
"""
Planar Classification - Model Training Module

Trains a small MLP on points labeled by the ground-truth rule and converts
it to a TFLite flatbuffer (input [1, 2] float32, output [1, 1] probability).
"""

import os
import sys
import time
import logging
import argparse
from pathlib import Path
from typing import Sequence, Tuple

import numpy as np
from sklearn.metrics import accuracy_score
from sklearn.model_selection import train_test_split

from .backends import TFLiteBackend
from .config import load_config
from .ground_truth import GroundTruthClassifier
from .records import Point

logger = logging.getLogger(__name__)


def create_planar_dataset(num_samples: int, classifier: GroundTruthClassifier,
                          x_range: Tuple[float, float], y_range: Tuple[float, float],
                          seed: int = 42) -> Tuple[np.ndarray, np.ndarray]:
    """Sample points uniformly in the domain and label them with the classifier."""
    rng = np.random.default_rng(seed)
    X = np.column_stack([
        rng.uniform(x_range[0], x_range[1], num_samples),
        rng.uniform(y_range[0], y_range[1], num_samples),
    ]).astype(np.float32)
    y = np.array([classifier.classify(px, py) for px, py in X], dtype=np.float32)

    logger.info(f"Created dataset: {num_samples} points, {int(y.sum())} Blue / {int(num_samples - y.sum())} Red")
    return X, y


def create_mlp_model(hidden_units: Sequence[int] = (16, 8), learning_rate: float = 0.01):
    """Create a binary MLP classifier for 2D points."""
    from tensorflow import keras
    from tensorflow.keras import layers

    model = keras.Sequential(
        [layers.Input(shape=(2,))]
        + [layers.Dense(units, activation='tanh') for units in hidden_units]
        + [layers.Dense(1, activation='sigmoid')]
    )

    model.compile(
        optimizer=keras.optimizers.Adam(learning_rate=learning_rate),
        loss='binary_crossentropy',
        metrics=['accuracy']
    )

    return model


def train_mlp(X_train: np.ndarray, y_train: np.ndarray,
              X_val: np.ndarray, y_val: np.ndarray,
              hidden_units: Sequence[int] = (16, 8), learning_rate: float = 0.01,
              epochs: int = 200, batch_size: int = 64, verbose: int = 0):
    """Train the MLP with early stopping on the validation loss."""
    import tensorflow as tf

    logger.info(f"Creating MLP: hidden={list(hidden_units)}, epochs={epochs}")
    model = create_mlp_model(hidden_units, learning_rate)

    history = model.fit(
        X_train, y_train,
        validation_data=(X_val, y_val),
        epochs=epochs,
        batch_size=batch_size,
        verbose=verbose,
        callbacks=[
            tf.keras.callbacks.EarlyStopping(patience=20, restore_best_weights=True),
            tf.keras.callbacks.ReduceLROnPlateau(patience=10, factor=0.5)
        ]
    )

    val_loss, val_acc = model.evaluate(X_val, y_val, verbose=0)
    logger.info(f"MLP Validation Accuracy: {val_acc:.4f}")

    return model, history


def convert_to_tflite(keras_model, output_path: str, quantize: bool = False) -> bytes:
    """Convert a Keras model to a TFLite flatbuffer."""
    import tensorflow as tf

    logger.info("Converting to TFLite...")

    converter = tf.lite.TFLiteConverter.from_keras_model(keras_model)

    if quantize:
        converter.optimizations = [tf.lite.Optimize.DEFAULT]
        converter.target_spec.supported_types = [tf.float16]

    tflite_model = converter.convert()

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'wb') as f:
        f.write(tflite_model)

    size_kb = os.path.getsize(output_path) / 1024
    logger.info(f"Saved TFLite model: {output_path} ({size_kb:.2f} KB)")

    return tflite_model


def evaluate_tflite(tflite_path: str, X_test: np.ndarray, y_test: np.ndarray) -> Tuple[float, float]:
    """Measure TFLite accuracy against the labels and average latency in ms."""
    backend = TFLiteBackend(tflite_path)

    predictions = []
    total_time = 0.0

    for x, y in X_test:
        start = time.perf_counter()
        probability = backend.infer(Point(x=float(x), y=float(y)))
        total_time += time.perf_counter() - start
        predictions.append(probability >= 0.5)

    accuracy = accuracy_score(y_test.astype(bool), predictions)
    avg_latency = (total_time / len(X_test)) * 1000

    logger.info(f"TFLite Test Accuracy: {accuracy:.4f}")
    logger.info(f"Average Latency: {avg_latency:.3f} ms")

    return accuracy, avg_latency


def main():
    parser = argparse.ArgumentParser(description='Train the planar classifier and export TFLite')
    parser.add_argument('--config', type=str, default=None, help='Path to YAML config')
    parser.add_argument('--output', type=str, default=None, help='Output .tflite path')
    parser.add_argument('--rule', type=str, default=None,
                        choices=['primary', 'simple_circle', 'spiral'])
    parser.add_argument('--samples', type=int, default=None)
    parser.add_argument('--epochs', type=int, default=None)
    parser.add_argument('--quantize', action='store_true', help='float16 quantization')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    try:
        config = load_config(args.config)
        train_cfg = config['training']
        domain = config['domain']

        classifier = GroundTruthClassifier(args.rule or config['ground_truth']['rule'])
        output_path = args.output or config['model']['path']

        X, y = create_planar_dataset(
            args.samples or train_cfg['samples'], classifier,
            (domain['x_min'], domain['x_max']), (domain['y_min'], domain['y_max']),
            seed=train_cfg['seed']
        )
        X_train, X_temp, y_train, y_temp = train_test_split(X, y, test_size=0.3, random_state=train_cfg['seed'])
        X_val, X_test, y_val, y_test = train_test_split(X_temp, y_temp, test_size=0.5, random_state=train_cfg['seed'])

        mlp, _ = train_mlp(
            X_train, y_train, X_val, y_val,
            hidden_units=train_cfg['hidden_units'],
            learning_rate=train_cfg['learning_rate'],
            epochs=args.epochs or train_cfg['epochs'],
            batch_size=train_cfg['batch_size'],
        )

        convert_to_tflite(mlp, output_path, quantize=args.quantize)
        accuracy, latency = evaluate_tflite(output_path, X_test, y_test)

        print(f"\n{'='*50}")
        print("TRAINING COMPLETE")
        print(f"{'='*50}")
        print(f"Ground truth rule: {classifier.rule.value}")
        print(f"TFLite Accuracy: {accuracy*100:.2f}%")
        print(f"Inference Latency: {latency:.3f} ms")
        print(f"Model: {output_path}")
        print(f"{'='*50}")

    except Exception as e:
        logger.error(f"Training failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
