"""
GradLite Logging System

Simple text logging for training and inference runs.
Logs loss, learning rate, parameter values and gradients at cycle boundaries.
"""

import os
from datetime import datetime

import numpy as np


def _format_array(arr, max_values=10):
    """Format a numpy array for pretty printing."""
    if isinstance(arr, (int, float)):
        return f"{arr:.6f}"

    flat = np.asarray(arr).ravel()

    if len(flat) <= max_values:
        values_str = ", ".join([f"{v:.6f}" for v in flat])
    else:
        first_part = ", ".join([f"{v:.6f}" for v in flat[:max_values//2]])
        last_part = ", ".join([f"{v:.6f}" for v in flat[-max_values//2:]])
        values_str = f"{first_part}, ..., {last_part}"

    return f"[{values_str}]"


def _format_timestamp():
    """Get current timestamp string."""
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


def _as_array(value):
    """Nodes expose .data, everything else goes through numpy."""
    return value.data if hasattr(value, 'data') else np.asarray(value)


def _as_float(loss):
    if hasattr(loss, 'item'):
        return float(loss.item())
    return float(loss)


class _RunLog:
    """Append-only log file that starts each run with a banner."""

    suffix = 'log'

    def __init__(self, name, log_dir="."):
        self.name = name
        self.log_dir = log_dir
        os.makedirs(log_dir, exist_ok=True)
        self.log_path = os.path.join(log_dir, f"{name}.{self.suffix}.log")

        with open(self.log_path, 'a') as f:
            f.write("\n" + "=" * 80 + "\n")
            f.write(f"RUN: {_format_timestamp()}\n")
            f.write("=" * 80 + "\n\n")


class TrainingLogger(_RunLog):
    """
    Logger for training runs.

    Logs every cycle it is handed with:
    - Timestamps
    - Cycle markers
    - Loss and learning rate
    - Parameter shapes, sample values and gradients

    Args:
        name: Base name for log file (will create <name>.training.log)
        log_dir: Directory for log files (default: current directory)
    """

    suffix = 'training'

    def log_cycle(self, cycle, loss, learning_rate=None, parameters=None):
        """
        Log one training cycle (after the backward pass).

        Args:
            cycle: Cycle number
            loss: Loss value or loss node
            learning_rate: Learning rate used for this cycle's step
            parameters: Dict of parameter name -> node
        """
        with open(self.log_path, 'a') as f:
            f.write(f"[CYCLE {cycle}]\n")
            f.write(f"Timestamp: {_format_timestamp()}\n\n")
            f.write(f"Loss: {_as_float(loss):.6f}\n")
            if learning_rate is not None:
                f.write(f"Learning rate: {learning_rate:.6e}\n")
            f.write("\n")

            if parameters:
                f.write("Parameters and Gradients:\n")
                for name, param in parameters.items():
                    f.write(f"\n  {name}:\n")
                    f.write(f"    Shape: {param.shape}\n")
                    f.write(f"    Values: {_format_array(param.data)}\n")
                    f.write(f"    Gradient values: {_format_array(param.grad)}\n")

            f.write("\n" + "-" * 80 + "\n\n")

    def log_summary(self, cycles, final_loss, n_parameters, elapsed):
        """
        Log the end of a training run.

        Args:
            cycles: Number of cycles run
            final_loss: Loss of the last cycle
            n_parameters: Number of trainable values
            elapsed: Wall time in seconds
        """
        with open(self.log_path, 'a') as f:
            f.write("[SUMMARY]\n")
            f.write(f"Timestamp: {_format_timestamp()}\n")
            f.write(f"Cycles: {cycles}\n")
            f.write(f"Parameters: {n_parameters}\n")
            f.write(f"Final loss: {final_loss:.6f}\n")
            f.write(f"Elapsed: {elapsed:.3f}s\n")
            f.write("\n" + "-" * 80 + "\n\n")


class InferenceLogger(_RunLog):
    """
    Logger for inference runs.

    Logs forward passes (no gradients) with:
    - Timestamps
    - Step markers
    - Input and output shapes and sample values

    Args:
        name: Base name for log file (will create <name>.inference.log)
        log_dir: Directory for log files (default: current directory)
    """

    suffix = 'inference'

    def log_step(self, step, input_data, output, note=None):
        """
        Log an inference step.

        Args:
            step: Step number
            input_data: Input node/array
            output: Output node/array
            note: Optional free text, e.g. the decoded prediction
        """
        with open(self.log_path, 'a') as f:
            f.write(f"[STEP {step} - INFERENCE]\n")
            f.write(f"Timestamp: {_format_timestamp()}\n\n")

            input_array = _as_array(input_data)
            f.write("Input:\n")
            f.write(f"  Shape: {input_array.shape}\n")
            f.write(f"  Values: {_format_array(input_array)}\n\n")

            output_array = _as_array(output)
            f.write("Output:\n")
            f.write(f"  Shape: {output_array.shape}\n")
            f.write(f"  Values: {_format_array(output_array)}\n")

            if note is not None:
                f.write(f"\nNote: {note}\n")

            f.write("\n" + "-" * 80 + "\n\n")
