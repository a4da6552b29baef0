import numpy as np

from gradlite import Node
from gradlite.logger import TrainingLogger, InferenceLogger, _format_array


def test_format_array_shortens_long_arrays():
    assert _format_array(np.array([1.0, 2.0])) == "[1.000000, 2.000000]"
    long = _format_array(np.arange(20.0))
    assert "..." in long
    assert long.startswith("[0.000000")
    assert long.endswith("19.000000]")


def test_training_logger(tmp_path):
    logger = TrainingLogger("run", log_dir=str(tmp_path / "logs"))
    weight = Node.row_vector([1.0, 2.0], requires_grad=True)
    weight.add_grad([0.5, 0.25])
    logger.log_cycle(0, Node.scalar(1.5), 0.1, {'weight': weight})
    logger.log_summary(1, 1.5, 2, 0.01)

    text = (tmp_path / "logs" / "run.training.log").read_text()
    assert "RUN:" in text
    assert "[CYCLE 0]" in text
    assert "Loss: 1.500000" in text
    assert "Learning rate: 1.000000e-01" in text
    assert "Shape: (1, 2)" in text
    assert "Gradient values: [0.500000, 0.250000]" in text
    assert "Final loss: 1.500000" in text


def test_logs_are_appended_per_run(tmp_path):
    TrainingLogger("again", log_dir=str(tmp_path)).log_cycle(0, 1.0)
    TrainingLogger("again", log_dir=str(tmp_path)).log_cycle(0, 2.0)
    text = (tmp_path / "again.training.log").read_text()
    assert text.count("RUN:") == 2


def test_inference_logger(tmp_path):
    logger = InferenceLogger("infer", log_dir=str(tmp_path))
    logger.log_step(3, Node.matrix([1, 0, 0, 1], 2, 2), np.array([0.25, 0.75]), note="'a'")
    text = (tmp_path / "infer.inference.log").read_text()
    assert "[STEP 3 - INFERENCE]" in text
    assert "Shape: (2, 2)" in text
    assert "Shape: (2,)" in text
    assert "Note: 'a'" in text
