import numpy as np
import pytest

from colorize import Color, ColorKey, ColorPredictor, quadrants, circles, KEYS
from colorize.main import parse_args, DEFAULT_CONFIG


# =========================
# COLORS
# =========================

@pytest.mark.parametrize("flags, color", [
    ((False, False), Color.NONE),
    ((True, False), Color.RED),
    ((False, True), Color.BLUE),
    ((True, True), Color.BOTH),
])
def test_color_flags_round_trip(flags, color):
    assert Color.from_flags(*flags) is color
    assert color.flags == flags


def test_color_int_conversions():
    assert [int(c) for c in Color] == [0, 1, 2, 3]
    assert Color(2) is Color.BLUE
    with pytest.raises(ValueError):
        Color(4)


def test_quadrants_key():
    key = ColorKey(quadrants)
    assert key.color(-0.5, 0.5) is Color.RED
    assert key.color(0.5, -0.5) is Color.BLUE
    assert key.color(-0.5, -0.5) is Color.BOTH
    assert key(0.5, 0.5) is Color.NONE


def test_circles_key():
    key = ColorKey(circles)
    assert key(0.0, 0.0) is Color.BOTH
    assert key(-0.6, 0.0) is Color.RED
    assert key(0.6, 0.0) is Color.BLUE
    assert key(0.0, 0.9) is Color.NONE
    assert set(KEYS) == {'quadrants', 'circles'}


# =========================
# PREDICTOR
# =========================

def test_sample_batch(rng):
    predictor = ColorPredictor(quadrants, n_hidden_layers=1, layer_size=8, rng=rng)
    coords, targets = predictor.sample_batch(50, (-2.0, -1.0), (0.0, 1.0))
    assert coords.shape == (50, 2)
    assert targets.shape == (50, 4)
    assert np.all((coords.data[:, 0] >= -2.0) & (coords.data[:, 0] < -1.0))
    # x < 0 and y >= 0 everywhere: always red
    np.testing.assert_array_equal(targets.data, np.tile([0.0, 1.0, 0.0, 0.0], (50, 1)))


def test_predict_returns_color(rng):
    predictor = ColorPredictor(quadrants, n_hidden_layers=1, layer_size=8, rng=rng)
    assert isinstance(predictor.predict(0.3, -0.2), Color)
    assert predictor.probabilities(0.3, -0.2).sum() == pytest.approx(1.0)
    assert predictor.predict_batch([[0.1, 0.2], [0.3, 0.4]]).shape == (2,)


def test_training_learns_quadrants(rng):
    predictor = ColorPredictor(quadrants, n_hidden_layers=1, layer_size=16, rng=rng)
    history = predictor.train(400, 64, 0.5, verbose=False)
    assert len(history) == 400
    assert history[-1][1] < history[0][1]
    assert predictor.accuracy(500) > 0.8


def test_learning_rate_range_is_swept(rng):
    predictor = ColorPredictor(quadrants, n_hidden_layers=0, layer_size=4, rng=rng)
    predictor.train(3, 10, 0.01, verbose=False)
    history = predictor.train(5, 10, (1e-3, 1e-1), verbose=False)
    rates = [lr for lr, _ in history]
    assert rates[0] == pytest.approx(1e-3)
    assert rates[-1] == pytest.approx(1e-1)
    assert rates == sorted(rates)


def test_export_import_parameters(rng, tmp_path):
    predictor = ColorPredictor(quadrants, n_hidden_layers=1, layer_size=8, rng=rng)
    filename = predictor.export_parameters(str(tmp_path / "colors.txt"))

    other = ColorPredictor(quadrants, n_hidden_layers=1, layer_size=8,
                           rng=np.random.default_rng(1))
    other.import_parameters(filename)
    np.testing.assert_array_equal(other.probabilities(0.1, 0.9),
                                  predictor.probabilities(0.1, 0.9))


def test_parse_args_overrides_defaults():
    config = parse_args(['--cycles', '10', '--lr_end', '0.01', '--key', 'circles'])
    assert config['cycles'] == 10
    assert config['lr_end'] == 0.01
    assert config['key'] == 'circles'
    assert config['batch_size'] == DEFAULT_CONFIG['batch_size']


def test_main_runs_end_to_end(tmp_path, capsys):
    from colorize.main import main

    config = parse_args(['--cycles', '5', '--batch_size', '20', '--seed', '1',
                         '--lr_start', '0.01', '--lr_end', '0.1',
                         '--output_dir', str(tmp_path), '--export_params', str(tmp_path / "p.txt")])
    main(config)

    assert "Accuracy on 1000 random points" in capsys.readouterr().out
    assert (tmp_path / "p.txt").exists()
    assert (tmp_path / "colorize_regions.png").exists()
    assert (tmp_path / "colorize_learning_rate.png").exists()
