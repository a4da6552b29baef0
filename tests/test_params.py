import os

import numpy as np
import pytest

from gradlite import Node, ParameterBundle, ShapeMismatch, export_parameters, import_parameters
from gradlite.nn import Linear, Tanh


def test_export_import_round_trip(rng):
    params = [Node(rng.standard_normal((3, 2))), Node(rng.standard_normal((1, 4)))]
    flat = export_parameters(params)
    assert flat.shape == (10,)

    originals = [p.data.copy() for p in params]
    for p in params:
        p.set_values(np.zeros(p.size))
    import_parameters(params, flat)
    for p, original in zip(params, originals):
        np.testing.assert_array_equal(p.data, original)


def test_export_of_nothing():
    assert export_parameters([]).size == 0


def test_import_wrong_length():
    params = [Node.zeros((2, 2))]
    with pytest.raises(ShapeMismatch):
        import_parameters(params, [1.0, 2.0, 3.0])


def make_layers(rng):
    return [Linear(2, 3, rng=rng, name='in'), Tanh(), Linear(3, 1, rng=rng, name='out')]


def test_bundle_save_load_round_trip(rng, tmp_path):
    layers = make_layers(rng)
    bundle = ParameterBundle.from_layers(layers)
    filename = bundle.save(str(tmp_path / "params.txt"))
    assert filename == str(tmp_path / "params.txt")

    loaded = ParameterBundle.load(filename)
    assert loaded == bundle
    assert loaded.num_values() == 6 + 3 + 3 + 1

    fresh = make_layers(np.random.default_rng(0))
    loaded.load_into(fresh)
    for a, b in zip(layers, fresh):
        for p, q in zip(a.parameters(), b.parameters()):
            np.testing.assert_array_equal(p.data, q.data)


def test_bundle_file_format(tmp_path):
    layer = Linear.from_nodes(Node.matrix([0.5, -1.0], 2, 1), Node.scalar(0.25), name='only')
    filename = ParameterBundle.from_layers([layer]).save(str(tmp_path / "p.txt"))
    with open(filename) as f:
        lines = f.read().splitlines()
    assert lines == ["Layer 0: only", "Parameter: 0", "0.5", "-1.0", "Parameter: 1", "0.25"]


def test_bundle_never_overwrites(rng, tmp_path, capsys):
    bundle = ParameterBundle.from_layers(make_layers(rng))
    path = str(tmp_path / "params.txt")
    first = bundle.save(path)
    second = bundle.save(path)
    third = bundle.save(path)
    assert (first, second, third) == (path, path + ".0", path + ".1")
    assert os.path.exists(path + ".1")
    assert "Changing export filename" in capsys.readouterr().out


def test_bundle_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ParameterBundle.load(str(tmp_path / "nothing.txt"))


@pytest.mark.parametrize("text", [
    "Layer 0: x\nParameter: 0\nnot a number\n",
    "0.5\n",
    "Layer 0\nParameter: 0\n1.0\n",
    "Parameter: 0\n1.0\n",
    "Layer 0: x\n1.0\n",
])
def test_bundle_load_malformed(text, tmp_path):
    path = tmp_path / "bad.txt"
    path.write_text(text)
    with pytest.raises(ValueError):
        ParameterBundle.load(str(path))


def test_bundle_layer_name_mismatch_warns(rng):
    bundle = ParameterBundle.from_layers(make_layers(rng))
    other = [Linear(2, 3, rng=rng, name='renamed'), Tanh(), Linear(3, 1, rng=rng, name='out')]
    with pytest.warns(UserWarning, match="renamed"):
        bundle.load_into(other)


def test_bundle_size_mismatch(rng):
    bundle = ParameterBundle.from_layers(make_layers(rng))
    with pytest.raises(ShapeMismatch):
        bundle.load_into([Linear(2, 4, rng=rng, name='in'), Tanh(),
                          Linear(4, 1, rng=rng, name='out')])
    with pytest.raises(ShapeMismatch):
        bundle.load_into(make_layers(rng)[:2])
    with pytest.raises(ShapeMismatch):
        bundle.load_into([Linear(2, 3, bias=False, rng=rng, name='in'), Tanh(),
                          Linear(3, 1, rng=rng, name='out')])
