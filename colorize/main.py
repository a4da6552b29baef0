"""
Training script for the coordinate-to-color classifier.

Trains ColorPredictor on a color key, reports its accuracy and plots the
predicted color regions and the loss against the learning rate.

Usage:
    python -m colorize.main --key quadrants --cycles 1000
"""

import os
import argparse

import numpy as np

from gradlite.logger import TrainingLogger
from gradlite.visualize import plot_color_regions, plot_learning_rate_sweep

from .color_key import KEYS
from .model import ColorPredictor


# =========================
# CONFIGURATION
# =========================

DEFAULT_CONFIG = {
    'key': 'quadrants',
    'n_hidden_layers': 2,
    'layer_size': 30,
    'regularization': None,
    'cycles': 1000,
    'batch_size': 100,
    'lr_start': 0.1,
    'lr_end': 0.1,
    'x_range': (-1.0, 1.0),
    'y_range': (-1.0, 1.0),
    'log_interval': 100,
    'seed': None,
    'output_dir': 'outputs',
    'import_params': None,
    'export_params': None,
}


def main(config):
    """Main training function."""
    print("=" * 70)
    print(f"Color predictor ({config['key']})")
    print("=" * 70)

    os.makedirs(config['output_dir'], exist_ok=True)
    rng = np.random.default_rng(config['seed'])
    logger = TrainingLogger(name="colorize", log_dir=config['output_dir'])

    predictor = ColorPredictor(KEYS[config['key']],
                               n_hidden_layers=config['n_hidden_layers'],
                               layer_size=config['layer_size'],
                               regularization=config['regularization'],
                               rng=rng, logger=logger)

    if config['import_params']:
        try:
            predictor.import_parameters(config['import_params'])
            print(f"  Imported parameters from {config['import_params']}")
        except FileNotFoundError:
            print(f"  No parameter file {config['import_params']}, starting from random values")

    if config['lr_start'] == config['lr_end']:
        learning_rate = config['lr_start']
    else:
        learning_rate = (config['lr_start'], config['lr_end'])

    history = predictor.train(config['cycles'], config['batch_size'], learning_rate,
                              config['x_range'], config['y_range'],
                              log_interval=config['log_interval'])

    accuracy = predictor.accuracy(1000, config['x_range'], config['y_range'])
    print(f"\nAccuracy on 1000 random points: {accuracy:.2%}")

    if config['export_params']:
        filename = predictor.export_parameters(config['export_params'])
        print(f"Exported parameters to {filename}")

    plot_color_regions(predictor.predict, config['x_range'], config['y_range'],
                       title=f"Predicted Colors ({config['key']})",
                       filename=os.path.join(config['output_dir'], 'colorize_regions.png'))
    plot_learning_rate_sweep(history, title="Color Predictor Loss vs Learning Rate",
                             filename=os.path.join(config['output_dir'], 'colorize_learning_rate.png'))


def parse_args(argv=None):
    """Command line flags override DEFAULT_CONFIG."""
    parser = argparse.ArgumentParser(description='Train the coordinate-to-color classifier')

    # Model architecture
    parser.add_argument('--key', choices=sorted(KEYS), default=DEFAULT_CONFIG['key'],
                        help='Color key to learn')
    parser.add_argument('--n_hidden_layers', type=int, default=DEFAULT_CONFIG['n_hidden_layers'],
                        help='Number of hidden layers')
    parser.add_argument('--layer_size', type=int, default=DEFAULT_CONFIG['layer_size'],
                        help='Hidden layer width')
    parser.add_argument('--regularization', type=float, default=DEFAULT_CONFIG['regularization'],
                        help='L2 regularization coefficient')

    # Training
    parser.add_argument('--cycles', type=int, default=DEFAULT_CONFIG['cycles'],
                        help='Number of training cycles')
    parser.add_argument('--batch_size', type=int, default=DEFAULT_CONFIG['batch_size'],
                        help='Points per cycle')
    parser.add_argument('--lr_start', type=float, default=DEFAULT_CONFIG['lr_start'],
                        help='Learning rate of the first cycle')
    parser.add_argument('--lr_end', type=float, default=DEFAULT_CONFIG['lr_end'],
                        help='Learning rate of the last cycle (log-linear in between)')
    parser.add_argument('--x_range', type=float, nargs=2, default=DEFAULT_CONFIG['x_range'],
                        help='Range of sampled x')
    parser.add_argument('--y_range', type=float, nargs=2, default=DEFAULT_CONFIG['y_range'],
                        help='Range of sampled y')
    parser.add_argument('--log_interval', type=int, default=DEFAULT_CONFIG['log_interval'],
                        help='Print every N cycles')
    parser.add_argument('--seed', type=int, default=DEFAULT_CONFIG['seed'],
                        help='Random seed')

    # Outputs
    parser.add_argument('--output_dir', type=str, default=DEFAULT_CONFIG['output_dir'],
                        help='Directory for logs and plots')
    parser.add_argument('--import_params', type=str, default=DEFAULT_CONFIG['import_params'],
                        help='Parameter file to start from')
    parser.add_argument('--export_params', type=str, default=DEFAULT_CONFIG['export_params'],
                        help='Parameter file to write after training')

    return {**DEFAULT_CONFIG, **vars(parser.parse_args(argv))}


if __name__ == '__main__':
    main(parse_args())
