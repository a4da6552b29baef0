"""
Training script for the next-letter predictor.

Trains ReText on a text file, prints validation loss and generated samples,
and plots the loss history and the learned character embedding.

Usage:
    python -m retext.main --data datasets/names.txt --cycles 2000
"""

import os
import argparse

import numpy as np

from gradlite.logger import TrainingLogger, InferenceLogger
from gradlite.visualize import plot_embedding, plot_training_history

from .dataset import TextDataset
from .model import ReText


# =========================
# CONFIGURATION
# =========================

DEFAULT_CONFIG = {
    'data': 'datasets/names.txt',
    'training_ratio': 0.9,
    'lowercase': True,
    'block_size': 3,
    'embed_dim': 2,
    'n_hidden_layers': 1,
    'layer_dim': 32,
    'regularization': None,
    'cycles': 1000,
    'batch_size': 200,
    'lr': 0.1,
    'log_interval': 100,
    'seed': None,
    'n_samples': 10,
    'sample_length': 20,
    'output_dir': 'outputs',
    'import_params': None,
    'export_params': None,
}


def build_model(config, rng, logger=None):
    """Load the dataset and create the model described by config."""
    dataset = TextDataset.from_file(config['data'], config['training_ratio'],
                                    lowercase=config['lowercase'])
    model = ReText(dataset,
                   block_size=config['block_size'],
                   embed_dim=config['embed_dim'],
                   n_hidden_layers=config['n_hidden_layers'],
                   layer_dim=config['layer_dim'],
                   regularization=config['regularization'],
                   rng=rng, logger=logger)

    if config['import_params']:
        try:
            model.import_parameters(config['import_params'])
            print(f"  Imported parameters from {config['import_params']}")
        except FileNotFoundError:
            print(f"  No parameter file {config['import_params']}, starting from random values")
    return model


def main(config):
    """Main training function."""
    print("=" * 70)
    print("ReText next-letter predictor")
    print("=" * 70)

    os.makedirs(config['output_dir'], exist_ok=True)
    rng = np.random.default_rng(config['seed'])
    logger = TrainingLogger(name="retext", log_dir=config['output_dir'])

    model = build_model(config, rng, logger)
    print(f"\nCharacters: {model.charset}")

    # Training loop
    print("\n" + "=" * 70)
    print("Starting training...")
    print("=" * 70)
    losses = model.train(config['cycles'], config['lr'], config['batch_size'],
                         log_interval=config['log_interval'])

    if model.dataset.validation_data:
        print(f"Validation loss: {model.validate(config['batch_size']):.4f}")

    # Generate samples
    print("\nGenerated samples:")
    inference_logger = InferenceLogger(name="retext", log_dir=config['output_dir'])
    for i in range(config['n_samples']):
        sample = model.predict('', config['sample_length'],
                               logger=inference_logger if i == 0 else None)
        print(f"  {i + 1:2d}: {sample}")

    if config['export_params']:
        filename = model.export_parameters(config['export_params'])
        print(f"\nExported parameters to {filename}")

    plot_training_history(losses, title="ReText Training Loss",
                          filename=os.path.join(config['output_dir'], 'retext_training.png'))
    if config['embed_dim'] >= 2:
        plot_embedding(model.embedding_vectors(), model.characters,
                       filename=os.path.join(config['output_dir'], 'retext_embedding.png'))


def parse_args(argv=None):
    """Command line flags override DEFAULT_CONFIG."""
    parser = argparse.ArgumentParser(description='Train the ReText next-letter predictor')

    # Data
    parser.add_argument('--data', type=str, default=DEFAULT_CONFIG['data'],
                        help='Text file, one example per line')
    parser.add_argument('--training_ratio', type=float, default=DEFAULT_CONFIG['training_ratio'],
                        help='Share of lines used for training')
    parser.add_argument('--keep_case', dest='lowercase', action='store_false',
                        help='Do not lowercase the text')

    # Model architecture
    parser.add_argument('--block_size', type=int, default=DEFAULT_CONFIG['block_size'],
                        help='Number of context characters')
    parser.add_argument('--embed_dim', type=int, default=DEFAULT_CONFIG['embed_dim'],
                        help='Character embedding dimension')
    parser.add_argument('--n_hidden_layers', type=int, default=DEFAULT_CONFIG['n_hidden_layers'],
                        help='Number of hidden layers')
    parser.add_argument('--layer_dim', type=int, default=DEFAULT_CONFIG['layer_dim'],
                        help='Hidden layer width')
    parser.add_argument('--regularization', type=float, default=DEFAULT_CONFIG['regularization'],
                        help='L2 regularization coefficient')

    # Training
    parser.add_argument('--cycles', type=int, default=DEFAULT_CONFIG['cycles'],
                        help='Number of training cycles')
    parser.add_argument('--batch_size', type=int, default=DEFAULT_CONFIG['batch_size'],
                        help='Examples per cycle')
    parser.add_argument('--lr', type=float, default=DEFAULT_CONFIG['lr'],
                        help='Learning rate')
    parser.add_argument('--log_interval', type=int, default=DEFAULT_CONFIG['log_interval'],
                        help='Print every N cycles')
    parser.add_argument('--seed', type=int, default=DEFAULT_CONFIG['seed'],
                        help='Random seed')

    # Sampling
    parser.add_argument('--n_samples', type=int, default=DEFAULT_CONFIG['n_samples'],
                        help='Number of generated samples')
    parser.add_argument('--sample_length', type=int, default=DEFAULT_CONFIG['sample_length'],
                        help='Maximum length of a sample')

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
