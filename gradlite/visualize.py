"""
GradLite Visualization Utilities

Plots for computation graphs, training runs and the two demo models.
Every function saves to `filename` when one is given and shows the figure
otherwise.
"""

import numpy as np
import matplotlib.pyplot as plt
import networkx as nx

from .engine import topological_order


def _finish(filename, what):
    plt.tight_layout()
    if filename:
        plt.savefig(filename, dpi=150, bbox_inches='tight')
        print(f"Saved {what} to {filename}")
    else:
        plt.show()
    plt.close()


def computation_graph(node):
    """
    Build a networkx DiGraph of everything node was derived from.

    Graph vertices are node ids; edges point from operand to result.
    """
    G = nx.DiGraph()
    for n in topological_order(node):
        label = f"{n.op.value if n.op else 'Input'}\n{n.rows}x{n.cols}"
        color = 'lightblue' if n.requires_grad else 'lightgray'
        G.add_node(n.id, label=label, color=color)
        for operand in n.operands:
            G.add_edge(operand.id, n.id)
    return G


def plot_computation_graph(node, filename=None):
    """
    Visualize the computation graph that created a node.

    Shows how operations are connected and which nodes are parameters.

    Args:
        node: The output node to trace back from
        filename: If provided, save to this file instead of showing
    """
    G = computation_graph(node)

    plt.figure(figsize=(12, 8))
    pos = nx.spring_layout(G, k=2, iterations=50, seed=0)

    colors = [G.nodes[n]['color'] for n in G.nodes()]
    labels = {n: G.nodes[n]['label'] for n in G.nodes()}

    nx.draw(G, pos, labels=labels, node_color=colors,
            node_size=3000, font_size=8, font_weight='bold',
            arrows=True, arrowsize=20, edge_color='gray',
            arrowstyle='->', connectionstyle='arc3,rad=0.1')

    plt.title("Computation Graph\n(Blue = parameters, Gray = inputs and intermediates)",
              fontsize=12, fontweight='bold')
    plt.axis('off')
    _finish(filename, "computation graph")


def plot_training_history(losses, title="Training Loss", filename=None):
    """
    Plot the loss over training cycles.

    Args:
        losses: List of loss values
        title: Plot title
        filename: If provided, save to this file
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    ax.plot(losses, linewidth=2, color='blue')
    ax.set_xlabel('Cycle', fontsize=12)
    ax.set_ylabel('Loss', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.grid(True, alpha=0.3)

    ax.axhline(losses[-1], color='red', linestyle='--', alpha=0.5,
               label=f'Final: {losses[-1]:.4f}')
    ax.legend()

    _finish(filename, "training history")


def plot_learning_rate_sweep(history, title="Loss vs Learning Rate", filename=None):
    """
    Plot loss against learning rate, for runs with a log-linear schedule.

    Args:
        history: List of (learning_rate, loss) pairs, e.g. Trainer.history
        title: Plot title
        filename: If provided, save to this file
    """
    rates, losses = zip(*history)

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(rates, losses, linewidth=1, color='blue')
    ax.set_xscale('log')
    ax.set_xlabel('Learning rate', fontsize=12)
    ax.set_ylabel('Loss', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.grid(True, alpha=0.3)

    _finish(filename, "learning rate sweep")


def plot_embedding(vectors, labels, highlight="aeiou", title="Character Embedding",
                   filename=None):
    """
    Scatter the first two dimensions of an embedding table.

    Args:
        vectors: (n, dim) array, one row per symbol (dim >= 2)
        labels: n symbols, written next to their points
        highlight: Symbols drawn in red (vowels by default)
        title: Plot title
        filename: If provided, save to this file
    """
    vectors = np.asarray(vectors)

    fig, ax = plt.subplots(figsize=(8, 8))
    for (x, y), label in zip(vectors[:, :2], labels):
        color = 'red' if label in highlight else 'blue'
        ax.scatter(x, y, color=color, s=40)
        ax.annotate(repr(label)[1:-1], (x, y), textcoords='offset points',
                    xytext=(4, 4), fontsize=9)

    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.grid(True, alpha=0.3)

    _finish(filename, "embedding")


def plot_color_regions(predict, x_range=(-1.0, 1.0), y_range=(-1.0, 1.0),
                       resolution=50, title="Predicted Colors", filename=None):
    """
    Color a grid of coordinates by predicted class.

    Args:
        predict: Callable (x, y) -> class index 0..3
            (none, red, blue, both)
        x_range: (min, max) of x
        y_range: (min, max) of y
        resolution: Grid points per axis
        title: Plot title
        filename: If provided, save to this file
    """
    xs = np.linspace(x_range[0], x_range[1], resolution)
    ys = np.linspace(y_range[0], y_range[1], resolution)
    Z = np.array([[int(predict(x, y)) for x in xs] for y in ys], dtype=int)

    # none, red, blue, both -> white, red, blue, purple
    palette = np.array([[1.0, 1.0, 1.0], [0.9, 0.1, 0.1],
                        [0.1, 0.1, 0.9], [0.6, 0.1, 0.6]])

    fig, ax = plt.subplots(figsize=(8, 8))
    ax.imshow(palette[Z], origin='lower', interpolation='nearest',
              extent=(x_range[0], x_range[1], y_range[0], y_range[1]))
    ax.set_xlabel('x', fontsize=12)
    ax.set_ylabel('y', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')

    _finish(filename, "color regions")
