"""
Plotting Utilities for the Conic Orbit Propagator
Static matplotlib figures of the sampled conic and of playback telemetry.
Consistent styling, 3D orbit plots, perifocal table plots, time histories.
"""

import os

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for saving
import matplotlib.pyplot as plt


# ---------------------------------------------------------------------------
# PlotStyle -- shared styling helpers
# ---------------------------------------------------------------------------

class PlotStyle:
    """Centralised styling and figure management for all project plots."""

    COLORS = {
        'primary': '#2E86AB',      # Steel blue
        'secondary': '#A23B72',    # Magenta
        'accent': '#F18F01',       # Orange
        'warning': '#C73E1D',      # Red
        'body': 'royalblue',
        'neutral': '#546E7A',      # Blue grey
    }

    PALETTE = ['#2E86AB', '#F18F01', '#2E7D32', '#C73E1D', '#7B1FA2', '#00838F']

    @staticmethod
    def setup_style():
        """Set matplotlib rcParams for the project's figures."""
        plt.rcParams.update({
            'font.family': 'sans-serif',
            'font.sans-serif': ['Helvetica Neue', 'Arial', 'DejaVu Sans'],
            'font.size': 11,
            'axes.labelsize': 12,
            'axes.titlesize': 14,
            'axes.titleweight': 'bold',
            'legend.fontsize': 10,

            'figure.figsize': (10, 6),
            'figure.dpi': 100,
            'savefig.dpi': 150,
            'savefig.bbox': 'tight',

            'axes.grid': True,
            'axes.axisbelow': True,
            'axes.spines.top': False,
            'axes.spines.right': False,
            'axes.prop_cycle': plt.cycler(color=PlotStyle.PALETTE),

            'grid.color': '#E0E0E0',
            'grid.linewidth': 0.5,
            'grid.alpha': 0.7,

            'lines.linewidth': 2.0,
            'legend.frameon': True,
            'legend.framealpha': 0.95,
        })

    @staticmethod
    def create_figure(figsize=None):
        """Return (fig, ax) with a tight layout.

        Parameters
        ----------
        figsize : tuple or None
            Figure size in inches.  If *None*, use rcParams default.
        """
        return plt.subplots(figsize=figsize, layout='tight')

    @staticmethod
    def save_figure(fig, filepath, dpi=150):
        """Save *fig* to *filepath*, creating directories as needed."""
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fig.savefig(filepath, dpi=dpi, bbox_inches='tight',
                    facecolor='white', edgecolor='none')
        plt.close(fig)


# ---------------------------------------------------------------------------
# Standalone plotting functions
# ---------------------------------------------------------------------------

def _draw_body_sphere(ax, radius, color):
    u = np.linspace(0, 2 * np.pi, 30)
    v = np.linspace(0, np.pi, 20)
    xs = radius * np.outer(np.cos(u), np.sin(v))
    ys = radius * np.outer(np.sin(u), np.sin(v))
    zs = radius * np.outer(np.ones_like(u), np.cos(v))
    ax.plot_surface(xs, ys, zs, color=color, alpha=0.5, linewidth=0)


def plot_orbit_3d(table_positions, body_radius, title, filepath,
                  current_position=None, body_name='central body'):
    """3-D inertial plot of a sampled conic around its central body.

    Parameters
    ----------
    table_positions : ndarray (N, 3)
        Inertial positions of the valid table samples (CDU).
    body_radius : float
        Central body radius (CDU).
    title : str
    filepath : str
    current_position : ndarray (3,) or None
        Marker for the body's current position.
    body_name : str
        Legend label for the sphere.
    """
    PlotStyle.setup_style()
    fig = plt.figure(figsize=(10, 9))
    ax = fig.add_subplot(111, projection='3d')

    _draw_body_sphere(ax, body_radius, PlotStyle.COLORS['body'])
    ax.scatter(0.0, 0.0, 0.0, color=PlotStyle.COLORS['body'], s=20, label=body_name)

    pos = np.asarray(table_positions)
    ax.plot(pos[:, 0], pos[:, 1], pos[:, 2],
            color=PlotStyle.COLORS['primary'], label='trajectory', linewidth=1.8)
    ax.scatter(*pos[np.argmin(np.linalg.norm(pos, axis=1))],
               color=PlotStyle.COLORS['accent'], s=30, label='periapsis')

    if current_position is not None:
        ax.scatter(*np.asarray(current_position), color=PlotStyle.COLORS['warning'],
                   s=50, label='body')

    extent = np.max(np.abs(pos))
    ax.set_xlim(-extent, extent)
    ax.set_ylim(-extent, extent)
    ax.set_zlim(-extent, extent)
    ax.set_xlabel('I [CDU]')
    ax.set_ylabel('J [CDU]')
    ax.set_zlabel('K [CDU]')
    ax.set_title(title)
    ax.legend(loc='upper left', fontsize=9)
    PlotStyle.save_figure(fig, filepath)


def plot_perifocal_table(positions, valid_mask, body_radius, title, filepath):
    """Orbit-plane view of the table samples, invalid slots omitted.

    Parameters
    ----------
    positions : ndarray (N, 3)
        Perifocal positions (CDU); rows of invalid samples are NaN.
    valid_mask : ndarray (N,) of bool
    body_radius : float
    title : str
    filepath : str
    """
    PlotStyle.setup_style()
    fig, ax = PlotStyle.create_figure(figsize=(8, 8))

    ax.add_patch(plt.Circle((0.0, 0.0), body_radius,
                            color=PlotStyle.COLORS['body'], alpha=0.4))
    pos = np.asarray(positions)[np.asarray(valid_mask)]
    ax.plot(pos[:, 0], pos[:, 1], '-o', markersize=2.5,
            color=PlotStyle.COLORS['primary'], label=f'{len(pos)} samples')
    ax.set_aspect('equal', adjustable='datalim')
    ax.set_xlabel('P [CDU]')
    ax.set_ylabel('Q [CDU]')
    ax.set_title(title)
    ax.legend()
    PlotStyle.save_figure(fig, filepath)


def plot_state_history(times, state_arrays, labels, title, filepath,
                       time_label='Time [s]'):
    """Plot up to four state signals vs time on one set of axes.

    Parameters
    ----------
    times : array-like
    state_arrays : list of array-like
    labels : list of str
    title : str
    filepath : str
    time_label : str
    """
    if len(state_arrays) > 4:
        raise ValueError(f"At most 4 signals per figure, got {len(state_arrays)}")

    PlotStyle.setup_style()
    fig, ax = PlotStyle.create_figure(figsize=(10, 6))
    for sig, lbl in zip(state_arrays, labels):
        ax.plot(times, sig, label=lbl)
    ax.set_xlabel(time_label)
    ax.set_title(title)
    ax.legend()
    PlotStyle.save_figure(fig, filepath)
