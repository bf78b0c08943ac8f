# -- Particle Visualizations -- #

'''
Plotly-based interactive plots of SPH particle state.
'''

from __future__ import annotations

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from sphFluid.export.frameExporter import FrameExporter
from sphFluid.sph.particles import ParticleSystem
from sphFluid.visualization import theme


def plotParticles(particles: ParticleSystem, title: str = 'Particles') -> go.Figure:
    '''
    3D scatter of the particle positions.

    Movable particles are colored by speed; fixed particles are drawn
    as a separate grey trace.

    Parameters:
    -----------
    particles : ParticleSystem
        Particle system to draw
    title : str
        Figure title

    Returns:
    --------
    go.Figure : Plotly figure
    '''
    movable = particles.movable
    moving = particles.positions[movable]
    fixed = particles.positions[~movable]
    speeds = np.linalg.norm(particles.velocities[movable], axis=1)

    fig = go.Figure()

    fig.add_trace(go.Scatter3d(
        x=fixed[:, 0], y=fixed[:, 2], z=fixed[:, 1],
        mode='markers', name='Fixed',
        marker=dict(size=3, color=theme.FIXED_PARTICLE, opacity=0.4),
    ))
    fig.add_trace(go.Scatter3d(
        x=moving[:, 0], y=moving[:, 2], z=moving[:, 1],
        mode='markers', name='Movable',
        marker=dict(
            size=4, color=speeds, colorscale=theme.SPEED_COLORSCALE,
            colorbar=dict(title='Speed'),
        ),
    ))

    # y is the vertical axis of the simulation, z the vertical axis of the plot
    fig.update_layout(
        title=title,
        scene=dict(xaxis_title='x', yaxis_title='z', zaxis_title='y', aspectmode='data'),
        template=theme.TEMPLATE,
        height=600,
    )

    return fig


def plotHistory(exporter: FrameExporter) -> go.Figure:
    '''
    Mean movable height, kinetic energy and density error over time.

    Parameters:
    -----------
    exporter : FrameExporter
        Exporter holding the recorded history

    Returns:
    --------
    go.Figure : Plotly figure with three stacked panels
    '''
    history = exporter.history
    times = history['times']

    fig = make_subplots(
        rows=3, cols=1, shared_xaxes=True,
        subplot_titles=('Mean Movable Height', 'Kinetic Energy', 'Max Density Error'),
    )

    fig.add_trace(go.Scatter(
        x=times, y=history['meanHeight'], mode='lines',
        name='Height', line=dict(color=theme.HEIGHT_LINE, width=2),
    ), row=1, col=1)
    fig.add_trace(go.Scatter(
        x=times, y=history['kineticEnergy'], mode='lines',
        name='KE', line=dict(color=theme.ENERGY_LINE, width=2),
    ), row=2, col=1)
    fig.add_trace(go.Scatter(
        x=times, y=np.asarray(history['maxDensityError'], dtype=float) * 100.0, mode='lines',
        name='Density Error (%)', line=dict(color=theme.DENSITY_ERROR_LINE, width=2),
    ), row=3, col=1)

    fig.update_xaxes(title_text='Time', row=3, col=1)
    fig.update_layout(
        title='Run History',
        template=theme.TEMPLATE,
        height=700,
        showlegend=False,
    )

    return fig
