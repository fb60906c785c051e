'''Plotly figures of catalog bodies and ellipses'''

from typing import Iterable, Optional
import numpy as np
import plotly.graph_objects as go
from .catalog import UniverseCatalog
from .config import config
from .constants import SECONDS_PER_DAY
from .ellipse import GeneralEllipse
from .entity import BodyInfo, Entity


def _rgb(color, default: str) -> str:
    if color is None:
        return default
    r, g, b = (int(round(255*c)) for c in color)
    return f'rgb({r},{g},{b})'


def plot_window(entity: Entity, t: float, info: Optional[BodyInfo] = None):
    """
    Time window (t_start, t_end) of an entity's trajectory plot at time t.

    The duration is taken from info, else the trajectory period, else
    config.DEFAULT_PLOT_DURATION days. The window ends 'lead' seconds after
    t and is clipped to the trajectory's valid range.
    """
    duration = info.trajectory_plot_duration if info is not None else None
    if duration is None:
        duration = entity.trajectory.period or config.DEFAULT_PLOT_DURATION * SECONDS_PER_DAY
    lead = info.trajectory_plot_lead if info is not None else 0.0
    t_end = t + lead
    t_start = t_end - duration
    valid = entity.trajectory.valid_range
    if valid is not None:
        t_start, t_end = max(t_start, valid[0]), min(t_end, valid[1])
        if t_start >= t_end:
            raise ValueError(f"Plot window of '{entity.name}' lies outside its valid range")
    return t_start, t_end


def plot_trajectory(entity: Entity, t: float, info: Optional[BodyInfo] = None,
                    n_points: Optional[int] = None,
                    fig: Optional[go.Figure] = None) -> go.Figure:
    """
    Plot an entity's path around its parent, drawn at the parent's
    position at time t, with a marker at the entity's position.

    Parameters:
        entity: Body to plot
        t: Current time [s since J2000]
        info: Plot settings (duration, lead, color, samples); optional
        n_points: Number of samples (default: info or config)
        fig: Figure to add to (default: new figure)

    Returns:
        Plotly Figure object
    """
    if n_points is None:
        n_points = info.trajectory_plot_samples if info is not None else config.DEFAULT_PLOT_POINTS
    t_start, t_end = plot_window(entity, t, info)
    times = np.linspace(t_start, t_end, n_points)
    parent = entity.parent
    if parent is None:
        positions = np.array([entity.position(ti) for ti in times])
    else:
        anchor = parent.position(t)
        positions = np.array([entity.position(ti) - parent.position(ti) for ti in times]) + anchor

    color = _rgb(info.trajectory_plot_color if info is not None else None,
                 config.DEFAULT_TRAJ_COLOR)
    fig = go.Figure() if fig is None else fig
    fig.add_trace(go.Scatter3d(
        x=positions[:, 0], y=positions[:, 1], z=positions[:, 2],
        mode='lines',
        line=dict(color=color, width=3),
        name=f'{entity.name} trajectory',
    ))
    here = entity.position(t)
    fig.add_trace(go.Scatter3d(
        x=[here[0]], y=[here[1]], z=[here[2]],
        mode='markers',
        marker=dict(color=_rgb(info.label_color if info is not None else None,
                               config.DEFAULT_BODY_COLOR), size=5),
        name=entity.name,
    ))
    fig.update_layout(
        scene=dict(xaxis_title='X [km]', yaxis_title='Y [km]', zaxis_title='Z [km]',
                   aspectmode='data'),
        showlegend=True
    )
    return fig


def plot_catalog(catalog: UniverseCatalog, t: float,
                 names: Optional[Iterable[str]] = None) -> go.Figure:
    """Plot the trajectories of catalog bodies (default: all) at time t."""
    fig = go.Figure()
    for name in (catalog.names() if names is None else names):
        entity = catalog.find(name)
        if entity is None:
            raise KeyError(f"No body named '{name}' in catalog")
        plot_trajectory(entity, t, catalog.find_info(name), fig=fig)
    fig.update_layout(title=f'Catalog at t = {t:.0f} s')
    return fig


def plot_ellipse(ellipse: GeneralEllipse, n_points: int = 200,
                 color: Optional[str] = None, name: str = 'Ellipse',
                 show_axes: bool = True, fig: Optional[go.Figure] = None) -> go.Figure:
    """
    Plot an ellipse and, optionally, its principal semi-axes.

    Returns:
        Plotly Figure object
    """
    fig = go.Figure() if fig is None else fig
    points = ellipse.sample(n_points)
    fig.add_trace(go.Scatter3d(
        x=points[:, 0], y=points[:, 1], z=points[:, 2],
        mode='lines',
        line=dict(color=color or config.DEFAULT_TRAJ_COLOR, width=3),
        name=name,
    ))
    if show_axes:
        c = ellipse.center
        for axis, label in zip(ellipse.principal_semi_axes(), ('major', 'minor')):
            fig.add_trace(go.Scatter3d(
                x=[c[0], c[0] + axis[0]], y=[c[1], c[1] + axis[1]], z=[c[2], c[2] + axis[2]],
                mode='lines',
                line=dict(color='gray', width=2, dash='dash'),
                name=f'{name} semi-{label} axis',
            ))
    fig.update_layout(
        scene=dict(xaxis_title='X [km]', yaxis_title='Y [km]', zaxis_title='Z [km]',
                   aspectmode='data'),
        showlegend=True
    )
    return fig
