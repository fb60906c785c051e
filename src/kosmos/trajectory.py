'''Trajectories: functions from simulation time to position and velocity
Trajectory capability and its concrete variants'''

import io
import warnings
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd
import plotly.graph_objects as go
from .config import config
from .constants import jd_to_seconds
from .orbital_elements import OrbitalElements, mean_to_true_anomaly
from .utils import as_vector3

class Trajectory(ABC):
    """
    A time-position function with continuous-time state access.

    Subclasses implement state(t), returning the 6-element state
    [x, y, z, vx, vy, vz] in km and km/s at simulation time t (TDB seconds
    since J2000) relative to the trajectory's center. Trajectories are
    immutable once constructed.

    Attributes:
        period: approximate orbital period [s], 0.0 if not periodic.
            Used by callers to size plotting windows.
        valid_range: (t0, tf) bounds of evaluation, or None if unbounded
    """
    # ========== CONSTRUCTION ==========
    def __init__(self, period: float = 0.0,
                 valid_range: Optional[Tuple[float, float]] = None):
        if period < 0 or not np.isfinite(period):
            raise ValueError(f"Period must be finite and non-negative, got {period}")
        if valid_range is not None:
            t0, tf = float(valid_range[0]), float(valid_range[1])
            if t0 > tf:
                raise ValueError(f"Invalid valid range [{t0}, {tf}]")
            valid_range = (t0, tf)
        self._period = float(period)
        self._valid_range = valid_range

    # ========== PROPERTY ACCESS ==========
    @property
    def period(self) -> float:
        return self._period

    @property
    def is_periodic(self) -> bool:
        return self._period > 0.0

    @property
    def valid_range(self) -> Optional[Tuple[float, float]]:
        return self._valid_range

    # ========== EVALUATION ==========
    @abstractmethod
    def state(self, t: float) -> np.ndarray:
        """Get state [x, y, z, vx, vy, vz] at time t."""

    def position(self, t: float) -> np.ndarray:
        """Get position [km] at time t."""
        return self.state(t)[:3]

    def velocity(self, t: float) -> np.ndarray:
        """Get velocity [km/s] at time t."""
        return self.state(t)[3:]

    def evaluate(self, times: Union[float, np.ndarray, list]) -> np.ndarray:
        """
        Evaluate at one or more times, returning raw arrays.

        Parameters:
            times: Single time or array of times

        Returns:
            State array of shape (6,) if times is scalar,
            Array of shape (n_times, 6) if times is array-like
        """
        if np.isscalar(times):
            return self.state(float(times))
        times = np.asarray(times, dtype=float)
        return np.array([self.state(t) for t in times]).reshape(len(times), 6)

    def get_times(self, t_start: Optional[float] = None,
                  t_end: Optional[float] = None,
                  n_points: int = 100) -> np.ndarray:
        """
        Generate uniform time array.

        Defaults to the valid range; unbounded trajectories need explicit limits.
        """
        if t_start is None or t_end is None:
            if self._valid_range is None:
                raise ValueError("Trajectory is unbounded, provide t_start and t_end")
            t_start = self._valid_range[0] if t_start is None else t_start
            t_end = self._valid_range[1] if t_end is None else t_end
        return np.linspace(t_start, t_end, n_points)

    def sample(self, t_start: Optional[float] = None,
               t_end: Optional[float] = None,
               n_points: int = 100) -> np.ndarray:
        """
        Uniformly sample trajectory in time, returning raw arrays.

        Parameters:
            t_start, t_end: Sampling window (default: valid range)
            n_points: Number of points to sample (default: 100)

        Returns:
            Array of shape (n_points, 6) with uniformly spaced states
        """
        if n_points < 2:
            raise ValueError("n_points must be at least 2, use .state()")
        return self.evaluate(self.get_times(t_start, t_end, n_points))

    def contains_time(self, t: float) -> bool:
        """Check if time is within trajectory bounds."""
        if self._valid_range is None:
            return True
        return self._valid_range[0] <= t <= self._valid_range[1]

    def _validate_time(self, t: float):
        """Validate that time is within trajectory bounds."""
        if not self.contains_time(t):
            raise ValueError(
                f"Time {t} outside trajectory bounds "
                f"[{self._valid_range[0]}, {self._valid_range[1]}]"
            )

    def to_dataframe(self,
                     times: Optional[np.ndarray] = None,
                     n_points: int = 1000) -> pd.DataFrame:
        """
        Export trajectory to pandas DataFrame.

        Parameters:
            times: Specific times to evaluate. If None, uses uniform sampling
                over the valid range.
            n_points: Number of uniform samples if times not provided (default: 1000)

        Returns:
            DataFrame with columns for time and state components
        """
        if times is None:
            times = self.get_times(n_points=n_points)
        else:
            times = np.asarray(times, dtype=float)
        states = self.evaluate(times)
        return pd.DataFrame({
            'time': times,
            'x': states[:, 0],
            'y': states[:, 1],
            'z': states[:, 2],
            'vx': states[:, 3],
            'vy': states[:, 4],
            'vz': states[:, 5],
        })

    # ========== SPECIAL METHODS ==========
    def __call__(self, t: float) -> np.ndarray:
        """
        Evaluate trajectory at time t.
        Syntactic sugar for .state(t). Allows traj(t) syntax.
        """
        return self.state(t)

    def __repr__(self):
        return f"{type(self).__name__}(period={self._period})"

    # ========== PLOTTING ==========
    def plot_3d(self, t_start: Optional[float] = None,
                t_end: Optional[float] = None,
                n_points: Optional[int] = None,
                traj_color: Optional[str] = None,
                show_center: bool = True) -> go.Figure:
        """
        Create 3D plot of trajectory relative to its center.

        Parameters:
            t_start, t_end: Plot window (default: valid range, or one period
                starting at t=0 for unbounded periodic trajectories)
            n_points: Number of points to sample trajectory (default: config)
            traj_color: Color of trajectory line (default: config)
            show_center: Mark the trajectory center with a point (default: True)

        Returns:
            Plotly Figure object
        """
        n_points = config.DEFAULT_PLOT_POINTS if n_points is None else n_points
        if (t_start is None or t_end is None) and self._valid_range is None:
            if not self.is_periodic:
                raise ValueError("Aperiodic unbounded trajectory, provide t_start and t_end")
            t_start = 0.0 if t_start is None else t_start
            t_end = t_start + self._period if t_end is None else t_end
        fig = go.Figure()
        if show_center:
            fig.add_trace(go.Scatter3d(
                x=[0], y=[0], z=[0],
                mode='markers',
                marker=dict(color=config.DEFAULT_BODY_COLOR, size=6),
                name='Center'
            ))
        self.add_to_plot(fig, t_start, t_end, n_points=n_points,
                         color=traj_color or config.DEFAULT_TRAJ_COLOR,
                         name='Trajectory')
        fig.update_layout(
            scene=dict(
                xaxis_title='X [km]',
                yaxis_title='Y [km]',
                zaxis_title='Z [km]',
                aspectmode='data'
            ),
            title='Trajectory',
            showlegend=True
        )
        return fig

    def add_to_plot(self, fig: go.Figure,
                    t_start: Optional[float] = None,
                    t_end: Optional[float] = None,
                    n_points: int = 1000, color: str = 'blue',
                    name: Optional[str] = None, offset=None,
                    **kwargs) -> go.Figure:
        """
        Add this trajectory to an existing Plotly figure.

        Parameters:
            fig: Existing Plotly Figure object
            t_start, t_end: Sampling window
            n_points: Number of points to sample trajectory (default: 1000)
            color: Color of trajectory line (default: 'blue')
            name: Legend name for this trajectory (default: 'Trajectory N')
            offset: Optional 3-vector added to every sampled position
            **kwargs: Additional arguments passed to Scatter3d

        Returns:
            Updated Plotly Figure object (same object, modified in place)
        """
        positions = self.sample(t_start, t_end, n_points)[:, 0:3]
        if offset is not None:
            positions = positions + np.asarray(offset, dtype=float)
        if name is None:
            n_existing = sum(1 for trace in fig.data if isinstance(trace, go.Scatter3d))
            name = f'Trajectory {n_existing + 1}'
        fig.add_trace(go.Scatter3d(
            x=positions[:, 0],
            y=positions[:, 1],
            z=positions[:, 2],
            mode='lines',
            line=dict(color=color, width=3),
            name=name,
            hovertemplate='x: %{x:.1f}<br>y: %{y:.1f}<br>z: %{z:.1f}<extra></extra>',
            **kwargs
        ))
        return fig


class FixedPointTrajectory(Trajectory):
    """A trajectory that stays at one position with zero velocity."""

    def __init__(self, position=(0.0, 0.0, 0.0)):
        super().__init__()
        self._state = np.concatenate([as_vector3(position, "position"), np.zeros(3)])
        self._state.flags.writeable = False

    def state(self, t: float) -> np.ndarray:
        return self._state.copy()

    def __repr__(self):
        return f"FixedPointTrajectory(position={self._state[:3].tolist()})"


class KeplerianTrajectory(Trajectory):
    """
    Two-body elliptical motion from mean elements at an epoch.

    Parameters
    ----------
    semi_major_axis : float
        Semi-major axis [km]
    eccentricity : float
        Eccentricity, 0 <= e < 1
    inclination, ascending_node, arg_of_periapsis, mean_anomaly : float
        Angles [rad]; mean anomaly is taken at epoch
    epoch : float
        Epoch of the elements [s since J2000]
    period : float, optional
        Orbital period [s]. Either period or mu must be given
    mu : float, optional
        Gravitational parameter of the attracting body [km³/s²]
    """

    def __init__(self, semi_major_axis: float, eccentricity: float,
                 inclination: float = 0.0, ascending_node: float = 0.0,
                 arg_of_periapsis: float = 0.0, mean_anomaly: float = 0.0,
                 epoch: float = 0.0, period: Optional[float] = None,
                 mu: Optional[float] = None):
        if period is None and mu is None:
            raise ValueError("KeplerianTrajectory requires period or mu")
        if not 0 <= eccentricity < 1:
            raise ValueError(f"KeplerianTrajectory requires an elliptic orbit, "
                             f"got e={eccentricity}")
        if semi_major_axis <= 0:
            raise ValueError(f"Semi-major axis must be positive, got {semi_major_axis}")
        if period is None:
            period = 2*np.pi*np.sqrt(semi_major_axis**3 / mu)
        elif period <= 0:
            raise ValueError(f"Period must be positive, got {period}")
        super().__init__(period=period)
        self._mean_motion = 2*np.pi / period
        # gravitational parameter consistent with the period, so that
        # velocities match the motion actually produced
        self._mu = self._mean_motion**2 * semi_major_axis**3
        self._elements = np.array([semi_major_axis, eccentricity, inclination,
                                   ascending_node, arg_of_periapsis], dtype=float)
        self._mean_anomaly = float(mean_anomaly)
        self._epoch = float(epoch)

    @classmethod
    def from_elements(cls, elements: OrbitalElements, epoch: float = 0.0):
        """Create from an OrbitalElements state (true anomaly) at epoch."""
        kep = elements.to_keplerian()
        a, e, i, omega, w, nu = kep.elements
        E = 2*np.arctan2(np.sqrt(1 - e)*np.sin(nu/2), np.sqrt(1 + e)*np.cos(nu/2))
        return cls(a, e, i, omega, w, E - e*np.sin(E), epoch=epoch, mu=kep.mu)

    @property
    def mu(self) -> float:
        return self._mu

    @property
    def epoch(self) -> float:
        return self._epoch

    def elements_at(self, t: float) -> OrbitalElements:
        """Osculating Keplerian elements [a, e, i, Ω, ω, ν] at time t."""
        a, e, i, omega, w = self._elements
        M = self._mean_anomaly + self._mean_motion*(t - self._epoch)
        nu = mean_to_true_anomaly(M, e)
        return OrbitalElements.keplerian([a, e, i, omega, w, nu], mu=self._mu)

    def state(self, t: float) -> np.ndarray:
        return self.elements_at(t).to_cartesian().elements.copy()

    def __repr__(self):
        a, e = self._elements[:2]
        return f"KeplerianTrajectory(a={a}, e={e}, period={self._period})"


TrajectoryTerm = Tuple[Trajectory, float]


class LinearCombinationTrajectory(Trajectory):
    """
    Weighted sum of trajectories.

    Evaluating at time t returns Σ weight_i · state_i(t). The period is
    assigned by the caller rather than derived, because a sum of periodic
    motions is not periodic in general; it is only a plotting hint.
    If any term fails to evaluate, the whole evaluation fails.
    """

    def __init__(self, terms: Sequence[TrajectoryTerm], period: float = 0.0):
        terms = [(traj, float(weight)) for traj, weight in terms]
        if not terms:
            raise ValueError("LinearCombinationTrajectory requires at least one term")
        for traj, weight in terms:
            if not isinstance(traj, Trajectory):
                raise TypeError(f"Terms must be Trajectory objects, got {type(traj)}")
            if not np.isfinite(weight):
                raise ValueError(f"Weights must be finite, got {weight}")
        super().__init__(period=period, valid_range=self._intersect_ranges(terms))
        self._terms = tuple(terms)

    @staticmethod
    def _intersect_ranges(terms):
        ranges = [traj.valid_range for traj, _ in terms if traj.valid_range is not None]
        if not ranges:
            return None
        t0 = max(r[0] for r in ranges)
        tf = min(r[1] for r in ranges)
        if t0 > tf:
            raise ValueError("Trajectory terms have disjoint valid ranges")
        return (t0, tf)

    @property
    def terms(self) -> Tuple[TrajectoryTerm, ...]:
        return self._terms

    def state(self, t: float) -> np.ndarray:
        result = np.zeros(6)
        for traj, weight in self._terms:
            result += weight * traj.state(t)
        return result

    def __repr__(self):
        return (f"LinearCombinationTrajectory(n_terms={len(self._terms)}, "
                f"period={self._period})")


def combine(terms: Sequence[TrajectoryTerm],
            period_source: Optional[Trajectory] = None) -> LinearCombinationTrajectory:
    """
    Build a linear combination of trajectories.

    Parameters
    ----------
    terms : sequence of (Trajectory, weight)
        Ordered terms of the sum
    period_source : Trajectory, optional
        Trajectory whose period is copied to the result. If omitted, the
        term with the largest |weight| is used; a UserWarning is issued when
        several terms tie for that with different periods.

    Examples
    --------
    >>> heliocentric = combine([(mars_ssb, 1.0), (sun_ssb, -1.0)], period_source=mars_ssb)
    """
    terms = list(terms)
    if period_source is None and terms:
        largest = max(abs(weight) for _, weight in terms)
        candidates = [traj for traj, weight in terms if abs(weight) == largest]
        if len({traj.period for traj in candidates}) > 1:
            warnings.warn(
                "Dominant term of linear combination is ambiguous; "
                "using the period of the first term with the largest weight",
                UserWarning, stacklevel=2)
        period_source = candidates[0]
    period = period_source.period if period_source is not None else 0.0
    return LinearCombinationTrajectory(terms, period=period)


class InterpolatedStatesTrajectory(Trajectory):
    """
    Trajectory interpolated from a table of sampled states.

    Cubic Hermite interpolation is used when velocities are tabulated,
    linear interpolation otherwise.

    Parameters
    ----------
    times : array-like
        Strictly increasing sample times [s since J2000], at least two
    states : array-like
        Array of shape (n, 3) positions or (n, 6) positions and velocities
    period : float, optional
        Plotting hint [s]
    """

    def __init__(self, times, states, period: float = 0.0):
        times = np.asarray(times, dtype=float)
        states = np.asarray(states, dtype=float)
        if times.ndim != 1 or len(times) < 2:
            raise ValueError("At least two sample times are required")
        if states.ndim != 2 or states.shape[0] != len(times) or states.shape[1] not in (3, 6):
            raise ValueError(f"States must have shape ({len(times)}, 3) or "
                             f"({len(times)}, 6), got {states.shape}")
        if np.any(np.diff(times) <= 0):
            raise ValueError("Sample times must be strictly increasing")
        super().__init__(period=period, valid_range=(times[0], times[-1]))
        self._times = times
        self._states = states
        self._times.flags.writeable = False
        self._states.flags.writeable = False

    @classmethod
    def from_text(cls, text: str, period: float = 0.0):
        """
        Parse a state table: one sample per line, 'jd x y z' or
        'jd x y z vx vy vz' (Julian date TDB, km, km/s), '#' comments.
        """
        table = np.loadtxt(io.StringIO(text), comments='#', ndmin=2)
        if table.shape[1] not in (4, 7):
            raise ValueError(f"State table rows must have 4 or 7 columns, "
                             f"got {table.shape[1]}")
        return cls(jd_to_seconds(table[:, 0]), table[:, 1:], period=period)

    @property
    def has_velocities(self) -> bool:
        return self._states.shape[1] == 6

    def state(self, t: float) -> np.ndarray:
        self._validate_time(t)
        k = int(np.clip(np.searchsorted(self._times, t, side='right') - 1,
                        0, len(self._times) - 2))
        h = self._times[k+1] - self._times[k]
        s = (t - self._times[k]) / h
        p0, p1 = self._states[k, :3], self._states[k+1, :3]
        if not self.has_velocities:
            return np.concatenate([(1 - s)*p0 + s*p1, (p1 - p0)/h])
        v0, v1 = self._states[k, 3:], self._states[k+1, 3:]
        # cubic Hermite basis and its derivative
        h00, h10 = 2*s**3 - 3*s**2 + 1, s**3 - 2*s**2 + s
        h01, h11 = -2*s**3 + 3*s**2, s**3 - s**2
        d00, d10 = 6*s**2 - 6*s, 3*s**2 - 4*s + 1
        d01, d11 = -6*s**2 + 6*s, 3*s**2 - 2*s
        pos = h00*p0 + h10*h*v0 + h01*p1 + h11*h*v1
        vel = (d00*p0 + d10*h*v0 + d01*p1 + d11*h*v1) / h
        return np.concatenate([pos, vel])

    def __repr__(self):
        return (f"InterpolatedStatesTrajectory(n_samples={len(self._times)}, "
                f"t0={self._times[0]}, tf={self._times[-1]})")
