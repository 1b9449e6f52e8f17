"""
Constant-velocity Kalman filter over (center_x, center_y, width, height).

State vector: [cx, cy, w, h, vx, vy, vw, vh]. The noise constants are unit
free: only their ratios matter, so the same values work for normalized and
pixel coordinates.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


NDIM = 4

# Measurement noise: box size is noisier than box position.
MEASUREMENT_NOISE = np.array([1.0, 1.0, 10.0, 10.0])
# Process noise: velocities change slowly, size velocity slowest.
PROCESS_NOISE = np.array([1.0, 1.0, 1.0, 1.0, 0.01, 0.01, 0.0001, 0.0001])
# Initial covariance: unobserved velocities start very uncertain.
INITIAL_COVARIANCE = np.array([10.0, 10.0, 10.0, 10.0, 1e4, 1e4, 1e4, 1e4])


class ConstantVelocityFilter:
    """
    Linear Kalman filter with a constant-velocity motion model.

    Args:
        measurement: Initial (cx, cy, w, h).
        dt: Time step between consecutive predictions (frames).
    """

    def __init__(self, measurement: Sequence[float], dt: float = 1.0):
        self.dt = dt

        self.F = np.eye(2 * NDIM)
        for i in range(NDIM):
            self.F[i, NDIM + i] = dt
        self.H = np.eye(NDIM, 2 * NDIM)
        self.Q = np.diag(PROCESS_NOISE)
        self.R = np.diag(MEASUREMENT_NOISE)

        self.x = np.zeros(2 * NDIM)
        self.x[:NDIM] = np.asarray(measurement, dtype=float)
        self.P = np.diag(INITIAL_COVARIANCE)

    @property
    def state(self) -> np.ndarray:
        """Current (cx, cy, w, h) estimate."""
        return self.x[:NDIM].copy()

    @property
    def velocity(self) -> np.ndarray:
        return self.x[NDIM:].copy()

    def predict(self) -> np.ndarray:
        """
        Advance the state one step.

        Returns:
            Predicted (cx, cy, w, h).
        """
        # width/height must not be extrapolated through zero
        for i in (2, 3):
            if self.x[i] + self.dt * self.x[NDIM + i] <= 0:
                self.x[NDIM + i] = 0.0

        self.x = self.F @ self.x
        self.P = self.F @ self.P @ self.F.T + self.Q
        return self.state

    def update(self, measurement: Sequence[float]) -> np.ndarray:
        """
        Correct the state with a measured (cx, cy, w, h).

        Returns:
            Corrected (cx, cy, w, h).
        """
        z = np.asarray(measurement, dtype=float)
        innovation = z - self.H @ self.x
        S = self.H @ self.P @ self.H.T + self.R
        # K = P H^T S^-1, via a solve instead of an explicit inverse
        K = np.linalg.solve(S, self.H @ self.P).T

        self.x = self.x + K @ innovation
        self.P = (np.eye(2 * NDIM) - K @ self.H) @ self.P
        return self.state
