import cv2
import numpy as np
import pytest

from aruco_trace.projection import inverse_rotation
from aruco_trace.trace_types import EulerAngles
from aruco_trace.transforms import (
    compose,
    extract_euler_angles,
    rotation_from_euler,
    rotation_x,
    rotation_y,
    rotation_z,
    rvec_tvec_to_projection,
)


ANGLES = [
    (0.0, 0.0, 0.0),
    (30.0, 0.0, 0.0),
    (0.0, 30.0, 0.0),
    (0.0, 0.0, 30.0),
    (10.0, -20.0, 35.0),
    (-45.0, 60.0, -120.0),
    (150.0, -70.0, 5.0),
]


def _rvec_for(angles):
    rvec, _ = cv2.Rodrigues(rotation_from_euler(EulerAngles(*angles)))
    return rvec


@pytest.mark.parametrize("builder", [rotation_x, rotation_y, rotation_z])
def test_elementary_rotations_are_orthonormal(builder):
    R = builder(37.0)
    assert np.allclose(R @ R.T, np.eye(3), atol=1e-12)
    assert np.isclose(np.linalg.det(R), 1.0)


def test_elementary_rotations_are_right_handed():
    # +90 about Z takes X onto Y
    assert np.allclose(rotation_z(90) @ [1, 0, 0], [0, 1, 0], atol=1e-12)
    assert np.allclose(rotation_x(90) @ [0, 1, 0], [0, 0, 1], atol=1e-12)
    assert np.allclose(rotation_y(90) @ [0, 0, 1], [1, 0, 0], atol=1e-12)


def test_compose_without_arguments_is_identity():
    assert np.allclose(compose(), np.eye(3))


def test_projection_matrix_stacks_rotation_and_translation():
    rvec = np.array([0.1, 0.2, 0.3])
    tvec = np.array([1.0, 2.0, 3.0])

    P = rvec_tvec_to_projection(rvec, tvec)

    R, _ = cv2.Rodrigues(rvec)
    assert P.shape == (3, 4)
    assert np.allclose(P[:, :3], R)
    assert np.allclose(P[:, 3], tvec)


def test_projection_matrix_defaults_to_zero_translation():
    P = rvec_tvec_to_projection(np.zeros((3, 1)))
    assert np.allclose(P, np.hstack([np.eye(3), np.zeros((3, 1))]))


@pytest.mark.parametrize("angles", ANGLES)
def test_extract_euler_angles_recovers_input(angles):
    extracted = extract_euler_angles(_rvec_for(angles), np.array([0.0, 0.0, 5.0]))

    assert extracted.as_tuple() == pytest.approx(angles, abs=1e-4)


def test_translation_does_not_change_angles():
    rvec = _rvec_for((10.0, 20.0, 30.0))
    near = extract_euler_angles(rvec, np.array([0.0, 0.0, 1.0]))
    far = extract_euler_angles(rvec, np.array([5.0, -3.0, 400.0]))
    assert near.as_tuple() == pytest.approx(far.as_tuple(), abs=1e-6)


@pytest.mark.parametrize("angles", ANGLES)
def test_projector_rotation_undoes_extracted_orientation(angles):
    """angles -> R -> extractor -> projector composition round-trips a sample point."""
    R = rotation_from_euler(EulerAngles(*angles))
    rvec, _ = cv2.Rodrigues(R)
    extracted = extract_euler_angles(rvec)
    point = np.array([0.3, -1.2, 2.5])

    rotated = point @ inverse_rotation(extracted)

    # row-vector composition equals R applied to the column vector
    assert np.allclose(rotated, R @ point, atol=1e-6)
    # and R^T brings the point back
    assert np.allclose(R.T @ rotated, point, atol=1e-6)
    assert np.allclose(inverse_rotation(extracted), R.T, atol=1e-6)
