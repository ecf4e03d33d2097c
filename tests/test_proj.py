import pytest
from hypothesis import given
from hypothesis import strategies as st

from cadetcore.maths import Vector2, Vector2i, Vector3, magnitude
from cadetcore.proj import Matrix4, Projection, matrix_vector_multiply

IDENTITY = [1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0]

# Camera shared by every table resolution.
A, B, F, G = -0.913545, 0.406737, 3.791398, 24.675402
TABLE_CAMERA = [1.0, 0.0, 0.0, 0.0, 0.0, A, B, F, 0.0, -B, A, G]

coords = st.floats(min_value=-100, max_value=100, allow_nan=False)


def test_matrix_requires_twelve_values():
    with pytest.raises(ValueError):
        Matrix4.from_4x3([1.0] * 11)
    with pytest.raises(ValueError):
        Projection([1.0] * 13, 1.0, 0.0, 0.0, 0.0, 1.0)


def test_matrix_last_row_fixed():
    mat = Matrix4.from_4x3(range(12))
    assert mat.rows[3] == (0.0, 0.0, 0.0, 1.0)
    assert mat.rows[0] == (0.0, 1.0, 2.0, 3.0)


@given(coords, coords, coords)
def test_identity_multiply(x, y, z):
    mat = Matrix4.from_4x3(IDENTITY)
    assert matrix_vector_multiply(mat, Vector3(x, y, z)) == Vector3(x, y, z)


@given(coords, coords, coords)
def test_translation_multiply(x, y, z):
    mat = Matrix4.from_4x3([1, 0, 0, 7, 0, 1, 0, -3, 0, 0, 1, 2])
    result = matrix_vector_multiply(mat, Vector3(x, y, z))
    assert result.x == pytest.approx(x + 7)
    assert result.y == pytest.approx(y - 3)
    assert result.z == pytest.approx(z + 2)


@given(coords, coords, coords)
def test_z_distance_identity_is_magnitude(x, y, z):
    proj = Projection(IDENTITY, 1.0, 0.0, 0.0, 0.0, 1.0)
    vec = Vector3(x, y, z)
    assert proj.z_distance(vec) == pytest.approx(magnitude(vec))


def test_xform_identity_divides_by_depth():
    proj = Projection(IDENTITY, 1.0, 0.0, 0.0, 0.0, 1.0)
    assert proj.xform_to_2d(Vector3(2.0, 4.0, 2.0)) == Vector2i(1, 2)


@given(coords, coords)
def test_xform_2d_equals_3d_at_zero_depth(x, y):
    proj = Projection(TABLE_CAMERA, 500.0, 300.0, 200.0, 0.0, 1.0)
    assert proj.xform_to_2d(Vector2(x, y)) == proj.xform_to_2d(Vector3(x, y, 0.0))


def test_recenter_shifts_output():
    proj = Projection(TABLE_CAMERA, 500.0, 300.0, 200.0, 0.0, 1.0)
    point = Vector3(1.0, 1.0, 0.0)
    before = proj.xform_to_2d(point)
    proj.recenter(310.0, 220.0)
    after = proj.xform_to_2d(point)
    assert after.x - before.x == 10
    assert after.y - before.y == 20


@given(st.floats(min_value=-10, max_value=10), st.floats(min_value=-10, max_value=10))
def test_reverse_xform_round_trip(x, y):
    proj = Projection(TABLE_CAMERA, 1000.0, 300.0, 200.0, 0.0, 1.0)
    pixel = proj.xform_to_2d(Vector3(x, y, 0.0))
    back = proj.reverse_xform(pixel)
    assert back.z == 0.0
    assert back.x == pytest.approx(x, abs=0.1)
    assert back.y == pytest.approx(y, abs=0.1)


def test_normalize_depth_range():
    proj = Projection(IDENTITY, 1.0, 0.0, 0.0, 5.0, 100.0)
    assert proj.normalize_depth(4.0) == 0
    assert proj.normalize_depth(5.0) == 0
    assert proj.normalize_depth(1e12) == 0xFFFF
    assert proj.normalize_depth(6.0) < proj.normalize_depth(7.0)
    assert 0 <= proj.normalize_depth(50.0) <= 0xFFFF