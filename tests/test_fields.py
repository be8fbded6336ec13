import numpy as np
import pytest

from poroflow.core.fields import FieldSet, gather_block, scatter_block
from poroflow.mesh.grid_design import build_grid


def test_fieldset_behavior(subtests):
    grid = build_grid(3, 2, 2, 3.0, 2.0, 1.0, "staggered", double_porosity=True)
    fields = grid.create_fields()

    with subtests.test("names_and_shapes"):
        assert fields.names == ("u", "v", "p", "pm")
        assert fields.u.shape == (2, 4)
        assert fields.v.shape == (3, 3)
        assert fields.p.shape == fields.pm.shape == (2, 3)

    with subtests.test("initialization_zero"):
        assert all(np.all(fields[name] == 0.0) for name in fields.names)

    with subtests.test("setitem_writes_in_place"):
        p = fields["p"]
        fields["p"] = np.full((2, 3), 4.0)
        assert fields["p"] is p
        assert np.all(p == 4.0)

    with subtests.test("setitem_checks_shape"):
        with pytest.raises(ValueError):
            fields["p"] = np.zeros((3, 2))

    with subtests.test("copy_and_mutate"):
        snapshot = fields.copy()
        snapshot.fill("p", -1.0)
        assert np.all(fields.p == 4.0)
        assert np.all(snapshot.p == -1.0)


def test_single_porosity_has_no_macro_field():
    fields = build_grid(2, 2, 2, 1.0, 1.0, 1.0, "collocated").create_fields()
    assert "pm" not in fields
    assert fields.pm is None


def test_block_kernels():
    coords = np.array([[0, 1], [1, 0], [1, 2]], dtype=np.int64)
    field = FieldSet({"p": np.zeros((2, 3))})["p"]
    scatter_block(np.array([1.0, 2.0, 3.0]), coords, field)
    assert field[0, 1] == 1.0 and field[1, 0] == 2.0 and field[1, 2] == 3.0

    out = np.zeros(3)
    gather_block(field, coords, out)
    np.testing.assert_array_equal(out, [1.0, 2.0, 3.0])
