import pytest

from latticeflow.esys import DivisionError, choose_division, parse_periodic, write_script


@pytest.mark.parametrize(
    "value, expected",
    [
        ("", (False, False, False)),
        ("x", (True, False, False)),
        ("x+z", (True, False, True)),
        ("x+y+z", (True, True, True)),
        (None, (False, False, False)),
    ],
)
def test_parse_periodic(value, expected):
    assert parse_periodic(value) == expected


def test_parse_periodic_rejects_unknown():
    with pytest.raises(ValueError):
        parse_periodic("z+x")


def test_no_workers():
    with pytest.raises(DivisionError):
        choose_division(0, (1, 1, 1))


def test_division_uses_all_workers():
    nx, ny, nz = choose_division(4, (2, 2, 1))
    assert nx * ny * nz == 4
    assert 2 % ny == 0 and nz == 1


def test_periodic_x_needs_two_workers():
    with pytest.raises(DivisionError):
        choose_division(1, (1, 1, 1), (True, False, False))


def test_periodic_x_division():
    nx, ny, nz = choose_division(2, (1, 1, 1), (True, False, False))
    assert (ny, nz) == (1, 1)
    assert nx >= 2


def test_periodic_y_division():
    nx, ny, nz = choose_division(2, (1, 1, 1), (False, True, False))
    assert ny >= 2
    assert nx * ny * nz == 2


def test_write_script(tmp_path):
    path = tmp_path / "run_ESYS.py"
    text = write_script(
        path, "sim", (2, 2, 1), "NRotSphere", 25.0, 5.0, (10.0, 20.0, 30.0),
        (True, False, False), 0.5, 100, "solver", "out_ESYS", "print(1)",
    )
    assert path.read_text() == text
    lines = text.splitlines()
    assert lines[0] == "from esys.lsm import *"
    assert "sim = LsmMpi(numWorkerProcesses=4, mpiDimList=[2,2,1])" in lines
    assert "circDimList = [True, False, False]" in text
    assert "Vec3(10,20,30)" in text
    assert "sim.setNumTimeSteps(100)" in lines
    assert 'remote_name="solver"' in text
    assert 'output_prefix="out_ESYS"' in lines
    assert lines[-2] == "print(1)"
    assert lines[-1] == "sim.run()"


def test_write_script_rejects_particle_type(tmp_path):
    with pytest.raises(ValueError):
        write_script(
            tmp_path / "s.py", "sim", (1, 1, 1), "Cube", 25.0, 5.0, (1.0, 1.0, 1.0),
            (False, False, False), 1.0, 1, "solver", "out", "",
        )
    assert not (tmp_path / "s.py").exists()