import pytest

from latticeflow.rfi import (
    DATA_POS,
    DATA_R,
    DATA_SIZE,
    Box,
    InterfaceKind,
    RemoteForceInterface,
    Storage,
)


def make(storage=Storage.ARRAY_OF_STRUCTURES, sizes=(2, 3)):
    rfi = RemoteForceInterface(InterfaceKind.FORCE_CALCULATOR, True, storage)
    rfi.set_sizes(sizes)
    rfi.alloc()
    return rfi


def test_names_follow_kind():
    assert RemoteForceInterface(InterfaceKind.FORCE_INTEGRATOR).name == "ForceIntegrator"
    assert RemoteForceInterface(InterfaceKind.FORCE_CALCULATOR).name == "ForceCalculator"


def test_alloc_offsets_and_size():
    rfi = make(sizes=(2, 0, 3))
    assert rfi.size() == 5
    assert rfi.offsets == [0, 2, 2, 5]
    assert rfi.mem_size == 5 * DATA_SIZE
    assert len(rfi.data) == rfi.mem_size


@pytest.mark.parametrize("storage", list(Storage))
def test_raw_indices_cover_table(storage):
    rfi = make(storage)
    indices = {rfi.raw_index(i, j) for i in range(rfi.size()) for j in range(DATA_SIZE)}
    assert indices == set(range(rfi.size() * DATA_SIZE))


def test_array_of_structures_is_contiguous_per_particle():
    rfi = make(Storage.ARRAY_OF_STRUCTURES)
    assert rfi.raw_index(1, 1) == rfi.raw_index(1, 0) + 1


def test_structure_of_arrays_is_contiguous_per_field():
    rfi = make(Storage.STRUCTURE_OF_ARRAYS)
    assert rfi.raw_index(1, 3) == rfi.raw_index(0, 3) + 1
    assert rfi.raw_index(0, 1) - rfi.raw_index(0, 0) == rfi.size()


@pytest.mark.parametrize("storage", list(Storage))
def test_set_get_round_trip(storage):
    rfi = make(storage)
    rfi.set_data(3, DATA_R, 0.25)
    rfi.set_data(3, DATA_POS + 2, 7.5)
    assert rfi.get_rad(3) == 0.25
    assert rfi.get_pos(3, 2) == 7.5
    assert rfi.get_rad(2) == 0.0


def test_units_scale_raw_storage():
    rfi = make()
    rfi.unit[DATA_POS] = 2.0
    rfi.set_data(0, DATA_POS, 3.0)
    assert rfi.data[rfi.raw_index(0, DATA_POS)] == 6.0
    assert rfi.get_pos(0, 0) == 3.0


def test_out_of_range_indices():
    rfi = make()
    with pytest.raises(IndexError):
        rfi.raw_index(rfi.size(), 0)
    with pytest.raises(IndexError):
        rfi.raw_index(0, DATA_SIZE)
    with pytest.raises(IndexError):
        rfi.get_pos(0, 3)


def test_alloc_keeps_data_when_growing():
    rfi = make(sizes=(1,))
    rfi.set_data(0, DATA_R, 4.0)
    rfi.set_sizes([1, 4])
    rfi.alloc()
    assert rfi.size() == 5
    assert rfi.get_rad(0) == 4.0


def test_negative_sizes_rejected():
    rfi = RemoteForceInterface()
    with pytest.raises(ValueError):
        rfi.set_sizes([1, -1])


def test_declare_box_divides_by_meter():
    rfi = RemoteForceInterface()
    rfi.set_units(2.0, 1.0, 1.0)
    box = rfi.declare_simple_box(0.0, 4.0, 2.0, 6.0, -2.0, 8.0)
    assert box == Box(True, (0.0, 1.0, -1.0), (2.0, 3.0, 4.0))
    assert rfi.box.declared is True
    assert rfi.non_trivial_units is True


def test_units_locked_after_connection():
    rfi = RemoteForceInterface()
    rfi.connected = True
    with pytest.raises(RuntimeError):
        rfi.set_units(1.0, 1.0, 1.0)
    with pytest.raises(RuntimeError):
        rfi.can_cope_with_units(False)


def test_can_cope_with_units_flag():
    rfi = RemoteForceInterface()
    rfi.can_cope_with_units(False)
    assert rfi.can_cope is False


def test_enable_stats_clamps_iterations():
    rfi = RemoteForceInterface()
    rfi.enable_stats(None, 0)
    assert rfi.stats is True
    assert rfi.stats_prefix == ""
    assert rfi.stats_iter == 1
    rfi.enable_stats("run", 200)
    assert (rfi.stats_prefix, rfi.stats_iter) == ("run", 200)