import pytest

from zinx.aoi import AOIManager, Grid


@pytest.fixture
def mgr():
    return AOIManager(0, 250, 5, 0, 250, 5)


def test_new_manager_str_and_grids():
    m = AOIManager(100, 300, 4, 200, 450, 5)
    text = str(m)
    assert text.startswith(
        "AOIManagr:\nminX:100, maxX:300, cntsX:4, minY:200, maxY:450, cntsY:5\n"
        " GrIDs in AOI Manager:\n"
    )
    assert len(m.grids) == 20
    first = m.grids[0]
    assert (first.min_x, first.max_x, first.min_y, first.max_y) == (100, 150, 200, 250)
    assert text.count("GrID ID:") == 20


def test_surround_corner(mgr):
    assert [g.gid for g in mgr.surround_grids_by_gid(0)] == [0, 5, 1, 6]


def test_surround_inner(mgr):
    assert [g.gid for g in mgr.surround_grids_by_gid(12)] == [12, 6, 11, 16, 7, 17, 8, 13, 18]


def test_surround_sizes(mgr):
    sizes = sorted(len(mgr.surround_grids_by_gid(gid)) for gid in mgr.grids)
    assert sizes.count(4) == 4
    assert sizes.count(6) == 12
    assert sizes.count(9) == 9


def test_surround_unknown_gid(mgr):
    assert mgr.surround_grids_by_gid(99) == []


def test_gid_by_pos(mgr):
    assert mgr.gid_by_pos(75.0, 130.0) == 11
    assert mgr.gid_by_pos(-10.0, 0.0) == 0


def test_add_and_remove_by_pos(mgr):
    mgr.add_to_grid_by_pos(7, 75.0, 130.0)
    assert mgr.pids_by_gid(11) == [7]
    assert 7 in mgr.pids_by_pos(30.0, 80.0)
    mgr.remove_from_grid_by_pos(7, 75.0, 130.0)
    assert mgr.pids_by_gid(11) == []


def test_add_remove_pid_to_grid(mgr):
    mgr.add_pid_to_grid(3, 4)
    mgr.add_pid_to_grid(1, 4)
    assert mgr.pids_by_gid(4) == [1, 3]
    mgr.remove_pid_from_grid(3, 4)
    assert mgr.pids_by_gid(4) == [1]


def test_pids_by_gid_unknown(mgr):
    with pytest.raises(KeyError):
        mgr.pids_by_gid(1000)


def test_grid_str():
    g = Grid(2, 0, 50, 0, 50)
    g.add(5)
    g.add(1)
    assert str(g) == "GrID ID: 2, minX:0, maxX:50, minY:0, maxY:50, playerIDs:map[1:true 5:true]"
    g.remove(5)
    g.remove(9)
    assert g.player_ids() == [1]