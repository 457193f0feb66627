"""Area-of-interest management: a map divided into a grid of cells holding player IDs."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

AOI_MIN_X = 85
AOI_MAX_X = 410
AOI_CNTS_X = 10
AOI_MIN_Y = 75
AOI_MAX_Y = 400
AOI_CNTS_Y = 20

# Neighbour offsets, in the order their cells are reported.
_NEIGHBOURS = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))


def _trunc_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


@dataclass
class Grid:
    """One cell of the map and the players currently inside it."""

    gid: int
    min_x: int
    max_x: int
    min_y: int
    max_y: int
    _players: set = field(default_factory=set, init=False, repr=False, compare=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def add(self, player_id: int) -> None:
        with self._lock:
            self._players.add(player_id)

    def remove(self, player_id: int) -> None:
        with self._lock:
            self._players.discard(player_id)

    def player_ids(self) -> list[int]:
        """The IDs of all players in this cell, in ascending order."""
        with self._lock:
            return sorted(self._players)

    def __str__(self) -> str:
        members = " ".join(f"{pid}:true" for pid in self.player_ids())
        return (
            f"GrID ID: {self.gid}, minX:{self.min_x}, maxX:{self.max_x}, "
            f"minY:{self.min_y}, maxY:{self.max_y}, playerIDs:map[{members}]"
        )


class AOIManager:
    """A rectangle split into ``cnts_x`` by ``cnts_y`` cells, numbered row by row."""

    def __init__(
        self, min_x: int, max_x: int, cnts_x: int, min_y: int, max_y: int, cnts_y: int
    ) -> None:
        self.min_x = min_x
        self.max_x = max_x
        self.cnts_x = cnts_x
        self.min_y = min_y
        self.max_y = max_y
        self.cnts_y = cnts_y
        width, length = self.grid_width, self.grid_length
        self.grids: dict[int, Grid] = {}
        for y in range(cnts_y):
            for x in range(cnts_x):
                gid = y * cnts_x + x
                self.grids[gid] = Grid(
                    gid,
                    min_x + x * width,
                    min_x + (x + 1) * width,
                    min_y + y * length,
                    min_y + (y + 1) * length,
                )

    @property
    def grid_width(self) -> int:
        """Width of a cell along x."""
        return _trunc_div(self.max_x - self.min_x, self.cnts_x)

    @property
    def grid_length(self) -> int:
        """Length of a cell along y."""
        return _trunc_div(self.max_y - self.min_y, self.cnts_y)

    def __str__(self) -> str:
        head = (
            f"AOIManagr:\nminX:{self.min_x}, maxX:{self.max_x}, cntsX:{self.cnts_x}, "
            f"minY:{self.min_y}, maxY:{self.max_y}, cntsY:{self.cnts_y}\n GrIDs in AOI Manager:\n"
        )
        return head + "".join(f"{self.grids[gid]}\n" for gid in sorted(self.grids))

    def surround_grids_by_gid(self, gid: int) -> list[Grid]:
        """The cell ``gid`` followed by its in-bounds neighbours; empty if ``gid`` is unknown."""
        centre = self.grids.get(gid)
        if centre is None:
            return []
        x, y = gid % self.cnts_x, gid // self.cnts_x
        result = [centre]
        for dx, dy in _NEIGHBOURS:
            nx, ny = x + dx, y + dy
            if 0 <= nx < self.cnts_x and 0 <= ny < self.cnts_y:
                result.append(self.grids[ny * self.cnts_x + nx])
        return result

    def gid_by_pos(self, x: float, y: float) -> int:
        """The ID of the cell containing the point ``(x, y)``."""
        gx = _trunc_div(int(x) - self.min_x, self.grid_width)
        gy = _trunc_div(int(y) - self.min_y, self.grid_length)
        return gy * self.cnts_x + gx

    def pids_by_pos(self, x: float, y: float) -> list[int]:
        """All player IDs in the cell at ``(x, y)`` and its neighbours."""
        return [
            pid
            for grid in self.surround_grids_by_gid(self.gid_by_pos(x, y))
            for pid in grid.player_ids()
        ]

    def pids_by_gid(self, gid: int) -> list[int]:
        """All player IDs in cell ``gid``."""
        return self.grids[gid].player_ids()

    def remove_pid_from_grid(self, pid: int, gid: int) -> None:
        self.grids[gid].remove(pid)

    def add_pid_to_grid(self, pid: int, gid: int) -> None:
        self.grids[gid].add(pid)

    def add_to_grid_by_pos(self, pid: int, x: float, y: float) -> None:
        """Put player ``pid`` into the cell containing ``(x, y)``."""
        self.grids[self.gid_by_pos(x, y)].add(pid)

    def remove_from_grid_by_pos(self, pid: int, x: float, y: float) -> None:
        """Take player ``pid`` out of the cell containing ``(x, y)``."""
        self.grids[self.gid_by_pos(x, y)].remove(pid)