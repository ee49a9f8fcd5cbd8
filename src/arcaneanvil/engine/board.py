from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from dataclasses import replace

from .types import (
    RUNE_KINDS,
    AreaClearEffect,
    BombEffect,
    ColorChangeEffect,
    Coordinate,
    LineClearEffect,
    MultiplierEffect,
    Rune,
    RuneKind,
    SpecialEffect,
)


class Board:
    """Grid of runes addressed by Coordinate(x, y); y grows downward.

    Out-of-range coordinates and empty cells are silently ignored by every
    mutating operation. Callers detect rejection by inspecting state.
    """

    def __init__(self, width: int, height: int, rng: random.Random, *, smart_fill: bool = True) -> None:
        if width < 1 or height < 1:
            raise ValueError("Board dimensions must be positive.")
        self.width = width
        self.height = height
        self.smart_fill = smart_fill
        self._rng = rng
        self._next_id = 1
        self._cells: list[list[Rune | None]] = [[None] * width for _ in range(height)]

    @staticmethod
    def from_kinds(
        rows: Sequence[Sequence[RuneKind | None]],
        rng: random.Random | None = None,
        *,
        smart_fill: bool = True,
    ) -> "Board":
        """Build a board from a fixed layout, one sequence per row (top row first)."""
        if not rows or not rows[0]:
            raise ValueError("Layout must have at least one row and column.")
        width = len(rows[0])
        if any(len(r) != width for r in rows):
            raise ValueError("Layout rows must all have the same length.")
        board = Board(width, len(rows), rng or random.Random(0), smart_fill=smart_fill)
        for y, row in enumerate(rows):
            for x, kind in enumerate(row):
                if kind is not None:
                    board._cells[y][x] = board._new_rune(kind)
        return board

    # -------- Access --------
    def is_valid(self, coord: Coordinate) -> bool:
        return 0 <= coord.x < self.width and 0 <= coord.y < self.height

    def rune_at(self, coord: Coordinate) -> Rune | None:
        if not self.is_valid(coord):
            return None
        return self._cells[coord.y][coord.x]

    def kind_at(self, coord: Coordinate) -> RuneKind | None:
        rune = self.rune_at(coord)
        return rune.kind if rune is not None else None

    def coordinates(self) -> Iterable[Coordinate]:
        for y in range(self.height):
            for x in range(self.width):
                yield Coordinate(x, y)

    def empty_cells(self) -> list[Coordinate]:
        return [c for c in self.coordinates() if self._cells[c.y][c.x] is None]

    def is_full(self) -> bool:
        return not self.empty_cells()

    def rows(self) -> list[list[Rune | None]]:
        return [list(row) for row in self._cells]

    # -------- Rune creation --------
    def _new_rune(self, kind: RuneKind) -> Rune:
        rune = Rune.basic(self._next_id, kind)
        self._next_id += 1
        return rune

    def _random_rune(self) -> Rune:
        return self._new_rune(self._rng.choice(RUNE_KINDS))

    def _completes_run(self, x: int, y: int, kind: RuneKind) -> bool:
        # Only cells left of and above (x, y) are filled during a row-major fill.
        if x >= 2:
            left1 = self._cells[y][x - 1]
            left2 = self._cells[y][x - 2]
            if left1 is not None and left2 is not None and left1.kind == kind and left2.kind == kind:
                return True
        if y >= 2:
            up1 = self._cells[y - 1][x]
            up2 = self._cells[y - 2][x]
            if up1 is not None and up2 is not None and up1.kind == kind and up2.kind == kind:
                return True
        return False

    def fill_board(self) -> None:
        """Repopulate every cell. With smart_fill, no cell completes a run of three."""
        self._cells = [[None] * self.width for _ in range(self.height)]
        for y in range(self.height):
            for x in range(self.width):
                if not self.smart_fill:
                    self._cells[y][x] = self._random_rune()
                    continue
                allowed = [k for k in RUNE_KINDS if not self._completes_run(x, y, k)]
                self._cells[y][x] = self._new_rune(self._rng.choice(allowed))

    # -------- Moves --------
    def swap_runes(self, a: Coordinate, b: Coordinate) -> None:
        if not self.is_valid(a) or not self.is_valid(b):
            return
        self._cells[a.y][a.x], self._cells[b.y][b.x] = self._cells[b.y][b.x], self._cells[a.y][a.x]

    def find_matches(self) -> set[Coordinate]:
        """All cells belonging to a run of three or more same-kind runes in a row or column."""
        matched: set[Coordinate] = set()

        for y in range(self.height):
            x = 0
            while x < self.width:
                rune = self._cells[y][x]
                if rune is None:
                    x += 1
                    continue
                length = 1
                while x + length < self.width:
                    nxt = self._cells[y][x + length]
                    if nxt is None or nxt.kind != rune.kind:
                        break
                    length += 1
                if length >= 3:
                    matched.update(Coordinate(x + i, y) for i in range(length))
                x += length

        for x in range(self.width):
            y = 0
            while y < self.height:
                rune = self._cells[y][x]
                if rune is None:
                    y += 1
                    continue
                length = 1
                while y + length < self.height:
                    nxt = self._cells[y + length][x]
                    if nxt is None or nxt.kind != rune.kind:
                        break
                    length += 1
                if length >= 3:
                    matched.update(Coordinate(x, y + i) for i in range(length))
                y += length

        return matched

    def find_possible_moves(self) -> list[tuple[Coordinate, Coordinate]]:
        """Adjacent swaps (right and down neighbours) that would produce a match."""
        moves: list[tuple[Coordinate, Coordinate]] = []
        for c in self.coordinates():
            for n in (Coordinate(c.x + 1, c.y), Coordinate(c.x, c.y + 1)):
                if not self.is_valid(n):
                    continue
                self.swap_runes(c, n)
                has_match = bool(self.find_matches())
                self.swap_runes(c, n)
                if has_match:
                    moves.append((c, n))
        return moves

    # -------- Special effects --------
    def set_special_effect(self, coord: Coordinate, effect: SpecialEffect | None) -> None:
        rune = self.rune_at(coord)
        if rune is None:
            return
        power = 2 if effect is not None else 1
        self._cells[coord.y][coord.x] = replace(rune, effect=effect, power_level=power)

    def area_of_effect(self, effect: SpecialEffect, center: Coordinate) -> set[Coordinate]:
        affected: set[Coordinate] = set()
        if isinstance(effect, BombEffect):
            for dy in (-1, 0, 1):
                for dx in (-1, 0, 1):
                    c = Coordinate(center.x + dx, center.y + dy)
                    if self.is_valid(c):
                        affected.add(c)
        elif isinstance(effect, LineClearEffect):
            if effect.axis in ("horizontal", "cross"):
                affected.update(Coordinate(x, center.y) for x in range(self.width))
            if effect.axis in ("vertical", "cross"):
                affected.update(Coordinate(center.x, y) for y in range(self.height))
        elif isinstance(effect, ColorChangeEffect):
            kind = self.kind_at(center)
            if kind is not None:
                affected.update(c for c in self.coordinates() if self.kind_at(c) == kind)
        elif isinstance(effect, AreaClearEffect):
            r = effect.radius
            for dy in range(-r, r + 1):
                for dx in range(-r, r + 1):
                    if abs(dx) + abs(dy) > r:
                        continue
                    c = Coordinate(center.x + dx, center.y + dy)
                    if self.is_valid(c):
                        affected.add(c)
        elif isinstance(effect, MultiplierEffect):
            # scoring marker only
            pass
        return affected

    def removal_set(self, coords: Iterable[Coordinate]) -> set[Coordinate]:
        """The matched cells plus the areas of every special effect among them.

        Detonation is a single pass: specials caught inside another blast are
        removed as ordinary runes and do not expand the set further.
        """
        to_clear = {c for c in coords if self.is_valid(c)}
        for coord in list(to_clear):
            rune = self.rune_at(coord)
            if rune is None or rune.effect is None:
                continue
            to_clear |= self.area_of_effect(rune.effect, coord)
        return to_clear

    def remove_matches(self, coords: Iterable[Coordinate]) -> set[Coordinate]:
        """Clear the removal set; returns the coordinates that actually held a rune."""
        cleared: set[Coordinate] = set()
        for coord in self.removal_set(coords):
            if self._cells[coord.y][coord.x] is not None:
                cleared.add(coord)
                self._cells[coord.y][coord.x] = None
        return cleared

    def clear_row(self, y: int) -> set[Coordinate]:
        cleared: set[Coordinate] = set()
        if y < 0 or y >= self.height:
            return cleared
        for x in range(self.width):
            if self._cells[y][x] is not None:
                cleared.add(Coordinate(x, y))
                self._cells[y][x] = None
        return cleared

    # -------- Gravity / refill --------
    def shift_runes_down(self) -> None:
        for x in range(self.width):
            column = [self._cells[y][x] for y in range(self.height) if self._cells[y][x] is not None]
            gap = self.height - len(column)
            for y in range(self.height):
                self._cells[y][x] = None if y < gap else column[y - gap]

    def refill_board(self) -> list[Coordinate]:
        filled: list[Coordinate] = []
        for coord in self.coordinates():
            if self._cells[coord.y][coord.x] is None:
                self._cells[coord.y][coord.x] = self._random_rune()
                filled.append(coord)
        return filled
