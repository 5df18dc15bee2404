#!/usr/bin/python3
# -*- coding: utf-8

'''
Autofinish planner for the last phase of a Spider game.

Once every column holds a complete run of ranks (suits mixed), the game is
decided: only the suits are out of place. Every place where a column changes
suit between two adjacent cards is a defect (column, upper suit, lower suit).
Seen as edges upper suit -> lower suit, the defects at one card position form
a set of closed cycles over the suits. Rotating the top runs of the columns
of one cycle, using an empty column as buffer, heals all of its defects at
once. Working from the top card position downward leaves every column a
single suit, ready to be removed.
'''

from collections import namedtuple
import logging

from spider import NR_RANKS, NR_SUITS, PlanningError

__all__ = [
    'Autofinisher', 'Defect', 'autofinish', 'decompose', 'find_cycle',
    'find_path',
]

log = logging.getLogger(__name__)

Defect = namedtuple('Defect', ['column', 'upper', 'lower'])

def find_path(defects, origin, frontier, path, remaining):
    '''
    Searches depth first for remaining defects, chained by suit starting at
    frontier, that close back on origin. Columns already in path are not
    used again. Returns path extended by the columns found, or None.
    '''
    for column, upper, lower in defects:
        if upper != frontier or column in path:
            continue
        if remaining == 1:
            if lower == origin:
                return path + [column]
        else:
            found = find_path(defects, origin, lower,
                path + [column], remaining - 1)
            if found is not None:
                return found
    return None

def find_cycle(defects, length):
    '''
    Returns the columns of the first cycle of the given length, or None
    '''
    for column, upper, lower in defects:
        path = find_path(defects, upper, lower, [column], length - 1)
        if path is not None:
            return path
    return None

def decompose(defects, max_length = NR_SUITS):
    '''
    Splits defects into cycles, shortest first.
    Raises PlanningError if the defects do not form closed cycles.
    '''
    remaining = [Defect(*d) for d in defects]
    cycles = []

    while remaining:
        for length in range(2, max_length + 1):
            cycle = find_cycle(remaining, length)
            if cycle is not None:
                break
        else:
            raise PlanningError(
                'No cycle of at most {} columns in {!r}'.format(
                    max_length, remaining))

        cycles.append(cycle)
        remaining = [d for d in remaining if d.column not in cycle]

    return cycles

class Autofinisher(object):

    '''
    Resorts the suits of a Tableau in its terminal phase
    '''

    def __init__(self, tableau):
        self.tableau = tableau

    def is_possible(self):
        '''
        Returns whether every column is empty or a complete run of ranks,
        regardless of suit
        '''
        for col in self.tableau.columns_snapshot():
            if not col:
                continue
            if len(col) != NR_RANKS:
                return False
            for i, c in enumerate(col):
                if not c.face_up or c.rank != NR_RANKS - 1 - i:
                    return False
        return True

    def defects(self, pos):
        '''
        Returns the defects between card positions pos and pos - 1
        '''
        snapshot = self.tableau.columns_snapshot()
        result = []
        for i in self.tableau.filled_columns():
            upper, lower = snapshot[i][pos].suit, snapshot[i][pos - 1].suit
            if upper != lower:
                result.append(Defect(i, upper, lower))
        return result

    def run(self):
        '''
        Rotates columns until every column is of a single suit.
        Returns a dict mapping cycle size to the number of cycles of that
        size that were rotated, or None if the tableau is not in its
        terminal phase.
        '''
        if not self.is_possible():
            return None

        tally = {}
        filler = self.tableau.first_empty_column()

        for pos in range(NR_RANKS - 1, 0, -1):
            cycles = decompose(self.defects(pos))
            if cycles and filler is None:
                raise PlanningError('No empty column to rotate through')

            for cycle in cycles:
                log.debug('position %d: rotating %r', pos, cycle)
                self.tableau.cycle_maximal(cycle, filler)
                tally[len(cycle)] = tally.get(len(cycle), 0) + 1

        return tally

def autofinish(tableau):
    return Autofinisher(tableau).run()
