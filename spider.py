#!/usr/bin/python3
# -*- coding: utf-8

import itertools
import logging
import random

__all__ = [
    'Card', 'Column', 'Tableau', 'SpiderError', 'InvalidColumn',
    'PlanningError', 'make_deck', 'new_tableau', 'shuffled',
    'NR_SUITS', 'NR_RANKS', 'NR_DECKS', 'NR_COLUMNS', 'NR_DRAWS',
]

log = logging.getLogger(__name__)

NR_SUITS = 4
NR_RANKS = 13
NR_DECKS = 2
NR_COLUMNS = 10
NR_DRAWS = 5

class SpiderError(Exception): pass
class InvalidColumn(SpiderError, IndexError): pass
class PlanningError(SpiderError): pass

RANK_CHARS = '0123456789abc'

class Card(object):

    def __init__(self, nr, face_up = False):
        assert nr in range(NR_SUITS * NR_RANKS)
        self.suit, self.rank = divmod(nr, NR_RANKS)
        self.face_up = face_up

    @classmethod
    def of(cls, suit, rank, face_up = True):
        return cls(suit * NR_RANKS + rank, face_up)

    def __eq__(self, rhs):
        if isinstance(rhs, Card):
            return self.suit == rhs.suit and self.rank == rhs.rank
        return NotImplemented

    def __repr__(self):
        return 'Card.of({!r}, {!r}, {!r})'.format(
            self.suit, self.rank, self.face_up)

    def __str__(self):
        if not self.face_up:
            return 'XX'
        return '{}{}'.format(self.suit, self.rank_char)

    @property
    def nr(self):
        return self.suit * NR_RANKS + self.rank

    @property
    def rank_char(self):
        return RANK_CHARS[self.rank]

    @property
    def state(self):
        return self.suit, self.rank

    def copy(self):
        return Card(self.nr, self.face_up)

    def set_visible(self):
        self.face_up = True

class Column(object):

    def __init__(self, cards = ()):
        self.li = list(cards)

    def __bool__(self):
        return bool(self.li)

    def __getitem__(self, i):
        return self.li[i]

    def __iter__(self):
        return iter(self.li)

    def __len__(self):
        return len(self.li)

    def __reversed__(self):
        return reversed(self.li)

    def copy(self):
        return Column(c.copy() for c in self.li)

    def empty(self):
        return not self.li

    def push(self, card):
        self.li.append(card)

    def take(self, n):
        '''
        Removes the top n cards and returns them, bottom-most first
        '''
        if n <= 0:
            return []
        cards = self.li[-n:]
        del self.li[-n:]
        return cards

    def extend(self, cards):
        self.li.extend(cards)

    def top(self):
        return self.li[-1]

    def expose(self):
        '''Turns the top card, if any, face up'''
        if self.li:
            self.li[-1].set_visible()

def make_deck():
    '''
    Returns the card numbers of all decks combined, in order
    '''
    base = NR_SUITS * NR_RANKS
    return [i % base for i in range(base * NR_DECKS)]

def shuffled(li, rng = None):
    (rng or random).shuffle(li)
    return li

class Tableau(object):

    '''
    Represents a Spider game playing field and all possible operations
    '''

    def __init__(self, open_spider = False, deck = None, rng = None):
        '''
        Deals a new game. deck is a sequence of card numbers, in dealing
        order; a shuffled deck is used if none is given.
        '''
        if deck is None:
            deck = shuffled(make_deck(), rng)
        assert len(deck) == NR_SUITS * NR_RANKS * NR_DECKS

        self.open_spider = open_spider
        self.columns = [Column() for i in range(NR_COLUMNS)]
        self.stock = list(deck)
        self.draws = 0
        self.pos = len(self.stock) - NR_DRAWS * NR_COLUMNS
        self.removed = 0
        self.fill_columns()

    def copy(self):
        tab = Tableau.__new__(Tableau)
        tab.open_spider = self.open_spider
        tab.columns = [c.copy() for c in self.columns]
        tab.stock = self.stock
        tab.draws = self.draws
        tab.pos = self.pos
        tab.removed = self.removed
        return tab

    def fill_columns(self):
        slots = itertools.cycle(self.columns)
        for nr in self.stock[:self.pos]:
            next(slots).push(Card(nr, self.open_spider))
        for col in self.columns:
            col.expose()

    def set_columns(self, columns):
        '''
        Replaces the column contents with the given sequences of Cards.
        The stock is left untouched.
        '''
        if len(columns) != NR_COLUMNS:
            raise ValueError('expected {} columns, got {}'.format(
                NR_COLUMNS, len(columns)))
        self.columns = [Column(col) for col in columns]

    def column(self, i):
        if i not in range(NR_COLUMNS):
            raise InvalidColumn('Invalid column: {!r}'.format(i))
        return self.columns[i]

    @property
    def draws_left(self):
        return NR_DRAWS - self.draws

    def stock_size(self):
        return len(self.stock) - self.pos

    def draw(self):
        '''
        Deals one face up card on every column.
        Returns False if all draws have been used up.
        '''
        if self.draws >= NR_DRAWS:
            return False

        self.draws += 1
        for col in self.columns:
            col.push(Card(self.stock[self.pos], True))
            self.pos += 1
        log.debug('draw %d dealt', self.draws)
        return True

    def peek_draw(self, offset):
        '''
        Returns the cards of a future draw; offset 0 is the next one
        '''
        start = self.pos + offset * NR_COLUMNS
        return [Card(nr, True) for nr in self.stock[start:start + NR_COLUMNS]]

    def max_column_size(self):
        return max(len(c) for c in self.columns)

    def __str__(self):
        return '\n'.join(
            ' '.join(str(col[row]).rjust(2) if row < len(col) else '  '
                for col in self.columns).rstrip()
            for row in range(self.max_column_size()))

    def columns_snapshot(self):
        return [[c.copy() for c in col] for col in self.columns]

    def card_count(self):
        '''
        Returns the number of cards in columns and stock, plus those
        removed as completed sets
        '''
        return (sum(len(c) for c in self.columns) + self.stock_size()
            + self.removed * NR_RANKS)

    def invisible_count(self):
        return sum(1 for col in self.columns for c in col if not c.face_up)

    def visible_count_of_rank(self, rank):
        return sum(1 for col in self.columns for c in col
            if c.face_up and c.rank == rank)

    def is_empty(self):
        return all(c.empty() for c in self.columns)

    def filled_columns(self):
        return [i for i, c in enumerate(self.columns) if c]

    def first_empty_column(self):
        '''
        Returns the index of the first empty column, or None
        '''
        for i, c in enumerate(self.columns):
            if c.empty():
                return i
        return None

    def can_move(self, source, length, target):
        '''
        Returns whether the top length cards of column source form a run
        that may be placed on column target
        '''
        log.debug('can_move called with (%d, %d, %d)', source, length, target)
        src = self.column(source)
        dest = self.column(target)
        if length < 1:
            return True
        if length > len(src):
            return False
        if not src.top().face_up:
            return False

        suit, rank = src.top().state
        for i in range(1, length):
            c = src[-1 - i]
            if not c.face_up or c.suit != suit or c.rank != rank + i:
                return False

        if dest.empty():
            return True
        return src[-length].rank + 1 == dest.top().rank

    def move(self, source, length, target):
        '''
        Moves the top length cards from column source to target.
        Returns False, leaving the tableau unchanged, if the move is illegal.
        '''
        log.debug('move called with (%d, %d, %d)', source, length, target)
        if not self.can_move(source, length, target):
            return False
        if length < 1:
            return True

        src = self.column(source)
        self.column(target).extend(src.take(length))
        src.expose()
        log.debug('move succeeded')
        return True

    def max_run_length(self, i):
        '''
        Returns how many cards on top of column i comprise a run
        '''
        col = self.column(i)
        if col.empty() or not col.top().face_up:
            return 0

        n = 1
        # From top of column, iterate over adjacent pairs
        for upper, lower in zip(reversed(col), itertools.islice(reversed(col), 1, None)):
            if lower.face_up and lower.suit == upper.suit and \
                    lower.rank == upper.rank + 1:
                n += 1
            else:
                break

        return n

    def move_maximal(self, source, target):
        '''
        Moves as much of the run on top of source onto target as fits.
        Returns the number of cards moved.
        '''
        length = self.max_run_length(source)
        src = self.column(source)
        dest = self.column(target)
        if src and dest:
            length = min(length, dest.top().rank - src.top().rank)

        log.debug('move_maximal (%d, %d) determined length at %d',
            source, target, length)

        if length > 0 and self.move(source, length, target):
            return length
        return 0

    def swap(self, a, b, aux):
        '''Swaps the top runs of a and b using the free column aux'''
        self.move_maximal(a, aux)
        self.move_maximal(b, a)
        self.move_maximal(aux, b)

    def cycle_maximal(self, columns, filler):
        '''
        Rotates the top runs of the given columns using the empty column
        filler: each column receives the run of the column following it,
        the last one receives the run of the first.
        '''
        log.debug('cycle_maximal called with (%r, %d)', columns, filler)
        self.move_maximal(columns[0], filler)
        for prev, cur in zip(columns, columns[1:]):
            self.move_maximal(cur, prev)
        self.move_maximal(filler, columns[-1])

    def relay(self, source, empty, target):
        '''Moves two runs from source to target through an empty column'''
        self.move_maximal(source, empty)
        self.move_maximal(source, target)
        self.move_maximal(empty, target)

    def relay_four(self, source, empty_a, empty_b, target):
        '''
        Moves up to four runs from source to target through two empty
        columns
        '''
        self.relay(source, empty_a, empty_b)
        self.move_maximal(source, empty_a)
        self.move_maximal(source, target)
        self.move_maximal(empty_a, target)
        self.relay(empty_b, empty_a, target)

    def relay_three(self, source, empty_a, empty_b, target):
        '''
        Moves up to three runs from source to target through two empty
        columns
        '''
        self.move_maximal(source, empty_a)
        self.move_maximal(source, empty_b)
        self.move_maximal(source, target)
        self.move_maximal(empty_b, target)
        self.move_maximal(empty_a, target)

    def remove(self, i):
        '''
        Removes a completed set from the top of column i.
        Returns whether there was one.
        '''
        col = self.column(i)
        if len(col) < NR_RANKS:
            return False

        suit = col.top().suit
        for rank, c in enumerate(reversed(col)):
            if rank == NR_RANKS:
                break
            if not c.face_up or c.suit != suit or c.rank != rank:
                return False

        col.take(NR_RANKS)
        col.expose()
        self.removed += 1
        log.debug('removed set of suit %d from column %d', suit, i)
        return True

    def remove_all(self):
        '''
        Removes completed sets from all columns; returns how many were removed
        '''
        n = 0
        for i in range(NR_COLUMNS):
            while self.remove(i):
                n += 1
        return n

    def surface_development_index(self):
        '''
        Returns the number of possible first level improvements: runs
        which could be placed onto the top card of another column
        '''
        hi = [0] * NR_RANKS
        lo = [0] * NR_RANKS

        for col in self.columns:
            if col.empty() or not col.top().face_up:
                continue
            top = col.top()
            lo[top.rank] += 1
            rank = top.rank
            for c in itertools.islice(reversed(col), 1, None):
                if not c.face_up or c.suit != top.suit or c.rank != rank + 1:
                    break
                rank = c.rank
            hi[rank] += 1

        log.debug('sdi has lo %r and hi %r', lo, hi)
        return sum(min(x, y) for x, y in zip(hi[:-1], lo[1:]))

    sdi = surface_development_index

def new_tableau(open_spider = False, extra_hard = False, rng = None):
    '''
    Deals a new Tableau. In extra hard mode deals are rejected until one
    offers no first level improvement.
    '''
    while True:
        tab = Tableau(open_spider, rng = rng)
        if not extra_hard or tab.surface_development_index() == 0:
            return tab
        log.debug('rejected deal with sdi %d', tab.sdi())
