import random

import pytest

from spider import *

def make_tableau(*columns, **kw):
    tab = Tableau(deck = make_deck(), **kw)
    cols = [list(c) for c in columns]
    cols += [[] for i in range(NR_COLUMNS - len(cols))]
    tab.set_columns(cols)
    return tab

def states(tab, i):
    return [(c.suit, c.rank, c.face_up) for c in tab.columns[i]]

def test_card_from_number():
    c = Card(14)
    assert (c.suit, c.rank) == (1, 1)
    assert not c.face_up
    assert str(c) == 'XX'
    c.set_visible()
    assert str(c) == '11'
    assert str(Card(NR_RANKS * 3 + 12, True)) == '3c'
    assert Card.of(2, 5) == Card(2 * NR_RANKS + 5)

def test_deal_layout():
    tab = Tableau(deck = make_deck())
    sizes = [len(c) for c in tab.columns]
    assert sizes == [6, 6, 6, 6, 5, 5, 5, 5, 5, 5]
    assert tab.stock_size() == NR_DRAWS * NR_COLUMNS
    # Card i of the deck goes to column i % 10
    assert tab.columns[0].top().state == divmod(50, NR_RANKS)
    assert all(c.top().face_up for c in tab.columns)
    assert tab.invisible_count() == 54 - NR_COLUMNS

def test_open_deal_is_visible():
    tab = Tableau(open_spider = True, rng = random.Random(3))
    assert tab.invisible_count() == 0

def test_draw():
    tab = Tableau(rng = random.Random(1))
    for i in range(NR_DRAWS):
        expected = [c.state for c in tab.peek_draw(0)]
        assert tab.draw()
        assert [c.top().state for c in tab.columns] == expected
        assert all(c.top().face_up for c in tab.columns)
        assert tab.draws_left == NR_DRAWS - i - 1
        assert tab.card_count() == 104
    assert not tab.draw()
    assert tab.draws == NR_DRAWS
    assert tab.peek_draw(0) == []

def test_conservation_under_random_play():
    rng = random.Random(7)
    tab = new_tableau(rng = rng)
    for i in range(2000):
        r = rng.random()
        if r < 0.01:
            tab.draw()
        elif r < 0.05:
            tab.remove_all()
        else:
            tab.move_maximal(rng.randrange(NR_COLUMNS), rng.randrange(NR_COLUMNS))
        assert tab.card_count() == 104
        assert all(c.top().face_up for c in tab.columns if c)

def test_str():
    tab = make_tableau(
        [Card.of(0, 5, False), Card.of(1, 11)],
        [Card.of(3, 0)])
    assert str(tab) == 'XX 30\n1b'

def test_can_move():
    tab = make_tableau(
        [Card.of(0, 5, False), Card.of(1, 4), Card.of(1, 3), Card.of(1, 2)],
        [Card.of(2, 5)],
        [],
        [Card.of(0, 3)])

    assert tab.can_move(0, 0, 1)
    assert tab.can_move(0, 3, 1)
    assert not tab.can_move(0, 2, 1)
    assert tab.can_move(0, 1, 3)
    assert tab.can_move(0, 3, 2)
    assert not tab.can_move(0, 4, 2)
    assert not tab.can_move(0, 5, 1)
    assert not tab.can_move(1, 1, 0)

def test_can_move_needs_one_suit():
    tab = make_tableau(
        [Card.of(0, 4), Card.of(1, 3), Card.of(1, 2)],
        [])
    assert tab.can_move(0, 2, 1)
    assert not tab.can_move(0, 3, 1)

def test_face_down_top_cannot_move():
    tab = make_tableau([Card.of(0, 3, False)], [Card.of(1, 4)], [])
    assert not tab.can_move(0, 1, 1)
    assert not tab.can_move(0, 1, 2)
    assert tab.max_run_length(0) == 0
    assert tab.move_maximal(0, 1) == 0
    assert not tab.move(0, 1, 2)
    assert states(tab, 0) == [(0, 3, False)]
    assert tab.sdi() == 0

def test_move():
    tab = make_tableau(
        [Card.of(0, 5, False), Card.of(1, 4), Card.of(1, 3), Card.of(1, 2)],
        [Card.of(2, 5)])

    assert tab.move(0, 3, 1)
    assert states(tab, 0) == [(0, 5, True)]
    assert states(tab, 1) == [(2, 5, True), (1, 4, True), (1, 3, True), (1, 2, True)]
    # The run may go back where it came from
    assert tab.can_move(1, 3, 0)

def test_move_illegal_leaves_state():
    tab = make_tableau(
        [Card.of(0, 5, False), Card.of(1, 4), Card.of(1, 3)],
        [Card.of(2, 9)])
    before = [states(tab, i) for i in range(NR_COLUMNS)]
    assert not tab.move(0, 2, 1)
    assert not tab.move(0, 3, 2)
    assert [states(tab, i) for i in range(NR_COLUMNS)] == before

def test_move_zero_is_noop():
    tab = make_tableau([Card.of(0, 5)], [])
    assert tab.move(0, 0, 1)
    assert states(tab, 0) == [(0, 5, True)]
    assert states(tab, 1) == []

def test_invalid_column():
    tab = make_tableau([Card.of(0, 5)])
    with pytest.raises(InvalidColumn):
        tab.move(0, 1, NR_COLUMNS)
    with pytest.raises(IndexError):
        tab.can_move(-1, 0, 0)
    with pytest.raises(InvalidColumn):
        tab.remove(11)

def test_max_run_length():
    tab = make_tableau(
        [Card.of(0, 5, False), Card.of(1, 4), Card.of(1, 3), Card.of(1, 2)],
        [],
        [Card.of(2, 4), Card.of(1, 3)],
        [Card.of(1, 5), Card.of(1, 3)])
    assert tab.max_run_length(0) == 3
    assert tab.max_run_length(1) == 0
    assert tab.max_run_length(2) == 1
    assert tab.max_run_length(3) == 1

def test_move_maximal():
    tab = make_tableau(
        [Card.of(0, 5, False), Card.of(1, 4), Card.of(1, 3), Card.of(1, 2)],
        [Card.of(2, 5)],
        [],
        [Card.of(0, 3)])

    assert tab.move_maximal(1, 0) == 0
    assert tab.move_maximal(0, 3) == 1
    assert states(tab, 3) == [(0, 3, True), (1, 2, True)]
    assert tab.move_maximal(0, 1) == 2
    assert states(tab, 0) == [(0, 5, True)]
    # (2, 5) is of another suit and stays behind
    assert tab.move_maximal(1, 2) == 2
    assert states(tab, 1) == [(2, 5, True)]

def test_move_maximal_run_cannot_land():
    tab = make_tableau(
        [Card.of(1, 4), Card.of(1, 3), Card.of(1, 2)],
        [Card.of(2, 9)])
    assert tab.move_maximal(0, 1) == 0
    assert len(tab.columns[0]) == 3
    assert len(tab.columns[1]) == 1

def test_swap():
    tab = make_tableau(
        [Card.of(0, 4), Card.of(0, 3)],
        [Card.of(1, 2)],
        [])
    tab.swap(0, 1, 2)
    assert states(tab, 0) == [(1, 2, True)]
    assert states(tab, 1) == [(0, 4, True), (0, 3, True)]
    assert states(tab, 2) == []

def test_cycle_maximal():
    tab = make_tableau(
        [Card.of(0, 1), Card.of(1, 0)],
        [Card.of(1, 1), Card.of(2, 0)],
        [Card.of(2, 1), Card.of(0, 0)],
        [])
    tab.cycle_maximal([0, 2, 1], 3)
    assert states(tab, 0) == [(0, 1, True), (0, 0, True)]
    assert states(tab, 1) == [(1, 1, True), (1, 0, True)]
    assert states(tab, 2) == [(2, 1, True), (2, 0, True)]
    assert states(tab, 3) == []

def test_relay():
    tab = make_tableau(
        [Card.of(0, 6), Card.of(1, 5), Card.of(1, 4), Card.of(2, 3)],
        [],
        [Card.of(3, 6)])
    tab.relay(0, 1, 2)
    assert states(tab, 0) == [(0, 6, True)]
    assert states(tab, 1) == []
    assert [c.state for c in tab.columns[2]] == [(3, 6), (1, 5), (1, 4), (2, 3)]

def test_relay_three():
    tab = make_tableau(
        [Card.of(1, 5), Card.of(2, 4), Card.of(3, 3)],
        [],
        [],
        [Card.of(0, 6)])
    tab.relay_three(0, 1, 2, 3)
    assert [c.state for c in tab.columns[3]] == [(0, 6), (1, 5), (2, 4), (3, 3)]
    assert tab.filled_columns() == [3]

def test_relay_four():
    tab = make_tableau(
        [Card.of(0, 5), Card.of(1, 4), Card.of(2, 3), Card.of(3, 2)],
        [],
        [],
        [Card.of(0, 6)])
    tab.relay_four(0, 1, 2, 3)
    assert [c.state for c in tab.columns[3]] == \
        [(0, 6), (0, 5), (1, 4), (2, 3), (3, 2)]
    assert tab.filled_columns() == [3]

def full_set(suit):
    return [Card.of(suit, r) for r in reversed(range(NR_RANKS))]

def test_remove():
    tab = make_tableau([Card.of(0, 7, False)] + full_set(2))
    assert tab.remove(0)
    assert states(tab, 0) == [(0, 7, True)]
    assert tab.removed == 1
    assert not tab.remove(0)

def test_remove_requires_complete_set():
    short = full_set(1)[1:]
    mixed = full_set(1)
    mixed[3] = Card.of(0, mixed[3].rank)
    hidden = full_set(1)
    hidden[0].face_up = False
    not_ace_on_top = full_set(1) + [Card.of(2, 5)]

    tab = make_tableau(short, mixed, hidden, not_ace_on_top)
    for i in range(4):
        assert not tab.remove(i)
    assert [len(c) for c in tab.columns[:4]] == [12, 13, 13, 14]

def test_remove_all():
    tab = make_tableau(full_set(0) + full_set(1), [], full_set(3))
    assert tab.remove_all() == 3
    assert tab.is_empty()

def test_surface_development_index():
    tab = make_tableau(
        [Card.of(0, 5), Card.of(0, 4)],
        [Card.of(1, 6)],
        [Card.of(2, 3)])
    assert tab.surface_development_index() == 2

def test_surface_development_index_run_needs_one_suit():
    tab = make_tableau(
        [Card.of(1, 5), Card.of(0, 4)],
        [Card.of(1, 6)],
        [Card.of(2, 3)])
    assert tab.sdi() == 1

def test_queries_do_not_mutate():
    tab = Tableau(rng = random.Random(5))
    before = [states(tab, i) for i in range(NR_COLUMNS)]
    assert tab.sdi() == tab.sdi()
    assert tab.invisible_count() == tab.invisible_count()
    assert [states(tab, i) for i in range(NR_COLUMNS)] == before

def test_columns_snapshot_is_a_copy():
    tab = make_tableau([Card.of(0, 5, False), Card.of(1, 4)])
    snap = tab.columns_snapshot()
    snap[0][0].set_visible()
    snap[0].pop()
    assert states(tab, 0) == [(0, 5, False), (1, 4, True)]

def test_copy_is_independent():
    tab = make_tableau([Card.of(0, 5, False), Card.of(1, 4)], [])
    other = tab.copy()
    assert other.move(0, 1, 1)
    assert states(tab, 0) == [(0, 5, False), (1, 4, True)]
    assert states(other, 0) == [(0, 5, True)]

def test_new_tableau_extra_hard():
    tab = new_tableau(extra_hard = True, rng = random.Random(11))
    assert tab.sdi() == 0

def test_new_tableau_open():
    tab = new_tableau(open_spider = True, rng = random.Random(11))
    assert tab.open_spider
    assert tab.invisible_count() == 0
    assert tab.card_count() == 104

def test_visible_count_of_rank():
    tab = make_tableau(
        [Card.of(0, 5, False), Card.of(1, 5)],
        [Card.of(2, 5), Card.of(3, 4)])
    assert tab.visible_count_of_rank(5) == 2
    assert tab.visible_count_of_rank(4) == 1
    assert tab.visible_count_of_rank(0) == 0
    assert tab.invisible_count() == 1
