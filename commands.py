#!/usr/bin/python3
# -*- coding: utf-8

from collections import namedtuple
import re

from autofinish import autofinish
from spider import NR_RANKS, RANK_CHARS

__all__ = [
    'Autofinish', 'CountRank', 'Draw', 'Help', 'Invisible', 'Move',
    'MoveMaximal', 'Outcome', 'Quit', 'Relay', 'RelayFour', 'RelayThree',
    'Remove', 'RemoveAll', 'Swap', 'VisibleTable',
    'apply_command', 'parse_command',
]

MoveMaximal = namedtuple('MoveMaximal', ['pairs'])
Move = namedtuple('Move', ['source', 'length', 'target'])
Swap = namedtuple('Swap', ['a', 'b', 'aux'])
Relay = namedtuple('Relay', ['source', 'empty', 'target'])
RelayFour = namedtuple('RelayFour', ['source', 'empty_a', 'empty_b', 'target'])
RelayThree = namedtuple('RelayThree', ['source', 'empty_a', 'empty_b', 'target'])
Remove = namedtuple('Remove', ['column'])
CountRank = namedtuple('CountRank', ['rank'])
Draw = namedtuple('Draw', [])
RemoveAll = namedtuple('RemoveAll', [])
Autofinish = namedtuple('Autofinish', [])
Invisible = namedtuple('Invisible', [])
VisibleTable = namedtuple('VisibleTable', [])
Help = namedtuple('Help', [])
Quit = namedtuple('Quit', [])

Outcome = namedtuple('Outcome', ['acted', 'message'])

def digits(s):
    return tuple(int(ch) for ch in s)

# Checked in order; the first match wins. Only a prefix of the input has
# to match, anything after it is ignored, so '123' moves 1 to 2.
PATTERNS = [
    (re.compile(r'(?:\d\d)+'),
        lambda m: MoveMaximal(tuple(zip(*[iter(digits(m.group(0)))] * 2)))),
    (re.compile(r'd'), lambda m: Draw()),
    (re.compile(r'm(\d)(\d)(\d)'), lambda m: Move(*digits(m.group(1, 2, 3)))),
    (re.compile(r'rr'), lambda m: RemoveAll()),
    (re.compile(r'r(\d)'), lambda m: Remove(int(m.group(1)))),
    (re.compile(r's(\d)(\d)(\d)'), lambda m: Swap(*digits(m.group(1, 2, 3)))),
    (re.compile(r'x(\d)(\d)(\d)(\d)'),
        lambda m: RelayFour(*digits(m.group(1, 2, 3, 4)))),
    (re.compile(r'x(\d)(\d)(\d)'), lambda m: Relay(*digits(m.group(1, 2, 3)))),
    (re.compile(r'y(\d)(\d)(\d)(\d)'),
        lambda m: RelayThree(*digits(m.group(1, 2, 3, 4)))),
    (re.compile(r'c([0-9a-c])'),
        lambda m: CountRank(RANK_CHARS.index(m.group(1)))),
    (re.compile(r'f'), lambda m: Autofinish()),
    (re.compile(r'i'), lambda m: Invisible()),
    (re.compile(r'v'), lambda m: VisibleTable()),
    (re.compile(r'[h?]'), lambda m: Help()),
    (re.compile(r'q'), lambda m: Quit()),
]

def parse_command(text):
    '''
    Parses a typed command line into a command value. Leading digit pairs
    are moves; the pairs stop at the first character that does not form one.
    Raises ValueError if the text is not a command.
    '''
    text = text.strip().lower()
    for pattern, build in PATTERNS:
        m = pattern.match(text)
        if m:
            return build(m)
    raise ValueError('Unrecognized command: {!r}'.format(text))

def apply_command(tab, cmd):
    '''
    Executes a command on the Tableau tab.
    Returns an Outcome: whether the tableau changed and a message to
    display, if any. Help and Quit are left to the caller.
    '''
    if isinstance(cmd, MoveMaximal):
        moved = 0
        for source, target in cmd.pairs:
            n = tab.move_maximal(source, target)
            if n == 0:
                break
            moved += n
        if moved == 0:
            return Outcome(False, 'Cannot move cards')
        return Outcome(True, None)
    elif isinstance(cmd, Move):
        if tab.move(cmd.source, cmd.length, cmd.target):
            return Outcome(True, None)
        return Outcome(False, 'Cannot move cards')
    elif isinstance(cmd, Draw):
        if tab.draw():
            return Outcome(True, 'Draw {}'.format(tab.draws))
        return Outcome(False, 'No draws left')
    elif isinstance(cmd, Remove):
        if tab.remove(cmd.column):
            return Outcome(True, 'Removed')
        return Outcome(False, 'Unable to remove')
    elif isinstance(cmd, RemoveAll):
        n = tab.remove_all()
        return Outcome(n > 0, 'Removed {}'.format(n))
    elif isinstance(cmd, (Swap, Relay, RelayFour, RelayThree)):
        before = tab.columns_snapshot()
        if isinstance(cmd, Swap):
            tab.swap(*cmd)
        elif isinstance(cmd, Relay):
            tab.relay(*cmd)
        elif isinstance(cmd, RelayFour):
            tab.relay_four(*cmd)
        else:
            tab.relay_three(*cmd)
        return Outcome(before != tab.columns_snapshot(), None)
    elif isinstance(cmd, Autofinish):
        tally = autofinish(tab)
        if tally is None:
            return Outcome(False, 'Autofinish not possible')
        n = tab.remove_all()
        return Outcome(n > 0, 'Rotated {}, removed {}'.format(
            ' '.join('{}x{}'.format(count, size)
                for size, count in sorted(tally.items())) or 'nothing', n))
    elif isinstance(cmd, Invisible):
        return Outcome(False, 'invisible: {}'.format(tab.invisible_count()))
    elif isinstance(cmd, CountRank):
        return Outcome(False, 'nr {}: {}'.format(RANK_CHARS[cmd.rank],
            tab.visible_count_of_rank(cmd.rank)))
    elif isinstance(cmd, VisibleTable):
        return Outcome(False, '  '.join('{}:{}'.format(RANK_CHARS[r],
            tab.visible_count_of_rank(r)) for r in range(NR_RANKS)))
    return Outcome(False, None)
