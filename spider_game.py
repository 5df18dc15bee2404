#!/usr/bin/python3
# -*- coding: utf-8

import argparse
from collections import namedtuple
import curses
import json
import logging
import os
import random

from commands import *
from spider import *

log = logging.getLogger(__name__)

CONFIG_FILE = '~/.config/spid/config.cfg'
STATS_FILE = '~/.config/spid/stats.cfg'
LOG_FILE = '~/.config/spid/debug.log'

DEFAULT_COLORS = (1, 2, 3, 4)
SUIT_FOREGROUNDS = (
    curses.COLOR_WHITE, curses.COLOR_BLACK,
    curses.COLOR_BLACK, curses.COLOR_WHITE,
)

Style = namedtuple('Style', ['colors', 'unicolor'])

Settings = namedtuple('Settings', [
    'open_spider', 'extra_hard', 'auto_remove', 'seed', 'style',
])

class Stats(object):

    '''
    Totals over finished games. A game counts once it is won, or when it
    is abandoned after at least one change to the tableau.
    '''

    def __init__(self, cfg):
        self.games = cfg.get('games', 0)
        self.won = cfg.get('won', 0)
        self.autofinished = cfg.get('autofinished', 0)
        self.sets_removed = cfg.get('sets_removed', 0)
        self.draws_used = cfg.get('draws_used', 0)
        self.fewest_draws = cfg.get('fewest_draws')

    def record(self, tab, autofinished = False):
        '''Adds the result of a game ending on Tableau tab'''
        self.games += 1
        self.sets_removed += tab.removed
        self.draws_used += tab.draws

        if tab.is_empty():
            self.won += 1
            if autofinished:
                self.autofinished += 1
            if self.fewest_draws is None or tab.draws < self.fewest_draws:
                self.fewest_draws = tab.draws

    def win_rate(self):
        if self.games == 0:
            return 0
        return self.won * 100 // self.games

    def sets_per_game(self):
        if self.games == 0:
            return 0.0
        return self.sets_removed / self.games

    def lines(self):
        fewest = '-' if self.fewest_draws is None else self.fewest_draws
        return [
            'Games played:   {:>5}'.format(self.games),
            'Games won:      {:>5}'.format(self.won),
            'Win rate:       {:>4}%'.format(self.win_rate()),
            'By autofinish:  {:>5}'.format(self.autofinished),
            '',
            'Sets removed:   {:>5}'.format(self.sets_removed),
            'Sets per game:  {:>5.1f}'.format(self.sets_per_game()),
            'Draws used:     {:>5}'.format(self.draws_used),
            'Fewest in a win:{:>5}'.format(fewest),
        ]

    def save(self):
        return {
            'games': self.games,
            'won': self.won,
            'autofinished': self.autofinished,
            'sets_removed': self.sets_removed,
            'draws_used': self.draws_used,
            'fewest_draws': self.fewest_draws,
        }

class History(object):

    '''
    Undo and redo stacks of Tableau copies. Each state is the tableau as
    it was before a command changed it.
    '''

    def __init__(self):
        self.past = []
        self.future = []

    def __len__(self):
        return len(self.past)

    def record(self, state):
        self.past.append(state)
        del self.future[:]

    def undo(self, current):
        '''Returns the previous state, or None if there is none'''
        if not self.past:
            return None
        self.future.append(current)
        return self.past.pop()

    def redo(self, current):
        '''Returns the state undone last, or None if there is none'''
        if not self.future:
            return None
        self.past.append(current)
        return self.future.pop()

    def clear(self):
        del self.past[:]
        del self.future[:]

def load_config(fname):
    '''
    Returns the JSON object stored in fname, or an empty dict if the file
    is missing or unreadable
    '''
    try:
        with open(os.path.expanduser(fname), 'r') as f:
            cfg = json.load(f)
    except (IOError, OSError, ValueError):
        return {}
    return cfg if isinstance(cfg, dict) else {}

def save_config(fname, cfg):
    p = os.path.expanduser(fname)
    os.makedirs(os.path.dirname(p), 0o755, exist_ok = True)

    with open(p, 'w') as f:
        json.dump(cfg, f)
        f.write('\n')

def ctrl(ch):
    return ord(ch) & 0x1f

def card_text(c, style):
    '''
    Returns the two character text of a Card. With colors, the suit is
    shown by the background color only.
    '''
    if c.face_up and not style.unicolor:
        return ' ' + c.rank_char
    return str(c)

class SpiderGame(object):

    TITLE = 'Spider'

    HELP_LINES = [
        'ab[cd...]  Move from column a to b as much as possible,',
        '             then from c to d, ...',
        'mabc       Move b cards from column a to column c',
        'sabc       Swap a and b using free column c',
        'xabc       Move from a to c through empty b (2 runs)',
        'xabcd      Move from a to d through empty b and c (4 runs)',
        'yabcd      Move from a to d through empty b and c (3 runs)',
        'd          Draw',
        'ra         Remove the completed set on column a',
        'rr         Remove all completed sets',
        'f          Autofinish: sort suits and remove all sets',
        'i          Number of face down cards',
        'v          Number of visible cards of each rank',
        'cv         Number of visible cards of rank v (0-9, a-c)',
        '',
        'Enter      Run the command',
        'Esc        Cancel the command',
        'U          Undo',
        'Ctrl-R     Redo',
        'N          New game',
        'S          Show game stats',
        'Q          Quit the game',
        '?          Show this help screen',
    ]

    def __init__(self, stdscr, settings):
        self.stdscr = stdscr
        self.settings = settings
        self.style = settings.style
        self.rng = random.Random(settings.seed)
        self.stats = Stats(load_config(STATS_FILE))
        self.history = History()
        self.tableau = None
        self.command_input = ''
        self.message = None
        # Called when the player answers 'y' to the message
        self.confirm = None
        # One of 'field', 'help' or 'stats'
        self.screen = 'field'
        self.won = False
        self.autofinished = False
        self.recorded = False
        self.try_sweep = False
        self.quit = False
        self.queue_redraw = True

        self.key_callbacks = {
            ctrl('['): self.clear_command,
            ctrl('l'): self.redraw,
            ctrl('r'): self.redo,
            ord('n'): self.confirm_new_game,
            ord('q'): self.confirm_quit_game,
            ord('S'): self.show_stats,
            ord('u'): self.undo,
            ord('?'): self.show_help,
        }

    def go(self):
        self.init_ui()
        self.start_game()

        while not self.quit:
            if self.try_sweep:
                self.sweep_step()
            if self.queue_redraw:
                self.draw()
                self.queue_redraw = False
            self.handle_input()

        self.record_game()

    def init_ui(self):
        self.stdscr.timeout(100)
        self.stdscr.keypad(True)
        curses.noecho()
        curses.cbreak()
        if not self.style.unicolor:
            self.init_colors()

    def init_colors(self):
        '''Sets up color pair n + 1 for suit n'''
        curses.start_color()
        curses.use_default_colors()

        for i, (bg, fg) in enumerate(zip(self.style.colors, SUIT_FOREGROUNDS)):
            if bg < curses.COLORS:
                curses.init_pair(i + 1, fg, bg)

    def repr_card(self, c):
        '''
        Returns a two-tuple (card string, curses attr) for a Card
        '''
        attr = 0
        if c.face_up and not self.style.unicolor:
            attr = curses.color_pair(c.suit + 1)
        return card_text(c, self.style), attr

    def draw(self):
        win = self.stdscr
        y, x = win.getmaxyx()
        win.erase()

        try:
            self.draw_title(x)
            if self.screen == 'help':
                self.draw_text(y, x, 'HELP', self.HELP_LINES)
            elif self.screen == 'stats':
                self.draw_text(y, x, 'STATS',
                    self.stats.lines() + ['', "Press 'c' to clear"])
            elif self.won:
                self.draw_won(y, x)
            else:
                self.draw_field(x)
            self.draw_status(y, x)
        except curses.error:
            # The terminal is too small for the whole field
            pass

        win.move(0, x - 1)
        win.refresh()

    def draw_title(self, x):
        '''Draws the title, draws made and surface development index'''
        tab = self.tableau
        title = '{}   ({}) [{}]'.format(self.TITLE, tab.draws, tab.sdi())
        self.stdscr.addstr(0, 0, title)
        self.stdscr.chgat(0, 0, x, curses.A_REVERSE)

    def draw_field(self, x):
        '''
        Draws the columns and, in open spider, the cards of future draws
        '''
        tab = self.tableau
        win = self.stdscr

        off = (x - (NR_COLUMNS * 3 - 1)) // 2
        #           |             ` Minus trailing space
        #           ` Two chars per card plus a space

        win.addstr(2, off, ' '.join('{:>2}'.format(i)
            for i in range(NR_COLUMNS)), curses.A_UNDERLINE)

        rows = tab.max_column_size()

        for row in range(rows):
            win.move(row + 3, off)
            for col in tab.columns:
                if row < len(col):
                    win.addstr(*self.repr_card(col[row]))
                else:
                    win.addstr('  ')
                win.addstr(' ')

        if tab.open_spider:
            for i in range(tab.draws_left):
                win.move(rows + 4 + i, off)
                for c in tab.peek_draw(i):
                    win.addstr(*self.repr_card(c))
                    win.addstr(' ')

    def draw_won(self, y, x):
        tab = self.tableau
        lines = [
            'You won!',
            '',
            'Draws used: {}, moves: {}'.format(tab.draws, len(self.history)),
            '',
            "Press 'n' to start a new game or 'q' to quit",
        ]
        self.draw_text(y, x, None, lines)

    def draw_text(self, y, x, heading, lines):
        '''Draws lines left aligned in a block centered on the screen'''
        starty = (y - (len(lines) + 2)) // 2
        startx = (x - max(map(len, lines))) // 2

        if heading:
            self.stdscr.addstr(starty, (x - len(heading)) // 2, heading,
                curses.A_BOLD)

        for i, s in enumerate(lines, 2):
            self.stdscr.addstr(starty + i, startx, s)

    def draw_status(self, y, x):
        '''Draws the message and the command being typed'''
        if self.message:
            self.stdscr.addstr(y - 1, 0, self.message[:x - 1])
        if self.command_input:
            s = '> ' + self.command_input
            self.stdscr.addstr(y - 1, x - len(s) - 1, s, curses.A_BOLD)

    def handle_input(self):
        ch = self.stdscr.getch()
        if ch == -1:
            return
        if ch == curses.KEY_RESIZE:
            self.redraw()
            return

        self.queue_redraw = True

        if self.confirm is not None:
            cb = self.confirm
            self.confirm = None
            self.message = None
            if ch == ord('y'):
                cb()
            return

        self.message = None

        if self.screen != 'field':
            self.screen_key(ch)
        elif self.won:
            if ch == ord('n'):
                self.new_game()
            elif ch == ord('q'):
                self.quit_game()
        elif not self.command_input and ch in self.key_callbacks:
            self.key_callbacks[ch]()
        elif ch == ctrl('['):
            self.clear_command()
        else:
            self.edit_command(ch)

    def screen_key(self, ch):
        '''Handles a key on the help or stats screen'''
        if ch == ord('q'):
            self.confirm_quit_game()
        elif ch == ord('c') and self.screen == 'stats':
            self.ask('Clear stats?', self.clear_stats)
        else:
            self.screen = 'field'

    def ask(self, question, cb):
        self.message = question + ' (y/n)'
        self.confirm = cb

    def edit_command(self, ch):
        if ch in (curses.KEY_ENTER, ord('\n'), ord('\r')):
            self.run_command()
        elif ch in (curses.KEY_BACKSPACE, 127, ctrl('h')):
            self.command_input = self.command_input[:-1]
        elif ch == ord(' '):
            self.clear_command()
        elif 32 < ch < 127:
            self.command_input += chr(ch)

    def clear_command(self):
        self.command_input = ''
        self.queue_redraw = True

    def run_command(self):
        text = self.command_input
        self.clear_command()

        if not text:
            return

        try:
            cmd = parse_command(text)
        except ValueError:
            self.message = 'Unrecognized command'
            return

        if isinstance(cmd, Help):
            self.show_help()
            return
        elif isinstance(cmd, Quit):
            self.confirm_quit_game()
            return

        state = self.tableau.copy()
        outcome = apply_command(self.tableau, cmd)
        log.debug('%r: %r', cmd, outcome)
        self.message = outcome.message

        if outcome.acted:
            self.history.record(state)
            if isinstance(cmd, Autofinish):
                self.autofinished = True
            self.try_sweep = self.settings.auto_remove
            self.check_won()

    def check_won(self):
        if self.tableau.is_empty() and not self.won:
            self.won = True
            self.try_sweep = False
            self.command_input = ''
            self.record_game()

    def undo(self):
        state = self.history.undo(self.tableau)
        if state is None:
            self.message = 'Nothing to undo'
        else:
            self.tableau = state

    def redo(self):
        state = self.history.redo(self.tableau)
        if state is None:
            self.message = 'Nothing to redo'
        else:
            self.tableau = state

    def record_game(self):
        '''Adds the current game to the stats, once'''
        if self.recorded or not (self.history or self.won):
            return
        self.stats.record(self.tableau, self.autofinished)
        self.recorded = True
        self.save_stats()

    def confirm_new_game(self):
        self.ask('Start a new game?', self.new_game)

    def new_game(self):
        self.record_game()
        self.start_game()

    def confirm_quit_game(self):
        self.ask('Quit game?', self.quit_game)

    def quit_game(self):
        self.quit = True

    def show_help(self):
        self.screen = 'help'
        self.queue_redraw = True

    def show_stats(self):
        self.screen = 'stats'
        self.queue_redraw = True

    def clear_stats(self):
        self.stats = Stats({})
        self.save_stats()

    def save_stats(self):
        try:
            save_config(STATS_FILE, self.stats.save())
        except (IOError, OSError) as e:
            log.warning('failed to save stats: %s', e)
            self.message = 'Failed to save stats: {}'.format(e)

    def redraw(self):
        self.stdscr.clear()
        self.queue_redraw = True

    def start_game(self):
        s = self.settings
        self.tableau = new_tableau(s.open_spider, s.extra_hard, self.rng)
        self.history.clear()
        self.command_input = ''
        self.screen = 'field'
        self.won = False
        self.autofinished = False
        self.recorded = False
        self.try_sweep = False
        self.queue_redraw = True
        log.debug('new game, sdi %d', self.tableau.sdi())

    def sweep_step(self):
        '''Removes one completed set, if any'''
        for i in range(NR_COLUMNS):
            if self.tableau.remove(i):
                self.queue_redraw = True
                self.check_won()
                return
        self.try_sweep = False

def parse_colors(s):
    try:
        colors = tuple(int(c) for c in s.split(','))
    except ValueError:
        colors = ()
    if len(colors) != NR_SUITS or any(c < 0 for c in colors):
        raise argparse.ArgumentTypeError(
            'Wrong format for colors: {!r}'.format(s))
    return colors

def parse_args(argv = None):
    parser = argparse.ArgumentParser(prog = 'spid',
        description = 'Spider solitaire played on the command line')
    parser.add_argument('-o', '--open', action = 'store_true', default = None,
        help = 'Play the Open Spider variant')
    parser.add_argument('-x', '--extra-hard', action = 'store_true',
        default = None, help = 'Only deal games without a first level move')
    parser.add_argument('-a', '--auto-remove', action = 'store_true',
        default = None, help = 'Remove completed sets automatically')
    parser.add_argument('-c', '--colors', type = parse_colors,
        metavar = 'c1,c2,c3,c4',
        help = 'Color numbers of the suits, default {}'.format(
            ','.join(map(str, DEFAULT_COLORS))))
    parser.add_argument('-u', '--unicolor', action = 'store_true',
        default = None, help = 'Display without colors')
    parser.add_argument('-s', '--seed', type = int,
        help = 'Seed the random number generator')
    parser.add_argument('-d', '--debug', action = 'store_true',
        help = 'Write debug messages to the log file')
    parser.add_argument('--log-file', default = LOG_FILE,
        help = 'Debug log file, default %(default)s')
    return parser.parse_args(argv)

def make_settings(args, cfg):
    '''
    Combines command line arguments with the config file contents;
    arguments take precedence
    '''
    def pick(arg, key, default):
        if arg is not None:
            return arg
        return cfg.get(key, default)

    colors = pick(args.colors, 'colors', DEFAULT_COLORS)
    if not isinstance(colors, (list, tuple)) or len(colors) != NR_SUITS:
        log.warning('ignoring bad colors in config: %r', colors)
        colors = DEFAULT_COLORS

    style = Style(tuple(colors), bool(pick(args.unicolor, 'unicolor', False)))

    return Settings(
        open_spider = bool(pick(args.open, 'open', False)),
        extra_hard = bool(pick(args.extra_hard, 'extra_hard', False)),
        auto_remove = bool(pick(args.auto_remove, 'auto_remove', False)),
        seed = args.seed,
        style = style)

def setup_logging(args):
    if not args.debug:
        logging.getLogger().addHandler(logging.NullHandler())
        return

    path = os.path.expanduser(args.log_file)
    os.makedirs(os.path.dirname(path) or '.', 0o755, exist_ok = True)
    logging.basicConfig(filename = path, level = logging.DEBUG,
        format = '%(asctime)s %(name)s %(levelname)s %(message)s')

def main(argv = None):
    args = parse_args(argv)
    setup_logging(args)
    settings = make_settings(args, load_config(CONFIG_FILE))
    log.debug('starting with %r', settings)

    stdscr = curses.initscr()
    try:
        SpiderGame(stdscr, settings).go()
    finally:
        curses.endwin()

if __name__ == '__main__':
    main()
