# utils.py
#
# Project: Weighted PageRank
#
# Description:
#   Terminal display utilities — colored output, summary boxes,
#   side-by-side table rendering, rank previews and a timing context manager.
#
# Components:
#   Colors            — ANSI escape code constants for terminal styling.
#   set_verbose       — Global on/off switch for everything printed here.
#   print_project_banner — Project banner (name, reference).
#   print_stage / print_step / print_success / print_warning / print_error
#                     — Hierarchical log output with color-coded prefixes.
#   print_summary_box — Single bordered table for key-value statistics.
#   print_side_by_side_boxes
#                     — Two bordered tables rendered on the same lines
#                       (e.g., [Engine Top 5] [NetworkX Top 5]).
#   print_rank_preview
#                     — Top-k preview of a node -> rank mapping.
#   Timer             — Context manager that prints elapsed wall time.
#   default_workers   — Thread pool sizing rule shared by loader and engine.

import os
import sys
import time


class Colors:
    HEADER = '\033[95m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    RESET = '\033[0m'


_VERBOSE = True


def set_verbose(enabled):
    """Turn terminal output on or off. Returns the previous setting."""
    global _VERBOSE
    previous = _VERBOSE
    _VERBOSE = bool(enabled)
    return previous


def is_verbose():
    return _VERBOSE


def _emit(text):
    if _VERBOSE:
        print(text)


def default_workers():
    """Worker count used when none is configured."""
    return min(32, (os.cpu_count() or 4) + 4)


def print_project_banner():
    """Print project info banner at pipeline start."""
    w = 90
    _emit(f"\n{Colors.BOLD}{Colors.BLUE}{'=' * w}")
    _emit(f"  Weighted PageRank — label / relationship-type filtered power iteration")
    _emit(f"{'=' * w}{Colors.RESET}")
    _emit(f"  {Colors.DIM}Ref:{Colors.RESET}     Page, Brin, Motwani & Winograd (1999)")
    _emit(f"           {Colors.DIM}\"The PageRank Citation Ranking\"")
    _emit(f"           http://ilpubs.stanford.edu:8090/422/1/1999-66.pdf{Colors.RESET}")
    _emit(f"{Colors.BOLD}{Colors.BLUE}{'=' * w}{Colors.RESET}\n")


def print_stage(name, message):
    """Print a stage header."""
    _emit(f"{Colors.BOLD}{Colors.CYAN}[{name}]{Colors.RESET} {message}")


def print_step(message):
    """Print a sub-step within a stage."""
    _emit(f"  {Colors.DIM}->{Colors.RESET} {message}")


def print_success(message):
    """Print a success message."""
    _emit(f"  {Colors.GREEN}[OK]{Colors.RESET} {message}")


def print_warning(message):
    """Print a warning message."""
    _emit(f"  {Colors.YELLOW}[WARN]{Colors.RESET} {message}")


def print_error(message):
    """Print an error message to stderr, even when output is silenced."""
    print(f"  {Colors.RED}[ERR]{Colors.RESET} {message}", file=sys.stderr)


def print_summary_box(title, stats):
    """
    Print a single summary box.

    Args:
        title (str): Box title
        stats (dict): Key-value pairs to display
    """
    width = 50
    _emit(f"\n  +{'-' * width}+")
    padded = title + ' ' * (width - 1 - len(title))
    _emit(f"  | {Colors.BOLD}{padded}{Colors.RESET}|")
    _emit(f"  +{'-' * width}+")
    for key, val in stats.items():
        line = f" {key}: {val}"
        _emit(f"  |{line:<{width}}|")
    _emit(f"  +{'-' * width}+\n")


def _build_box_lines(title, stats, width):
    """Build a box as a list of strings for side-by-side rendering."""
    lines = []
    sep = f"+{'-' * width}+"
    lines.append(sep)
    padded = title + ' ' * (width - 1 - len(title))
    lines.append(f"| {Colors.BOLD}{padded}{Colors.RESET}|")
    lines.append(sep)
    for key, val in stats.items():
        content = f" {key}: {val}"
        lines.append(f"|{content:<{width}}|")
    lines.append(sep)
    return lines


def print_side_by_side_boxes(title_l, stats_l, title_r, stats_r, col_width=38, gap=3):
    """
    Print two summary boxes side by side.

    Args:
        title_l (str): Left box title
        stats_l (dict): Left box key-value pairs
        title_r (str): Right box title
        stats_r (dict): Right box key-value pairs
        col_width (int): Inner width of each box
        gap (int): Space between the two boxes
    """
    left = _build_box_lines(title_l, stats_l, col_width)
    right = _build_box_lines(title_r, stats_r, col_width)

    # Pad shorter side so both have equal line count
    empty = ' ' * (col_width + 2)
    max_len = max(len(left), len(right))
    left += [empty] * (max_len - len(left))
    right += [empty] * (max_len - len(right))

    spacer = ' ' * gap
    _emit("")
    for l, r in zip(left, right):
        _emit(f"  {l}{spacer}{r}")
    _emit("")


def print_rank_preview(ranks, title="Top Nodes by PageRank", top=5):
    """
    Print the highest ranked entries of a node -> rank mapping.

    Args:
        ranks (dict): node id -> rank
        title (str): Box title
        top (int): Number of entries to show
    """
    best = sorted(ranks.items(), key=lambda item: (-item[1], str(item[0])))[:top]
    print_summary_box(title, {
        f"#{i + 1} Node {node}": f"{score:.8f}" for i, (node, score) in enumerate(best)
    })


class Timer:
    """Context manager for timing code blocks."""
    def __init__(self, label="Operation"):
        self.label = label
        self.start = None
        self.elapsed = None

    def __enter__(self):
        self.start = time.time()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.elapsed = time.time() - self.start
        if exc_type is None:
            print_success(f"{self.label} completed in {self.elapsed:.2f}s")
        else:
            print_error(f"{self.label} failed after {self.elapsed:.2f}s")
