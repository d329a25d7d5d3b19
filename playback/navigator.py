"""
Playlist navigation rules.

Pure functions that decide which playlist index comes next or before,
given the repeat mode and shuffle flag. They never touch playback state.
"""

import random
from dataclasses import dataclass
from typing import Optional, Sequence

from shared.models import RepeatMode


@dataclass(frozen=True)
class NextOutcome:
    """Result of advancing. ``index`` is None when playback should stop."""
    index: Optional[int] = None

    @property
    def stop(self) -> bool:
        return self.index is None


@dataclass(frozen=True)
class PrevOutcome:
    """Result of going back. ``index`` is None when the current song restarts."""
    index: Optional[int] = None

    @property
    def clamp_start(self) -> bool:
        return self.index is None


STOP = NextOutcome()
CLAMP_START = PrevOutcome()


def compute_next(
    playlist: Sequence,
    current_index: int,
    repeat_mode: RepeatMode,
    shuffled: bool,
    rng: Optional[random.Random] = None,
) -> NextOutcome:
    """
    Pick the index to play after ``current_index``.

    Repeat-one wins over shuffle. Shuffle picks uniformly over the whole
    playlist and may land on the current song again.
    """
    length = len(playlist)
    if length == 0:
        return STOP

    if repeat_mode is RepeatMode.ONE:
        return NextOutcome(current_index)
    if shuffled:
        return NextOutcome((rng or random).randrange(length))
    if repeat_mode is RepeatMode.ALL:
        return NextOutcome((current_index + 1) % length)

    next_index = current_index + 1
    if next_index >= length:
        return STOP
    return NextOutcome(next_index)


def compute_previous(
    playlist: Sequence,
    current_index: int,
    repeat_mode: RepeatMode,
) -> PrevOutcome:
    """
    Pick the index to play before ``current_index``.

    Shuffle is deliberately not consulted here.
    """
    length = len(playlist)
    if length == 0:
        return CLAMP_START

    if repeat_mode is RepeatMode.ALL:
        return PrevOutcome(length - 1 if current_index == 0 else current_index - 1)

    prev_index = current_index - 1
    if prev_index < 0:
        return CLAMP_START
    return PrevOutcome(prev_index)
