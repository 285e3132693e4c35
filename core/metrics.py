"""Accuracy, speed and productivity metrics.

All functions here are pure: they read counters and never mutate a session.
"""

import math

from .config import ESTIMATED_CHARS_PER_MINUTE
from .contribution import Contribution
from .distance import levenshtein_distance


def calculate_accuracy(contribution: Contribution) -> int:
    """Percentage of non-neutral keystrokes that moved the text toward the target."""
    total_used = contribution.positive + contribution.negative
    if total_used == 0:
        return 0
    return (100 * contribution.positive) // total_used


def calculate_speed(committed_chars: int, elapsed_seconds: int) -> int:
    """Committed characters per minute."""
    if elapsed_seconds <= 0:
        return 0
    return (committed_chars * 60) // elapsed_seconds


def earned_chars(sentences: list[str], completed: set[int],
                 current_sentence: str | None = None, typed_text: str = '') -> int:
    """Characters credited so far: completed sentences plus in-progress closeness."""
    total = 0
    for index in completed:
        if 0 <= index < len(sentences):
            total += len(sentences[index])
    if current_sentence:
        distance = levenshtein_distance(typed_text, current_sentence)
        total += max(0, len(current_sentence) - distance)
    return total


def calculate_productivity(earned: int, contribution: Contribution) -> float:
    """Earned characters per keystroke."""
    total_keystrokes = contribution.total
    if total_keystrokes == 0:
        return 0.0
    return earned / total_keystrokes


def format_productivity(value: float, strip_leading_zero: bool = False) -> str:
    """Format productivity with two decimals.

    strip_leading_zero reproduces the historical display form (".42").
    """
    text = f"{value:.2f}"
    if strip_leading_zero and text.startswith('0'):
        return text[1:]
    return text


def progress_percent(current_index: int, total: int) -> int:
    if total == 0:
        return 0
    return round(current_index / total * 100)


def format_elapsed(seconds: int) -> str:
    """Format seconds as M:SS."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


def text_stats(sentences: list[str]) -> dict:
    """Sentence count, character count and an estimated typing time."""
    characters = sum(len(s) for s in sentences)
    return {
        'sentence_count': len(sentences),
        'character_count': characters,
        'estimated_minutes': math.ceil(characters / ESTIMATED_CHARS_PER_MINUTE)
    }


def session_metrics(session, strip_leading_zero: bool = False) -> dict:
    """Bundle every display metric for a session."""
    current = session.current_sentence if session.is_running else None
    earned = earned_chars(session.sentences, session.completed_sentences,
                          current, session.typed_text)
    productivity = calculate_productivity(earned, session.contribution)
    return {
        'accuracy': calculate_accuracy(session.contribution),
        'speed': calculate_speed(session.committed_chars, session.elapsed_seconds),
        'productivity': productivity,
        'productivity_display': format_productivity(productivity, strip_leading_zero),
        'earned_chars': earned,
        'progress_percent': progress_percent(session.current_index, session.total_sentences),
        'elapsed_display': format_elapsed(session.elapsed_seconds)
    }
