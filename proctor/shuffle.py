"""
Seeded randomization of question order and option order.

The same seed always yields the same presentation, so a reload or a resumed
session sees exactly what it saw before. Question order and each question's
option order are driven by independent generators.
"""

from dataclasses import replace
from typing import Callable, List, Sequence, TypeVar

from .models import ExamDefinition, Question

T = TypeVar("T")

LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280


class SeededRandom:
    """Linear congruential generator yielding floats in [0, 1)."""

    def __init__(self, seed: int):
        self.seed = seed

    def __call__(self) -> float:
        self.seed = (self.seed * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self.seed / LCG_MODULUS


def shuffle_sequence(items: Sequence[T], seed: int) -> List[T]:
    """
    Return a Fisher-Yates shuffled copy of `items`.

    Args:
        items: Sequence to permute (left untouched)
        seed: Generator seed

    Returns:
        A new list holding the permutation
    """
    shuffled = list(items)
    rand: Callable[[], float] = SeededRandom(seed)
    current = len(shuffled)

    while current != 0:
        pick = int(rand() * current)
        current -= 1
        shuffled[current], shuffled[pick] = shuffled[pick], shuffled[current]

    return shuffled


def option_seed(session_seed: int, question: Question) -> int:
    """
    Seed for one question's options, distinct per question.

    Offset by one so the first question's options never reuse the
    question-order stream.
    """
    return session_seed + question.order_index + 1


def shuffle_options(question: Question, seed: int) -> Question:
    """
    Permute a question's options and remap its correct-answer index.

    The returned question carries the new option order and the index where
    the originally correct option landed.
    """
    indexed = list(enumerate(question.options))
    permuted = shuffle_sequence(indexed, seed)
    new_answer = next(pos for pos, (original, _) in enumerate(permuted)
                      if original == question.answer)
    return replace(
        question,
        options=[text for _, text in permuted],
        answer=new_answer
    )


def present_questions(exam: ExamDefinition, questions: Sequence[Question],
                      seed: int) -> List[Question]:
    """
    Build the presented question list for one session.

    Questions are first put in authoring (`order_index`) order, then shuffled
    according to the exam's `shuffle_questions` and `shuffle_options` flags.

    Args:
        exam: Exam whose shuffle policy applies
        questions: Questions as returned by the store
        seed: Session-establishment seed

    Returns:
        The frozen, presentation-order question list
    """
    presented = sorted(questions, key=lambda q: q.order_index)

    if exam.shuffle_questions:
        presented = shuffle_sequence(presented, seed)

    if exam.shuffle_options:
        presented = [shuffle_options(q, option_seed(seed, q)) for q in presented]

    return presented
