"""
Answer Variants

Every stored answer is one variant of a tagged union keyed by question type:

    SingleChoiceAnswer(str)
    MultipleChoiceAnswer(frozenset of str)
    TrueFalseAnswer(str)
    RatingAnswer(int)
    TextAnswer(str)

Consumers (collector, statistics, serialization) match on the variant
with isinstance checks instead of sniffing raw payload types.

ARCHITECTURAL RULE:
    Variants are immutable structure only.
    Range and option-membership checks belong to the collector.
    Aggregation belongs to the statistics engine.
"""

from abc import ABC
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Optional


class Answer(ABC):
    """
    Base class for all answer variants.

    Each subclass declares KIND, the stored tag, which matches the
    value of the QuestionType it answers.
    """

    KIND = ""


@dataclass(frozen=True)
class SingleChoiceAnswer(Answer):
    """The selected option label of a single-choice question."""

    KIND = "single_choice"

    value: str


@dataclass(frozen=True)
class MultipleChoiceAnswer(Answer):
    """
    The selected option labels of a multiple-choice question.

    Unordered and duplicate-free by construction.
    """

    KIND = "multiple_choice"

    values: FrozenSet[str]

    @classmethod
    def of(cls, values: Iterable[str]) -> "MultipleChoiceAnswer":
        return cls(values=frozenset(values))


@dataclass(frozen=True)
class TrueFalseAnswer(Answer):
    """The selected label ("正确" or "错误") of a true/false question."""

    KIND = "true_false"

    value: str


@dataclass(frozen=True)
class RatingAnswer(Answer):
    """
    A rating on the closed scale [0, 10].

    IMPORTANT:
        The constructor does NOT range-check. Stored data may contain
        out-of-range values; the collector rejects them on submit and the
        statistics engine filters them on read.
    """

    KIND = "rating"

    value: int


@dataclass(frozen=True)
class TextAnswer(Answer):
    """Free text. May be empty."""

    KIND = "text"

    value: str


ANSWER_KINDS = {
    cls.KIND: cls
    for cls in (SingleChoiceAnswer, MultipleChoiceAnswer, TrueFalseAnswer, RatingAnswer, TextAnswer)
}


def is_empty_answer(answer: Optional[Answer]) -> bool:
    """
    Whether an answer counts as "not answered".

    None, blank text, blank choice and empty selection are empty.
    A rating of 0 is a real answer.
    """
    if answer is None:
        return True
    if isinstance(answer, MultipleChoiceAnswer):
        return len(answer.values) == 0
    if isinstance(answer, RatingAnswer):
        return answer.value is None
    if isinstance(answer, (SingleChoiceAnswer, TrueFalseAnswer, TextAnswer)):
        return answer.value is None or str(answer.value).strip() == ""
    raise TypeError(f"Unsupported Answer type: {type(answer)}")


def answer_to_raw(answer: Answer) -> Any:
    """Return the untagged payload of an answer (str, sorted list or int)."""
    if isinstance(answer, MultipleChoiceAnswer):
        return sorted(answer.values)
    if isinstance(answer, (SingleChoiceAnswer, TrueFalseAnswer, RatingAnswer, TextAnswer)):
        return answer.value
    raise TypeError(f"Unsupported Answer type: {type(answer)}")


def answer_from_raw(kind: str, raw: Any) -> Answer:
    """
    Build the variant for a stored tag from an untagged payload.

    Raises:
        TypeError: If the tag is unknown or the payload shape does not fit
    """
    cls = ANSWER_KINDS.get(kind)
    if cls is None:
        raise TypeError(f"Unsupported answer kind: {kind}")
    if cls is MultipleChoiceAnswer:
        if isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
            raise TypeError(f"Multiple-choice payload must be a list of labels, got {type(raw).__name__}")
        return MultipleChoiceAnswer.of(str(v) for v in raw)
    if cls is RatingAnswer:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise TypeError(f"Rating payload must be an integer, got {type(raw).__name__}")
        return RatingAnswer(raw)
    if not isinstance(raw, str):
        raise TypeError(f"{kind} payload must be a string, got {type(raw).__name__}")
    return cls(raw)
