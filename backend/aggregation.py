"""
Aggregation Service

This module derives survey statistics from the full set of stored responses.
Everything is recomputed on each call; nothing is cached between requests.
"""

from collections import Counter
import logging
import math
import re

from sqlalchemy.exc import SQLAlchemyError

from analysis import pearson, rank_frequencies, split_causes
from config import SURVEY_CONFIG, question_options
from errors import StoreUnavailable, UndefinedCorrelation
from schemas import (
    AggregateSummary,
    AnswerCount,
    CauseFrequency,
    CorrelationReport,
    EducationStat,
    QuestionStat,
)

logger = logging.getLogger(__name__)

LEADING_INTEGER = re.compile(r"\s*([+-]?)(\d+)")

# A longer leading number is not an age and counts like an unparseable one
MAX_AGE_DIGITS = 3

# Questionnaire items stored as top-level fields rather than in answers
DEDICATED_FIELDS = ("age", "education")


def parse_age(value):
    """
    Read the leading integer of an age value.

    "18-24" gives 18, "65 or above" gives 65 and anything without a leading
    number ("Under 18", "abc") gives 0, as does a number too long to be an
    age.
    """
    match = LEADING_INTEGER.match(value or "")
    if not match or len(match.group(2)) > MAX_AGE_DIGITS:
        return 0
    return int(match.group(1) + match.group(2))


def tally_answers(responses):
    """
    Count how many responses gave each answer to each question.

    Questions and their answers are listed in the order they are first seen.
    A response counts once per (question, answer) pair even if it repeats it.

    Returns:
        list: QuestionStat entries numbered from 1
    """
    tallies = {}
    for response in responses:
        seen = set()
        for item in response.answers:
            pair = (item.question, item.answer)
            if pair in seen:
                continue
            seen.add(pair)

            answers = tallies.setdefault(item.question, {})
            answers[item.answer] = answers.get(item.answer, 0) + 1

    return [
        QuestionStat(
            question_id=question_id,
            question=question,
            answers=[AnswerCount(answer=answer, count=count) for answer, count in answers.items()]
        )
        for question_id, (question, answers) in enumerate(tallies.items(), start=1)
    ]


def average_age(responses):
    """
    Mean of the parsed ages, rounded half up.

    Unparseable ages add 0 but still count in the denominator.
    """
    if not responses:
        return 0
    total = sum(parse_age(response.age) for response in responses)
    return math.floor(total / len(responses) + 0.5)


def education_distribution(responses):
    counts = Counter(response.education for response in responses)
    return [EducationStat(level=level, count=count) for level, count in counts.items()]


def field_value(response, key):
    """Return the answer a response gave to a questionnaire item, or None."""
    if key in DEDICATED_FIELDS:
        return getattr(response, key)
    for item in response.answers:
        if item.question == key:
            return item.answer
    return None


def encode_answers(values, options):
    """
    Map categorical answers onto numbers for correlation.

    Known options use their position in the questionnaire, numeric answers
    keep their value, anything else is ranked after the options in the order
    it first appears.
    """
    extra = {}
    encoded = []
    for value in values:
        if value in options:
            encoded.append(float(options.index(value)))
            continue
        try:
            number = float(value)
        except ValueError:
            number = None
        if number is not None and math.isfinite(number):
            encoded.append(number)
        else:
            encoded.append(float(extra.setdefault(value, len(options) + len(extra))))
    return encoded


class AggregationService:
    """Computes statistics over every response held by the store."""

    def __init__(self, store, questionnaire=None):
        self.store = store
        self.questionnaire = questionnaire if questionnaire is not None else SURVEY_CONFIG

    def _load_responses(self):
        try:
            return self.store.find_all()
        except SQLAlchemyError as e:
            logger.error(f"Error loading survey responses: {str(e)}", exc_info=True)
            raise StoreUnavailable("Could not load survey responses") from e

    def compute_stats(self) -> AggregateSummary:
        responses = self._load_responses()

        return AggregateSummary(
            question_stats=tally_answers(responses),
            total_responses=len(responses),
            average_age=average_age(responses),
            education_stats=education_distribution(responses),
        )

    def correlation(self, x: str, y: str) -> CorrelationReport:
        """
        Correlate the answers to two questionnaire items.

        Args:
            x: Question text, or "age"/"education"
            y: Question text, or "age"/"education"

        Raises:
            UndefinedCorrelation: If fewer than two responses answered both
                items or either series has zero variance
        """
        responses = self._load_responses()

        pairs = []
        for response in responses:
            x_value = field_value(response, x)
            y_value = field_value(response, y)
            if x_value is not None and y_value is not None:
                pairs.append((x_value, y_value))

        if not pairs:
            raise UndefinedCorrelation(f"No response answered both {x!r} and {y!r}")

        x_values, y_values = zip(*pairs)
        xs = encode_answers(x_values, question_options(x, self.questionnaire))
        ys = encode_answers(y_values, question_options(y, self.questionnaire))

        coefficient = pearson(xs, ys)
        return CorrelationReport(x=x, y=y, pairs=len(pairs), coefficient=coefficient)

    def cause_frequencies(self, question: str):
        """
        Rank the causes named in a free-text question, most frequent first.

        Returns:
            list: CauseFrequency entries
        """
        responses = self._load_responses()

        causes = [split_causes(field_value(response, question)) for response in responses]
        ranked = rank_frequencies(causes)

        if not ranked:
            logger.warning(f"No causes recorded for question: {question}")

        return [CauseFrequency(cause=cause, count=count) for cause, count in ranked]
