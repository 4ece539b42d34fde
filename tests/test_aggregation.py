from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from aggregation import AggregationService, encode_answers, parse_age
from errors import StoreUnavailable, UndefinedCorrelation
from ingestion import IngestionService
from schemas import StoredSurveyResponse

FREQUENCY_QUESTION = "How often do you use social media for communication purposes?"
MODE_QUESTION = "How do you prefer to communicate online?"
CAUSE_QUESTION = "What do you think causes misunderstandings in online communication?"


class ListStore:
    def __init__(self, responses):
        self.responses = responses

    def find_all(self):
        return list(self.responses)


def response(email, age="25-34", education="Bachelor's degree", answers=()):
    return StoredSurveyResponse(
        name="Respondent",
        email=email,
        age=age,
        education=education,
        answers=[{"question": q, "answer": a} for q, a in answers],
        submitted_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )


def test_empty_store():
    summary = AggregationService(ListStore([])).compute_stats()

    assert summary.total_responses == 0
    assert summary.average_age == 0
    assert summary.question_stats == []
    assert summary.education_stats == []


def test_average_age_counts_unparseable_as_zero():
    responses = [response("a", age="20"), response("b", age="30"), response("c", age="abc")]

    assert AggregationService(ListStore(responses)).compute_stats().average_age == 17


@pytest.mark.parametrize("value, expected", [
    ("18-24", 18),
    ("65 or above", 65),
    ("Under 18", 0),
    ("  42", 42),
    ("", 0),
    ("1234", 0),
    ("-5", -5),
])
def test_parse_age(value, expected):
    assert parse_age(value) == expected


@pytest.mark.parametrize("digits", [400, 5000])
def test_oversized_age_counts_as_zero(digits):
    responses = [response("a", age="9" * digits), response("b", age="30")]

    summary = AggregationService(ListStore(responses)).compute_stats()

    assert summary.total_responses == 2
    assert summary.average_age == 15


def test_education_distribution():
    responses = [response("a", education="A"), response("b", education="A"), response("c", education="B")]

    stats = AggregationService(ListStore(responses)).compute_stats().education_stats

    assert [(s.level, s.count) for s in stats] == [("A", 2), ("B", 1)]


def test_question_tallies_in_first_seen_order():
    answers = ["Yes", "No", "Yes", "No", "Yes"]
    responses = [response(str(i), answers=[("Q1", a)]) for i, a in enumerate(answers)]

    stats = AggregationService(ListStore(responses)).compute_stats().question_stats

    assert len(stats) == 1
    assert stats[0].question_id == 1
    assert stats[0].question == "Q1"
    assert [(a.answer, a.count) for a in stats[0].answers] == [("Yes", 3), ("No", 2)]


def test_question_ids_follow_encounter_order():
    responses = [
        response("a", answers=[("Q2", "x")]),
        response("b", answers=[("Q1", "y"), ("Q2", "z")]),
    ]

    stats = AggregationService(ListStore(responses)).compute_stats().question_stats

    assert [(s.question_id, s.question) for s in stats] == [(1, "Q2"), (2, "Q1")]
    assert [a.answer for a in stats[0].answers] == ["x", "z"]


def test_repeated_pair_counts_once_per_response():
    responses = [
        response("a", answers=[("Q1", "Yes"), ("Q1", "Yes")]),
        response("b", answers=[("Q1", "Yes")]),
    ]

    stats = AggregationService(ListStore(responses)).compute_stats().question_stats

    assert stats[0].answers[0].count == 2


def test_responses_without_answers_still_count():
    responses = [response("a"), response("b", answers=[("Q1", "Yes")])]

    summary = AggregationService(ListStore(responses)).compute_stats()

    assert summary.total_responses == 2
    assert len(summary.question_stats) == 1


def test_compute_stats_is_idempotent(store, make_candidate):
    ingestion = IngestionService(store, track_ip=False)
    ingestion.submit(make_candidate(email="one@example.com"))
    ingestion.submit(make_candidate(email="two@example.com", age="18-24"))

    service = AggregationService(store)
    first = service.compute_stats()

    assert first == service.compute_stats()
    assert first.total_responses == 2
    assert first.average_age == 22


def test_store_failure_surfaces_as_unavailable():
    class BrokenStore:
        def find_all(self):
            raise OperationalError("SELECT", {}, Exception("database is down"))

    with pytest.raises(StoreUnavailable):
        AggregationService(BrokenStore()).compute_stats()


def test_correlation_uses_questionnaire_order():
    responses = [
        response("a", answers=[(FREQUENCY_QUESTION, "Rarely"), (MODE_QUESTION, "Text-based (e.g., messaging)")]),
        response("b", answers=[(FREQUENCY_QUESTION, "Sometimes"), (MODE_QUESTION, "Video calls")]),
        response("c", answers=[(FREQUENCY_QUESTION, "Frequently"), (MODE_QUESTION, "Voice calls")]),
        response("d", answers=[(FREQUENCY_QUESTION, "Almost always")]),
    ]

    report = AggregationService(ListStore(responses)).correlation(FREQUENCY_QUESTION, MODE_QUESTION)

    assert report.pairs == 3
    assert report.coefficient == pytest.approx(1.0)


def test_correlation_with_dedicated_field():
    responses = [
        response("a", age="18-24", answers=[(FREQUENCY_QUESTION, "Almost always")]),
        response("b", age="35-44", answers=[(FREQUENCY_QUESTION, "Frequently")]),
        response("c", age="55-64", answers=[(FREQUENCY_QUESTION, "Sometimes")]),
    ]

    report = AggregationService(ListStore(responses)).correlation("age", FREQUENCY_QUESTION)

    assert report.coefficient == pytest.approx(-1.0)


def test_correlation_with_constant_series_is_undefined():
    responses = [
        response(str(i), answers=[(FREQUENCY_QUESTION, "Rarely"), (MODE_QUESTION, mode)])
        for i, mode in enumerate(["Video calls", "Voice calls", "All of the above"])
    ]

    with pytest.raises(UndefinedCorrelation):
        AggregationService(ListStore(responses)).correlation(FREQUENCY_QUESTION, MODE_QUESTION)


def test_correlation_without_pairs_is_undefined():
    with pytest.raises(UndefinedCorrelation):
        AggregationService(ListStore([response("a")])).correlation(FREQUENCY_QUESTION, MODE_QUESTION)


def test_encode_answers_ranks_unknown_values_after_options():
    assert encode_answers(["b", "7", "zzz", "a", "zzz", "nan"], ["a", "b"]) == [1.0, 7.0, 2.0, 0.0, 2.0, 3.0]


def test_cause_frequencies():
    responses = [
        response("a", answers=[(CAUSE_QUESTION, "Tone, Sarcasm")]),
        response("b", answers=[(CAUSE_QUESTION, "Sarcasm; Emojis")]),
        response("c", answers=[(CAUSE_QUESTION, "Sarcasm")]),
        response("d"),
    ]

    ranked = AggregationService(ListStore(responses)).cause_frequencies(CAUSE_QUESTION)

    assert [(c.cause, c.count) for c in ranked] == [("Sarcasm", 3), ("Tone", 1), ("Emojis", 1)]


def test_cause_frequencies_for_unanswered_question():
    assert AggregationService(ListStore([response("a")])).cause_frequencies(CAUSE_QUESTION) == []
