import pytest

from pigeonrelay.logs import filter_logs, should_do_binary_search
from pigeonrelay.types import FilterQuery, Header, Log

LOG1 = Log(block_number=1)
LOG2 = Log(block_number=2)
LOG3 = Log(block_number=3)
LOG4 = Log(block_number=4)
LOG5 = Log(block_number=5)


class FakeError(Exception):
    pass


class FakeLogClient:
    def __init__(self, responses=None, header=None, header_error=None):
        self.responses = dict(responses or {})
        self.header = header
        self.header_error = header_error
        self.queries = []
        self.header_calls = []

    def header_by_number(self, number):
        self.header_calls.append(number)
        if self.header_error is not None:
            raise self.header_error
        return self.header

    def filter_logs(self, query):
        self.queries.append(query)
        result = self.responses[query]
        if isinstance(result, Exception):
            raise result
        return list(result)


class Collector:
    def __init__(self, answer=False):
        self.answer = answer
        self.collected = []
        self.calls = 0

    def __call__(self, logs):
        self.calls += 1
        self.collected.extend(logs)
        return self.answer


def test_header_error_is_raised():
    error = FakeError("fake error")
    client = FakeLogClient(header_error=error)
    with pytest.raises(FakeError) as info:
        filter_logs(client, FilterQuery(), None, True, Collector())
    assert info.value is error
    assert client.queries == []


def test_exact_block_query_is_left_unchanged():
    query = FilterQuery(block_hash=b"\xab" * 32)
    client = FakeLogClient(responses={query: []}, header=Header(number=134))
    collector = Collector()
    found = filter_logs(client, query, None, True, collector)
    assert found is False
    assert client.queries == [query]
    assert client.header_calls == [None]
    assert collector.collected == []


def test_missing_range_is_filled_in():
    expected = FilterQuery(to_block=134, from_block=0)
    client = FakeLogClient(responses={expected: []})
    collector = Collector()
    found = filter_logs(client, FilterQuery(), 134, True, collector)
    assert found is False
    assert client.queries == [expected]
    assert client.header_calls == []
    assert collector.collected == []


def test_callback_is_not_called_without_results():
    expected = FilterQuery(to_block=134, from_block=0)
    client = FakeLogClient(responses={expected: []})
    collector = Collector(answer=True)
    found = filter_logs(client, FilterQuery(), 134, True, collector)
    assert found is False
    assert collector.calls == 0


def test_callback_result_is_returned_with_logs_reversed():
    expected = FilterQuery(to_block=10, from_block=0)
    client = FakeLogClient(responses={expected: [LOG1, LOG2]})
    collector = Collector(answer=True)
    found = filter_logs(client, FilterQuery(), 10, True, collector)
    assert found is True
    assert collector.collected == [LOG2, LOG1]


def test_too_many_results_splits_the_range():
    client = FakeLogClient(
        responses={
            FilterQuery(to_block=8, from_block=0): FakeError(
                "query returned more than 10000 results"
            ),
            FilterQuery(from_block=5, to_block=8): [LOG4, LOG5],
            FilterQuery(from_block=0, to_block=4): [LOG1, LOG2, LOG3],
        }
    )
    collector = Collector()
    found = filter_logs(client, FilterQuery(), 8, True, collector)
    assert found is False
    assert collector.collected == [LOG5, LOG4, LOG3, LOG2, LOG1]
    assert len(client.queries) == 3


def test_split_stops_once_callback_finds_something():
    client = FakeLogClient(
        responses={
            FilterQuery(to_block=8, from_block=0): FakeError("block range is too wide"),
            FilterQuery(from_block=5, to_block=8): [LOG4, LOG5],
            FilterQuery(from_block=0, to_block=4): [LOG1, LOG2, LOG3],
        }
    )
    collector = Collector(answer=True)
    found = filter_logs(client, FilterQuery(), 8, True, collector)
    assert found is True
    assert collector.collected == [LOG5, LOG4]
    assert FilterQuery(from_block=0, to_block=4) not in client.queries


def test_forward_order_searches_earlier_half_first():
    client = FakeLogClient(
        responses={
            FilterQuery(to_block=8, from_block=0): FakeError("exceed maximum block range"),
            FilterQuery(from_block=5, to_block=8): [LOG4, LOG5],
            FilterQuery(from_block=0, to_block=4): [LOG1, LOG2, LOG3],
        }
    )
    collector = Collector()
    filter_logs(client, FilterQuery(), 8, False, collector)
    assert collector.collected == [LOG3, LOG2, LOG1, LOG5, LOG4]


def test_other_errors_are_raised():
    error = FakeError("fake error")
    client = FakeLogClient(responses={FilterQuery(to_block=8, from_block=0): error})
    with pytest.raises(FakeError) as info:
        filter_logs(client, FilterQuery(), 8, True, Collector())
    assert info.value is error


@pytest.mark.parametrize(
    "message",
    [
        "query returned more than 10000 results",
        "eth_getLogs and eth_newFilter are limited to a 10,000 blocks range",
        "block range is too wide",
        "rpc: exceed maximum block range: 5000",
    ],
)
def test_range_errors_trigger_binary_search(message):
    assert should_do_binary_search(FakeError(message)) is True


def test_unrelated_error_does_not_trigger_binary_search():
    assert should_do_binary_search(FakeError("connection refused")) is False