import threading

import pytest

from robin_sync.application.exceptions import PipelineError
from robin_sync.application.pipeline import DataPipeline

OPTION_URL = "https://api.robinhood.com/options/instruments/opt-1/"
INSTRUMENT_URL = "https://api.robinhood.com/instruments/ins-1/"


class FakeClient:
    def __init__(self, *, stock_rows=None, option_rows=None, failures=None):
        self.stock_rows = stock_rows if stock_rows is not None else []
        self.option_rows = option_rows if option_rows is not None else []
        self.failures = failures or {}
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, name, *args):
        with self._lock:
            self.calls.append((name,) + args)
        if name in self.failures:
            raise self.failures[name]

    def get_stock_positions(self):
        self._record("stock_positions")
        return {"results": self.stock_rows}

    def get_option_positions(self):
        self._record("option_positions")
        return {"results": self.option_rows}

    def get_market_data(self, urls, kind):
        self._record("market_data", kind, list(urls))
        if kind == "stocks":
            return {
                "results": [
                    {
                        "last_trade_price": "10.5",
                        "last_extended_hours_trade_price": "10.6",
                        "symbol": "ABC",
                        "updated_at": "2024-05-01T20:00:00Z",
                        "instrument": url,
                    }
                    for url in urls
                ]
            }
        return {
            "results": [
                {"adjusted_mark_price": "1.00", "break_even_price": "51.00", "instrument": url} for url in urls
            ]
        }

    def get_option_instruments(self, ids):
        self._record("option_instruments", list(ids))
        return {
            "results": [
                {
                    "chain_id": "chain-1",
                    "chain_symbol": "ABC",
                    "expiration_date": "2024-06-21",
                    "id": option_id,
                    "strike_price": "50.0000",
                    "type": "call",
                    "url": OPTION_URL,
                }
                for option_id in ids
            ]
        }


class FakeUploader:
    def __init__(self, status=200, error=None):
        self.bodies = []
        self.status = status
        self.error = error

    def upload(self, body):
        self.bodies.append(body)
        if self.error:
            raise self.error
        return self.status


STOCK_ROW = {
    "account": "acct",
    "quantity": "3.0000",
    "average_buy_price": "9.0000",
    "instrument": INSTRUMENT_URL,
}
OPTION_ROW = {
    "account": "acct",
    "average_price": "85.0000",
    "chain_id": "chain-1",
    "chain_symbol": "ABC",
    "id": "pos-1",
    "option": OPTION_URL,
    "quantity": "1.0000",
    "type": "long",
}


def _pipeline(client, uploader):
    tokens_seen = []

    def factory(bearer):
        tokens_seen.append(bearer)
        return client

    return DataPipeline(uploader, client_factory=factory), tokens_seen


def test_run_uploads_composed_snapshot():
    client = FakeClient(stock_rows=[STOCK_ROW], option_rows=[OPTION_ROW])
    uploader = FakeUploader(status=201)
    pipeline, tokens_seen = _pipeline(client, uploader)

    report = pipeline.run("B1")

    assert tokens_seen == ["B1"]
    [body] = uploader.bodies
    assert set(body) == {"positions", "marketData", "metadata"}
    assert body["positions"]["stocks"] == [
        {"account": "acct", "quantity": 3, "averageBuyPrice": 9.0, "instrument": INSTRUMENT_URL}
    ]
    assert body["positions"]["options"][0]["option"] == OPTION_URL
    assert body["marketData"]["stocks"][0]["lastTradePrice"] == 10.5
    assert body["marketData"]["options"][0]["adjustedMarkPrice"] == "1.00"
    assert body["metadata"]["options"][0]["id"] == "opt-1"
    assert report.upload_status == 201
    assert report.counts == {
        "stock_positions": 1,
        "option_positions": 1,
        "stock_quotes": 1,
        "option_quotes": 1,
        "options": 1,
    }
    assert ("option_instruments", ["opt-1"]) in client.calls
    assert ("market_data", "stocks", [INSTRUMENT_URL]) in client.calls


def test_empty_positions_skip_dependent_requests():
    client = FakeClient()
    uploader = FakeUploader()
    pipeline, _ = _pipeline(client, uploader)

    report = pipeline.run("B1")

    assert sorted(call[0] for call in client.calls) == ["option_positions", "stock_positions"]
    assert uploader.bodies == [
        {
            "positions": {"stocks": [], "options": []},
            "marketData": {"stocks": [], "options": []},
            "metadata": {"options": []},
        }
    ]
    assert report.counts["options"] == 0


def test_unparseable_option_url_fails_before_upload():
    bad_row = dict(OPTION_ROW, option="https://api.robinhood.com/options/positions/")
    client = FakeClient(option_rows=[bad_row])
    uploader = FakeUploader()
    pipeline, _ = _pipeline(client, uploader)

    with pytest.raises(PipelineError) as excinfo:
        pipeline.run("B1")

    assert excinfo.value.stage == "option_metadata"
    assert uploader.bodies == []


def test_fetch_failure_propagates_without_upload():
    failure = PipelineError("GET failed with HTTP 401", stage="stock_positions", url="https://x/positions/")
    client = FakeClient(failures={"stock_positions": failure})
    uploader = FakeUploader()
    pipeline, _ = _pipeline(client, uploader)

    with pytest.raises(PipelineError) as excinfo:
        pipeline.run("B1")

    assert excinfo.value is failure
    assert uploader.bodies == []


def test_malformed_payload_is_pipeline_error():
    client = FakeClient()
    client.get_option_positions = lambda: {"detail": "not found"}
    pipeline, _ = _pipeline(client, FakeUploader())

    with pytest.raises(PipelineError) as excinfo:
        pipeline.run("B1")

    assert excinfo.value.stage == "option_positions"


def test_upload_failure_propagates():
    client = FakeClient(stock_rows=[STOCK_ROW])
    uploader = FakeUploader(error=PipelineError("Upload rejected with HTTP 500", stage="upload"))
    pipeline, _ = _pipeline(client, uploader)

    with pytest.raises(PipelineError, match="Upload rejected"):
        pipeline.run("B1")
