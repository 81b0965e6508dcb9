"""Fetch positions, quotes and option metadata, then upload one snapshot."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from robin_sync.application.exceptions import PipelineError
from robin_sync.domain.entities import (
    AccountSnapshot,
    InstrumentMarketData,
    OptionInstrument,
    OptionMarketData,
    OptionPosition,
    StockPosition,
)
from robin_sync.infrastructure import log_utils
from robin_sync.infrastructure.mappers import RobinhoodMappingError, RobinhoodPayloadMapper, extract_option_id
from robin_sync.infrastructure.robinhood_client import RobinhoodClient
from robin_sync.infrastructure.upload_client import UploadClient

ClientFactory = Callable[[str], RobinhoodClient]


@dataclass
class PipelineReport:
    """Outcome of one successful pipeline run."""

    counts: Dict[str, int] = field(default_factory=dict)
    upload_status: Optional[int] = None

    def summary(self) -> str:
        parts = [f"{name}={value}" for name, value in self.counts.items()]
        if self.upload_status is not None:
            parts.append(f"upload_status={self.upload_status}")
        return ", ".join(parts)


class DataPipeline:
    """Collects the account snapshot for one bearer token and uploads it.

    Independent fetches run concurrently on a small thread pool; each stage is
    joined before the next one starts, and the upload happens last.
    """

    def __init__(
        self,
        uploader: UploadClient,
        *,
        client_factory: ClientFactory = RobinhoodClient,
        mapper: Optional[RobinhoodPayloadMapper] = None,
        max_workers: int = 3,
    ) -> None:
        self._uploader = uploader
        self._client_factory = client_factory
        self._mapper = mapper or RobinhoodPayloadMapper()
        self._max_workers = max_workers

    def run(self, bearer_token: str) -> PipelineReport:
        client = self._client_factory(bearer_token)
        snapshot = self.collect(client)
        log_utils.info("Uploading snapshot.")
        status = self._uploader.upload(snapshot.to_payload())
        log_utils.info("Uploaded snapshot.")
        return PipelineReport(counts=snapshot.counts(), upload_status=status)

    def collect(self, client: RobinhoodClient) -> AccountSnapshot:
        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="robin-fetch") as pool:
            log_utils.info("Fetching positions.")
            stocks_future = pool.submit(self._stock_positions, client)
            options_future = pool.submit(self._option_positions, client)
            stock_positions = stocks_future.result()
            option_positions = options_future.result()

            log_utils.info("Fetching market data and option metadata.")
            stock_quotes_future = pool.submit(self._stock_market_data, client, stock_positions)
            option_quotes_future = pool.submit(self._option_market_data, client, option_positions)
            metadata_future = pool.submit(self._option_metadata, client, option_positions)
            stock_quotes = stock_quotes_future.result()
            option_quotes = option_quotes_future.result()
            options = metadata_future.result()

        return AccountSnapshot(
            stock_positions=stock_positions,
            option_positions=option_positions,
            stock_market_data=stock_quotes,
            option_market_data=option_quotes,
            options=options,
        )

    def _decode(self, stage: str, decode: Callable[[object], list], payload: object) -> list:
        try:
            return decode(payload)
        except RobinhoodMappingError as exc:
            raise PipelineError(f"Could not decode {stage}: {exc}", stage=stage) from exc

    def _stock_positions(self, client: RobinhoodClient) -> List[StockPosition]:
        return self._decode("stock_positions", self._mapper.stock_positions, client.get_stock_positions())

    def _option_positions(self, client: RobinhoodClient) -> List[OptionPosition]:
        return self._decode("option_positions", self._mapper.option_positions, client.get_option_positions())

    def _stock_market_data(
        self, client: RobinhoodClient, positions: List[StockPosition]
    ) -> List[InstrumentMarketData]:
        urls = [p.instrument for p in positions if p.instrument]
        if not urls:
            return []
        return self._decode("stocks_market_data", self._mapper.stock_quotes, client.get_market_data(urls, "stocks"))

    def _option_market_data(
        self, client: RobinhoodClient, positions: List[OptionPosition]
    ) -> List[OptionMarketData]:
        urls = [p.option for p in positions if p.option]
        if not urls:
            return []
        return self._decode("options_market_data", self._mapper.option_quotes, client.get_market_data(urls, "options"))

    def _option_metadata(self, client: RobinhoodClient, positions: List[OptionPosition]) -> List[OptionInstrument]:
        if not positions:
            return []
        try:
            ids = [extract_option_id(p.option or "") for p in positions]
        except RobinhoodMappingError as exc:
            raise PipelineError(str(exc), stage="option_metadata") from exc
        return self._decode("option_metadata", self._mapper.option_instruments, client.get_option_instruments(ids))


__all__ = ["DataPipeline", "PipelineReport"]
