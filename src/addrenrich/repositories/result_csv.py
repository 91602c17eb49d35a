"""CSV sinks for enriched and unprocessed addresses."""

from datetime import datetime
from pathlib import Path
from typing import AsyncIterable

import pandas as pd
import structlog

from addrenrich.models.address import Address
from addrenrich.models.outcome import Outcome

logger = structlog.get_logger(__name__)

HEADER = ["Title", "Price", "Street", "City", "State", "Zip", "Link", "CMRA", "RDI"]


class CsvResultSink:
    """
    Collects a result stream and writes it to a CSV file.

    Rows are buffered until the stream closes so a failed write can be
    retried elsewhere:
    1. Write the configured path.
    2. If that fails, write a timestamped fallback next to it.
    3. If that fails too, dump every row to the log.
    """

    def __init__(self, path: str | Path, include_reason: bool = False):
        self.path = Path(path)
        self.include_reason = include_reason

    @property
    def header(self) -> list[str]:
        return HEADER + ["Reason"] if self.include_reason else list(HEADER)

    async def consume(self, stream: AsyncIterable[Address | Outcome]) -> int:
        """Drain the stream, then write it. Returns the number of rows."""
        rows = [self._to_row(item) async for item in stream]

        if not rows:
            logger.info("No rows to write", path=str(self.path))
            return 0

        logger.info("Writing results", path=str(self.path), rows=len(rows))
        self.write(rows)
        return len(rows)

    def write(self, rows: list[list[str]]) -> Path | None:
        """Write rows with fallbacks. Returns the file written, if any."""
        try:
            self._write_file(self.path, rows)
            logger.info("Results written", path=str(self.path), rows=len(rows))
            return self.path
        except OSError as e:
            logger.error("Could not write results file", path=str(self.path), error=str(e))

        stamp = datetime.now().strftime("%Y%m%d%H%M%S")
        fallback = self.path.with_name(f"{self.path.stem}_fallback_{stamp}{self.path.suffix or '.csv'}")
        try:
            self._write_file(fallback, rows)
            logger.warning("Results written to fallback file", path=str(fallback), rows=len(rows))
            return fallback
        except OSError as e:
            logger.error("Could not write fallback file", path=str(fallback), error=str(e))

        logger.critical("File output failed, dumping rows to log", rows=len(rows))
        for row in rows:
            logger.info("Result row", **dict(zip(self.header, row)))
        return None

    def _write_file(self, path: Path, rows: list[list[str]]) -> None:
        df = pd.DataFrame(rows, columns=self.header)
        df.to_csv(path, index=False, encoding="utf-8")

    def _to_row(self, item: Address | Outcome) -> list[str]:
        if isinstance(item, Outcome):
            address = item.address
            reason = item.reason.value if item.reason else ""
        else:
            address = item
            reason = ""

        row = [
            address.title,
            address.price,
            address.street,
            address.city,
            address.state,
            address.zip,
            address.link,
            address.cmra,
            address.rdi,
        ]
        if self.include_reason:
            row.append(reason)
        return row
