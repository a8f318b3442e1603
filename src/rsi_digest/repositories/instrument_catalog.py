"""
Instrument Catalog module for RSI Digest.
Static instrument metadata (display name, quote currency) loaded from instruments.csv.
"""
import csv
import logging
from typing import Dict, Optional, List
from dataclasses import dataclass
from pathlib import Path

from rsi_digest.config import INSTRUMENTS_FILE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Instrument:
    """Represents an instrument from the catalog."""
    symbol: str  # Yahoo Finance symbol (e.g., ESE.PA, BTC-USD)
    name: str
    currency: str


class InstrumentCatalog:
    """
    Manages the instrument catalog loaded from instruments.csv.

    The CSV file must have a header row with columns:
    symbol,name,currency
    """

    def __init__(self, csv_path: Path = INSTRUMENTS_FILE):
        self.csv_path = Path(csv_path)
        self._instruments: Dict[str, Instrument] = {}
        self._loaded = False

    def load(self) -> bool:
        """
        Load the instrument catalog from CSV file.

        Returns:
            True if loaded successfully, False otherwise
        """
        self._instruments.clear()

        if not self.csv_path.exists():
            logger.error(f"Instrument catalog not found: {self.csv_path}")
            return False

        try:
            with open(self.csv_path, newline='', encoding='utf-8') as csvfile:
                reader = csv.DictReader(csvfile)

                required_columns = {'symbol', 'name', 'currency'}
                if not reader.fieldnames:
                    logger.error("Instrument catalog has no header row")
                    return False

                missing_columns = required_columns - set(reader.fieldnames)
                if missing_columns:
                    logger.error(f"Instrument catalog missing columns: {missing_columns}")
                    return False

                line_num = 1
                for row in reader:
                    line_num += 1
                    symbol = (row.get('symbol') or '').strip().upper()
                    name = (row.get('name') or '').strip()
                    currency = (row.get('currency') or '').strip().upper()

                    if not symbol or not name:
                        logger.warning(f"Skipping line {line_num}: missing symbol or name")
                        continue

                    if not currency:
                        logger.warning(f"Instrument {symbol} has no currency")

                    self._instruments[symbol] = Instrument(
                        symbol=symbol,
                        name=name,
                        currency=currency
                    )

            self._loaded = True
            logger.info(f"Loaded {len(self._instruments)} instruments from catalog")
            return True

        except (OSError, csv.Error) as e:
            logger.error(f"Error loading instrument catalog: {e}")
            return False

    def reload(self) -> bool:
        """Reload the catalog from disk."""
        return self.load()

    def get_instrument(self, symbol: str) -> Optional[Instrument]:
        """Get instrument details for a symbol."""
        if not self._loaded:
            self.load()
        return self._instruments.get(symbol.upper())

    def find_by_name(self, name: str) -> Optional[Instrument]:
        """Find an instrument by its display name (case-insensitive)."""
        if not self._loaded:
            self.load()

        wanted = name.strip().casefold()
        for instrument in self._instruments.values():
            if instrument.name.casefold() == wanted:
                return instrument
        return None

    def get_all_symbols(self) -> List[str]:
        """Get list of all catalog symbols."""
        if not self._loaded:
            self.load()
        return list(self._instruments.keys())

    def __len__(self) -> int:
        if not self._loaded:
            self.load()
        return len(self._instruments)

    def __contains__(self, symbol: str) -> bool:
        return self.get_instrument(symbol) is not None


# Global singleton instance
_catalog: Optional[InstrumentCatalog] = None


def get_catalog() -> InstrumentCatalog:
    """Get the global instrument catalog instance."""
    global _catalog
    if _catalog is None:
        _catalog = InstrumentCatalog()
        _catalog.load()
    return _catalog
