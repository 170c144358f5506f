"""
Airport reference data and lookups.

The directory is static, loaded once and never mutated, so one instance can
be shared freely between concurrent readers.
"""
import logging
from functools import lru_cache
from typing import Dict, Iterable, Iterator, List, Optional

from leavetime.exceptions import AirportNotFoundException
from leavetime.schemas.airport import Airport, is_valid_iata_code

logger = logging.getLogger(__name__)


# Curated set of major airports plus a few domestic/regional ones
MAJOR_AIRPORTS: List[dict] = [
    # Asia
    {"code": "DMK", "name": "Don Mueang International Airport", "city": "Bangkok", "country_code": "TH",
     "latitude": 13.9125, "longitude": 100.6067, "timezone": "Asia/Bangkok",
     "is_international_hub": True, "terminals": ["Terminal 1", "Terminal 2"]},
    {"code": "BKK", "name": "Suvarnabhumi Airport", "city": "Bangkok", "country_code": "TH",
     "latitude": 13.6900, "longitude": 100.7501, "timezone": "Asia/Bangkok",
     "is_international_hub": True, "terminals": ["Main Terminal"]},
    {"code": "CNX", "name": "Chiang Mai International Airport", "city": "Chiang Mai", "country_code": "TH",
     "latitude": 18.7668, "longitude": 98.9626, "timezone": "Asia/Bangkok",
     "is_international_hub": False, "terminals": ["Domestic", "International"]},
    {"code": "SIN", "name": "Singapore Changi Airport", "city": "Singapore", "country_code": "SG",
     "latitude": 1.3644, "longitude": 103.9915, "timezone": "Asia/Singapore",
     "is_international_hub": True, "terminals": ["Terminal 1", "Terminal 2", "Terminal 3", "Terminal 4"]},
    {"code": "HKG", "name": "Hong Kong International Airport", "city": "Hong Kong", "country_code": "HK",
     "latitude": 22.3080, "longitude": 113.9185, "timezone": "Asia/Hong_Kong",
     "is_international_hub": True, "terminals": ["Terminal 1"]},
    {"code": "NRT", "name": "Narita International Airport", "city": "Tokyo", "country_code": "JP",
     "latitude": 35.7647, "longitude": 140.3864, "timezone": "Asia/Tokyo",
     "is_international_hub": True, "terminals": ["Terminal 1", "Terminal 2", "Terminal 3"]},
    # Europe
    {"code": "MAD", "name": "Adolfo Suárez Madrid–Barajas Airport", "city": "Madrid", "country_code": "ES",
     "latitude": 40.4983, "longitude": -3.5676, "timezone": "Europe/Madrid",
     "is_international_hub": True,
     "terminals": ["Terminal 1", "Terminal 2", "Terminal 3", "Terminal 4", "Terminal 4S"]},
    {"code": "BCN", "name": "Barcelona–El Prat Airport", "city": "Barcelona", "country_code": "ES",
     "latitude": 41.2974, "longitude": 2.0833, "timezone": "Europe/Madrid",
     "is_international_hub": True, "terminals": ["Terminal 1", "Terminal 2"]},
    {"code": "SVQ", "name": "Seville Airport", "city": "Seville", "country_code": "ES",
     "latitude": 37.4180, "longitude": -5.8931, "timezone": "Europe/Madrid",
     "is_international_hub": False, "terminals": None},
    {"code": "LHR", "name": "Heathrow Airport", "city": "London", "country_code": "GB",
     "latitude": 51.4700, "longitude": -0.4543, "timezone": "Europe/London",
     "is_international_hub": True, "terminals": ["Terminal 2", "Terminal 3", "Terminal 4", "Terminal 5"]},
    {"code": "CDG", "name": "Charles de Gaulle Airport", "city": "Paris", "country_code": "FR",
     "latitude": 49.0097, "longitude": 2.5479, "timezone": "Europe/Paris",
     "is_international_hub": True,
     "terminals": ["Terminal 1", "Terminal 2A", "Terminal 2B", "Terminal 2C", "Terminal 2D",
                   "Terminal 2E", "Terminal 2F", "Terminal 3"]},
    {"code": "AMS", "name": "Amsterdam Airport Schiphol", "city": "Amsterdam", "country_code": "NL",
     "latitude": 52.3105, "longitude": 4.7683, "timezone": "Europe/Amsterdam",
     "is_international_hub": True, "terminals": ["Terminal 1"]},
    # North America
    {"code": "JFK", "name": "John F. Kennedy International Airport", "city": "New York", "country_code": "US",
     "latitude": 40.6413, "longitude": -73.7781, "timezone": "America/New_York",
     "is_international_hub": True,
     "terminals": ["Terminal 1", "Terminal 2", "Terminal 4", "Terminal 5", "Terminal 7", "Terminal 8"]},
    {"code": "LAX", "name": "Los Angeles International Airport", "city": "Los Angeles", "country_code": "US",
     "latitude": 33.9416, "longitude": -118.4085, "timezone": "America/Los_Angeles",
     "is_international_hub": True,
     "terminals": ["Terminal 1", "Terminal 2", "Terminal 3", "Terminal 4", "Terminal 5", "Terminal 6",
                   "Terminal 7", "Terminal 8", "Tom Bradley International Terminal"]},
    {"code": "SFO", "name": "San Francisco International Airport", "city": "San Francisco", "country_code": "US",
     "latitude": 37.6213, "longitude": -122.3790, "timezone": "America/Los_Angeles",
     "is_international_hub": True,
     "terminals": ["Terminal 1", "Terminal 2", "International Terminal G", "International Terminal A"]},
    {"code": "OAK", "name": "Oakland International Airport", "city": "Oakland", "country_code": "US",
     "latitude": 37.7126, "longitude": -122.2197, "timezone": "America/Los_Angeles",
     "is_international_hub": False, "terminals": ["Terminal 1", "Terminal 2"]},
]


class AirportDirectory:
    """
    Immutable lookup table of airports keyed by IATA code.
    Lookups are case-insensitive; storage is canonical uppercase.
    """

    def __init__(self, airports: Iterable[Airport]):
        by_code: Dict[str, Airport] = {}
        for airport in airports:
            if airport.code in by_code:
                logger.warning(f"Duplicate airport code {airport.code} in directory, keeping first entry")
                continue
            by_code[airport.code] = airport
        self._by_code = by_code

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "AirportDirectory":
        return cls(Airport(**record) for record in records)

    @staticmethod
    def is_valid_iata_code(code: Optional[str]) -> bool:
        return is_valid_iata_code(code)

    def find(self, code: Optional[str]) -> Optional[Airport]:
        """
        Find an airport by IATA code (case insensitive).

        Returns None for unknown codes and for anything that is not three
        ASCII letters once uppercased.
        """
        if not isinstance(code, str):
            return None
        canonical = code.strip().upper()
        if not is_valid_iata_code(canonical):
            return None
        return self._by_code.get(canonical)

    def get(self, code: str) -> Airport:
        """Like find(), but raises AirportNotFoundException for unknown codes"""
        airport = self.find(code)
        if airport is None:
            raise AirportNotFoundException(code)
        return airport

    def all(self) -> List[Airport]:
        return list(self._by_code.values())

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and self.find(code) is not None

    def __len__(self) -> int:
        return len(self._by_code)

    def __iter__(self) -> Iterator[Airport]:
        return iter(self._by_code.values())


@lru_cache()
def get_airport_directory() -> AirportDirectory:
    """
    Get the shared read-only airport directory.
    Cached so the reference table is built once per process.
    """
    directory = AirportDirectory.from_records(MAJOR_AIRPORTS)
    logger.debug(f"Airport directory loaded with {len(directory)} airports")
    return directory
