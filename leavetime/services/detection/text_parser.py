"""
Free-text extraction helpers used by flight detection.

All helpers are pure and first-match-wins: the earliest match in the text (or
the first pattern in the ordered list that matches) is returned, never a
"best" match.
"""
import re
from typing import List, Optional, Pattern

from leavetime.services.reference.airport_directory import AirportDirectory

IATA_TOKEN_PATTERN = re.compile(r'\b[A-Z]{3}\b')

# 2-3 letters, optional space, 2-4 digits, optional suffix letter: AA123, KL 456, SQ12.
# Unanchored: a number glued to non-Latin text or longer digit runs still matches.
FLIGHT_NUMBER_PATTERN = re.compile(r'[A-Z]{2,3} ?\d{2,4}[A-Z]?')

TERMINAL_PATTERNS: List[Pattern] = [
    re.compile(r'Terminal ([1-9][0-9]?)', re.IGNORECASE),
    re.compile(r'T([1-9][0-9]?)', re.IGNORECASE),
    re.compile(r'Terminal ([A-Z])', re.IGNORECASE),
]

GATE_PATTERNS: List[Pattern] = [
    re.compile(r'Gate ([A-Z][0-9]{1,3})', re.IGNORECASE),
    re.compile(r'Gate ([0-9]{1,3})', re.IGNORECASE),
    re.compile(r'G([0-9]{1,3})', re.IGNORECASE),
]

FLIGHT_KEYWORDS: List[str] = [
    # English
    "flight", "departure", "airport", "terminal", "gate", "boarding",
    "travel", "trip", "airlines", "flying",
    # Spanish
    "vuelo", "salida", "aeropuerto", "puerta", "embarque",
    "viaje", "aerolíneas", "avión",
    # French
    "vol", "départ", "aéroport", "aeroport",
    # German
    "flug", "flughafen", "abflug",
    # Italian
    "volo", "aeroporto", "partenza",
    # Thai, romanized and native script
    "bin", "fly", "thiao bin", "sanam bin", "เที่ยวบิน", "สนามบิน",
]


def extract_iata_code(text: Optional[str], directory: AirportDirectory) -> Optional[str]:
    """
    First 3-uppercase-letter token (left to right) that is a known airport.

    Args:
        text: Free text to scan
        directory: Airport directory used to resolve candidate tokens

    Returns:
        Canonical IATA code, or None if no token resolves
    """
    if not text:
        return None
    for match in IATA_TOKEN_PATTERN.finditer(text):
        if directory.find(match.group(0)) is not None:
            return match.group(0)
    return None


def extract_iata_codes(text: Optional[str], directory: AirportDirectory) -> List[str]:
    """All resolving codes in scan order, without repeats"""
    if not text:
        return []
    codes: List[str] = []
    for match in IATA_TOKEN_PATTERN.finditer(text):
        code = match.group(0)
        if code not in codes and directory.find(code) is not None:
            codes.append(code)
    return codes


def extract_flight_number(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    match = FLIGHT_NUMBER_PATTERN.search(text)
    return match.group(0).upper() if match else None


def extract_airline(flight_number: Optional[str]) -> Optional[str]:
    """Airline designator: the first two characters of a flight number"""
    if not flight_number or len(flight_number) < 2:
        return None
    return flight_number[:2]


def _first_pattern_match(text: Optional[str], patterns: List[Pattern]) -> Optional[str]:
    if not text:
        return None
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def extract_terminal(text: Optional[str]) -> Optional[str]:
    return _first_pattern_match(text, TERMINAL_PATTERNS)


def extract_gate(text: Optional[str]) -> Optional[str]:
    return _first_pattern_match(text, GATE_PATTERNS)


def matched_keywords(text: Optional[str]) -> List[str]:
    """Keywords found in ``text`` (case-insensitive substring match)"""
    if not text:
        return []
    lowered = text.lower()
    return [keyword for keyword in FLIGHT_KEYWORDS if keyword in lowered]


def contains_flight_keyword(text: Optional[str]) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(keyword in lowered for keyword in FLIGHT_KEYWORDS)
