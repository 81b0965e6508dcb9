"""Mappers decoding Robinhood API payloads into domain records."""

from .robinhood_mapper import RobinhoodMappingError, RobinhoodPayloadMapper, extract_option_id

__all__ = [
    "RobinhoodMappingError",
    "RobinhoodPayloadMapper",
    "extract_option_id",
]
