"""Parser registry for dynamic parser registration and retrieval."""
from typing import Dict, List, Optional, Type

from data_refinery.parsers.base_parser import ParserInterface
from data_refinery.errors.exceptions import ParseError


# Global registry mapping parser type strings to parser classes
_parser_registry: Dict[str, Type[ParserInterface]] = {}


def register_parser(parser_type: str, parser_class: Type[ParserInterface]) -> None:
    """Register a parser class for a given parser type.

    Args:
        parser_type: Unique identifier for the parser (e.g., "csv")
        parser_class: Parser class that inherits from ParserInterface

    Raises:
        ValueError: If parser_type is already registered
        TypeError: If parser_class does not inherit from ParserInterface
    """
    if not issubclass(parser_class, ParserInterface):
        raise TypeError(
            f"Parser class {parser_class.__name__} must inherit from ParserInterface"
        )

    if parser_type in _parser_registry:
        raise ValueError(
            f"Parser type '{parser_type}' is already registered. "
            f"Existing: {_parser_registry[parser_type].__name__}"
        )

    _parser_registry[parser_type] = parser_class


def get_parser(parser_type: str) -> Optional[Type[ParserInterface]]:
    """Get parser class for a given parser type, or None."""
    return _parser_registry.get(parser_type)


def create_parser_instance(parser_type: str, **kwargs) -> ParserInterface:
    """Create an instance of a parser for a given parser type.

    Raises:
        ParseError: If parser type is not registered
    """
    parser_class = get_parser(parser_type)
    if parser_class is None:
        available = ", ".join(_parser_registry.keys()) if _parser_registry else "none"
        raise ParseError(
            f"Parser type '{parser_type}' is not registered. "
            f"Available parsers: {available}"
        )

    try:
        return parser_class(**kwargs)
    except Exception as e:
        raise ParseError(
            f"Failed to create parser instance for '{parser_type}': {e}"
        ) from e


def get_parser_for_file(file_name: str, **kwargs) -> ParserInterface:
    """Create the parser that handles ``file_name`` based on its extension.

    Raises:
        ParseError: If no registered parser supports the extension
    """
    for parser_type in _parser_registry:
        parser = create_parser_instance(parser_type, **kwargs)
        if parser.can_handle(file_name):
            return parser

    raise ParseError("Unsupported file format. Please upload CSV or XLSX.")


def list_registered_parsers() -> List[str]:
    """List all registered parser types."""
    return list(_parser_registry.keys())
