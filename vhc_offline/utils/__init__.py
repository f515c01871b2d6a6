from .logger import setup_logging, get_logger, PerformanceLogger
from .validator import URLValidator, InputSanitizer, url_validator, input_sanitizer
from .output_formatter import OutputFormatter, output_formatter

__all__ = [
    "setup_logging",
    "get_logger",
    "PerformanceLogger",
    "URLValidator",
    "InputSanitizer",
    "url_validator",
    "input_sanitizer",
    "OutputFormatter",
    "output_formatter",
]
