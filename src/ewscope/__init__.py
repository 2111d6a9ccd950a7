"""ewscope: Elliott Wave scenario analysis over pandas price series."""

__version__ = "0.3.0"
