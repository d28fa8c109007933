"""Static extraction of web component metadata into OWCS documents."""

__version__ = "0.1.0"
