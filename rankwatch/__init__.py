"""rankwatch: keyword rank tracking for a target domain and its competitors."""

__version__ = "1.0.0"
