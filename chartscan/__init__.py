"""chartscan - container image inventory for packaged charts."""

__version__ = "0.1.0"
