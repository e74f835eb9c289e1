"""Domain exporters producing the entries of a backup archive."""

from .data_exporter import DataExporter
from .config_exporter import ConfigurationExporter
from .security_exporter import SecurityExporter
from .functions_exporter import FunctionsExporter

__all__ = ["DataExporter", "ConfigurationExporter", "SecurityExporter", "FunctionsExporter"]
