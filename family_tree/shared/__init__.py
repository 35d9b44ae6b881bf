"""
Shared GEDCOM and formatting utilities
"""

from .gedcom_formatter import GEDCOMFileWriter, GEDCOMFormatter
from .gedcom_parser import GEDCOMParser
from .gedcom_writer import GEDCOMWriter


__all__ = ['GEDCOMParser', 'GEDCOMWriter', 'GEDCOMFormatter', 'GEDCOMFileWriter']
