"""VM Parser - Builds opcodes from VM source text."""

from .parser import Parser, parse_file
from .opcodes import *

__all__ = ['Parser', 'parse_file']
