"""
VM Translator (vmtrans) - Translates stack VM code to Hack assembly.

This package provides a complete implementation of a VM to Hack assembly
translator, supporting stack arithmetic, memory segments, program flow
and the function calling convention.
"""

__version__ = "0.1.0"
__author__ = "VM Translator Project"
