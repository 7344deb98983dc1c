#!/usr/bin/env python3
"""
VM Translator entry point.

Usage: python vmtrans.py input.vm|input_dir [-o output.asm] [--bootstrap]
"""

from vmtrans.translator import main

if __name__ == '__main__':
    main()
