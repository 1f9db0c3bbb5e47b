#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
jmctl main module entry point.
Enables running jmctl as a module: python -m jmctl
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
