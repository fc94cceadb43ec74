#!/usr/bin/env python3
"""
TextSwitch entry point for running as a module: python3 -m textswitch
"""

import sys
from textswitch.cli import main

if __name__ == '__main__':
    sys.exit(main())
