#!/usr/bin/env python3
"""
Convenience shim to run Reedgrass from a source checkout.
Usage: python reedgrass.py [options] INPUT_DIR
"""

from reedgrass.cli import main


if __name__ == "__main__":
    main()
