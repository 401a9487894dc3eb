#!/usr/bin/env python3
"""
Entry point wrapper for PyInstaller packaging.

Uses absolute imports so the frozen executable can find the proctor package.
"""

import sys
import os

if getattr(sys, 'frozen', False):
    # Running as compiled executable
    bundle_dir = sys._MEIPASS
else:
    bundle_dir = os.path.dirname(os.path.abspath(__file__))

sys.path.insert(0, bundle_dir)

if __name__ == "__main__":
    from proctor.cli import main
    sys.exit(main())
